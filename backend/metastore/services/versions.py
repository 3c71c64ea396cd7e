from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from metastore.services.entities import find_repo_version_by_stack_and_version

logger = logging.getLogger(__name__)

REPO_VERSION_TABLE = "repo_version"
LEGACY_UPGRADE_PACKAGE_COLUMN = "upgrade_package"


class VersionResolver:
    """Reads the legacy ``repo_version.upgrade_package`` value for a stack build.

    The column is not mapped on ``RepositoryVersion`` since it is dropped by
    the same step that reads it, so it is fetched with raw SQL. Once the
    column is gone every lookup resolves to ``None``.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._has_legacy_column: bool | None = None

    def _legacy_column_present(self) -> bool:
        if self._has_legacy_column is None:
            columns = inspect(self.session.connection()).get_columns(REPO_VERSION_TABLE)
            self._has_legacy_column = any(c["name"].lower() == LEGACY_UPGRADE_PACKAGE_COLUMN for c in columns)
        return self._has_legacy_column

    def resolve(self, stack_name: str, version: str) -> str | None:
        repo_version = find_repo_version_by_stack_and_version(self.session, stack_name, version)
        if repo_version is None:
            logger.warning("No repo_version found for stack %s and version %s", stack_name, version)
            return None

        if not self._legacy_column_present():
            logger.warning("Column %s.%s no longer exists", REPO_VERSION_TABLE, LEGACY_UPGRADE_PACKAGE_COLUMN)
            return None

        upgrade_package = self.session.execute(
            text("SELECT upgrade_package FROM repo_version WHERE repo_version_id = :repo_version_id"),
            {"repo_version_id": repo_version.id},
        ).scalar_one_or_none()
        return upgrade_package or None
