from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import closing
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.orm import Session

from metastore.domain.enums import Direction
from metastore.domain.types import UpgradeRow
from metastore.errors import ResolutionError
from metastore.services.entities import find_cluster, find_desired_stack
from metastore.services.versions import VersionResolver

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT")

UPGRADE_PACKAGE_COL = "upgrade_package"
UPGRADE_TYPE_COL = "upgrade_type"
_UPDATABLE_COLUMNS = frozenset({UPGRADE_PACKAGE_COL, UPGRADE_TYPE_COL})


@dataclass
class BackfillResult:
    scanned: int = 0
    updated: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


def backfill(
    select_all_rows: Callable[[], Generator[RowT, None, None]],
    is_row_complete: Callable[[RowT], bool],
    compute_missing_fields: Callable[[RowT], dict[str, str]],
    apply_update: Callable[[RowT, dict[str, str]], None],
    row_id: Callable[[RowT], int],
) -> BackfillResult:
    """Fill in derived values row by row.

    A row whose values cannot be computed is recorded as failed and the scan
    moves on, after writing whatever fields were resolved for it; updates
    already applied to earlier rows are kept. Callers decide what an
    unsuccessful result means once every row has been visited.
    """
    result = BackfillResult()
    with closing(select_all_rows()) as rows:
        for row in rows:
            result.scanned += 1
            if is_row_complete(row):
                continue

            key = row_id(row)
            try:
                fields = compute_missing_fields(row)
            except ResolutionError as exc:
                logger.error("Unable to backfill row %s: %s", key, exc)
                if exc.resolved:
                    apply_update(row, exc.resolved)
                result.failed[key] = str(exc)
                continue

            if fields:
                apply_update(row, fields)
                result.updated.append(key)
    return result


def select_upgrade_rows(session: Session) -> Generator[UpgradeRow, None, None]:
    # Raw SQL: the columns being backfilled may not exist on the mapped entity yet.
    result = session.execute(
        text(
            "SELECT upgrade_id, cluster_id, from_version, to_version, direction, upgrade_package, upgrade_type "
            "FROM upgrade ORDER BY upgrade_id"
        ),
        execution_options={"yield_per": 100},
    )
    with closing(result):
        for row in result.mappings():
            yield UpgradeRow(**row)


def update_upgrade_row(session: Session, row: UpgradeRow, fields: dict[str, str]) -> None:
    unknown = set(fields) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Refusing to update unexpected upgrade columns: {sorted(unknown)}")

    assignments = ", ".join(f"{name} = :{name}" for name in sorted(fields))
    session.execute(
        text(f"UPDATE upgrade SET {assignments} WHERE upgrade_id = :upgrade_id"),
        {**fields, "upgrade_id": row.upgrade_id},
    )
    logger.info("Updated upgrade record %d with %s", row.upgrade_id, fields)


def upgrade_row_is_complete(row: UpgradeRow) -> bool:
    return bool(row.upgrade_type) and bool(row.upgrade_package)


def version_for_package_lookup(row: UpgradeRow) -> str | None:
    try:
        direction = Direction((row.direction or "").upper())
    except ValueError as exc:
        raise ResolutionError(f"Unknown direction {row.direction!r} for upgrade_id {row.upgrade_id}") from exc

    if direction is Direction.UPGRADE:
        return row.to_version
    # A downgrade record has to_version overwritten with the original source
    # version while from_version keeps the build whose upgrade pack was used.
    # Already-migrated history depends on this choice.
    # TODO: read an explicit target column once downgrades stop overwriting to_version.
    return row.from_version


class UpgradeRecordRule:
    def __init__(self, session: Session, resolver: VersionResolver, default_upgrade_type: str) -> None:
        self.session = session
        self.resolver = resolver
        self.default_upgrade_type = str(default_upgrade_type)

    def resolve_upgrade_package(self, row: UpgradeRow) -> str:
        version = version_for_package_lookup(row)
        if not version:
            raise ResolutionError(f"upgrade_id {row.upgrade_id} has no version to look up")

        if find_cluster(self.session, row.cluster_id) is None:
            raise ResolutionError(f"Could not find a cluster with cluster_id {row.cluster_id}")
        stack_id = find_desired_stack(self.session, row.cluster_id)
        if stack_id is None:
            raise ResolutionError(f"Cluster {row.cluster_id} has no desired stack")

        upgrade_package = self.resolver.resolve(stack_id.stack_name, version)
        if not upgrade_package:
            raise ResolutionError(
                f"Unable to populate column upgrade_package for upgrade_id {row.upgrade_id} "
                f"(stack {stack_id.stack_name}, version {version})"
            )
        return upgrade_package

    def compute(self, row: UpgradeRow) -> dict[str, str]:
        logger.info(
            "Populating upgrade record upgrade_id: %d, cluster_id: %d, from_version: %s, to_version: %s, direction: %s",
            row.upgrade_id,
            row.cluster_id,
            row.from_version,
            row.to_version,
            row.direction,
        )
        fields: dict[str, str] = {}
        if not row.upgrade_type:
            fields[UPGRADE_TYPE_COL] = self.default_upgrade_type
        if not row.upgrade_package:
            try:
                fields[UPGRADE_PACKAGE_COL] = self.resolve_upgrade_package(row)
            except ResolutionError as exc:
                raise ResolutionError(str(exc), resolved=fields) from exc
        return fields


def populate_upgrade_table(session: Session, default_upgrade_type: str) -> BackfillResult:
    rule = UpgradeRecordRule(session, VersionResolver(session), default_upgrade_type)
    result = backfill(
        select_all_rows=lambda: select_upgrade_rows(session),
        is_row_complete=upgrade_row_is_complete,
        compute_missing_fields=rule.compute,
        apply_update=lambda row, fields: update_upgrade_row(session, row, fields),
        row_id=lambda row: row.upgrade_id,
    )
    logger.info(
        "Scanned %d upgrade records: %d updated, %d failed",
        result.scanned,
        len(result.updated),
        len(result.failed),
    )
    return result
