from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from metastore.errors import UpgradeCatalogError
from metastore.models import MetaInfo
from metastore.upgrade.catalog import CatalogContext, UpgradeCatalog
from metastore.upgrade.catalog_212 import UpgradeCatalog212

logger = logging.getLogger(__name__)

VERSION_KEY = "version"

CATALOG_CLASSES: tuple[type[UpgradeCatalog], ...] = (UpgradeCatalog212,)

CatalogT = TypeVar("CatalogT", UpgradeCatalog, type[UpgradeCatalog])


def version_key(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in re.findall(r"\d+", version))


def catalog_chain(catalogs: Sequence[CatalogT], from_version: str | None) -> list[CatalogT]:
    if from_version is None:
        return []

    current = from_version
    chain: list[CatalogT] = []
    for catalog in sorted(catalogs, key=lambda c: version_key(c.target_version)):
        if catalog.source_version == current:
            chain.append(catalog)
            current = catalog.target_version
    return chain


def read_recorded_version(session: Session) -> str | None:
    return session.execute(
        select(MetaInfo.metainfo_value).where(MetaInfo.metainfo_key == VERSION_KEY)
    ).scalar_one_or_none()


def write_recorded_version(session: Session, version: str) -> None:
    row = session.get(MetaInfo, VERSION_KEY)
    if row is None:
        session.add(MetaInfo(metainfo_key=VERSION_KEY, metainfo_value=version))
    else:
        row.metainfo_value = version


class SchemaUpgradeHelper:
    """Runs every catalog between the recorded schema version and the newest one, in order."""

    def __init__(self, context: CatalogContext, catalogs: list[UpgradeCatalog] | None = None) -> None:
        self.context = context
        if catalogs is None:
            catalogs = [catalog_cls(context) for catalog_cls in CATALOG_CLASSES]
        self.catalogs = sorted(catalogs, key=lambda catalog: version_key(catalog.target_version))

    def recorded_version(self) -> str | None:
        with self.context.session_factory() as session:
            return read_recorded_version(session)

    def pending_catalogs(self) -> list[UpgradeCatalog]:
        return catalog_chain(self.catalogs, self.recorded_version())

    def run(self) -> list[str]:
        current = self.recorded_version()
        if current is None:
            raise UpgradeCatalogError("No schema version is recorded in metainfo; cannot select upgrade catalogs.")

        applied: list[str] = []
        for catalog in catalog_chain(self.catalogs, current):
            logger.info("Upgrading schema from %s to %s", catalog.source_version, catalog.target_version)
            try:
                catalog.run_phases()
            except UpgradeCatalogError:
                logger.exception("Upgrade catalog %s failed", catalog)
                raise
            except Exception as exc:
                logger.exception("Upgrade catalog %s failed", catalog)
                raise UpgradeCatalogError(f"{catalog} failed: {exc}") from exc

            with self.context.session_factory() as session, session.begin():
                write_recorded_version(session, catalog.target_version)
            applied.append(catalog.target_version)

        if applied:
            logger.info("Schema upgraded to %s", applied[-1])
        else:
            logger.info("Schema already at %s; no upgrade catalogs to run", current)
        return applied
