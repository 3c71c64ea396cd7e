from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from metastore.config import Settings
from metastore.core.stacks import StackMetainfo
from metastore.db import session_scope
from metastore.services.columns import ColumnEvolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogContext:
    session_factory: sessionmaker[Session]
    settings: Settings
    stacks: StackMetainfo


class UpgradeCatalog(ABC):
    """One step in the ordered chain of schema versions.

    The sequencer calls the three phases in order and then records
    ``target_version`` as the store's schema version.
    """

    source_version: str
    target_version: str

    def __init__(self, context: CatalogContext) -> None:
        self.context = context

    @abstractmethod
    def run_schema_updates(self) -> None: ...

    @abstractmethod
    def run_pre_data_updates(self) -> None: ...

    @abstractmethod
    def run_data_updates(self) -> None: ...

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with session_scope(self.context.session_factory) as session:
            yield session

    def column_evolver(self, session: Session) -> ColumnEvolver:
        return ColumnEvolver(session.connection(), self.context.settings.database_type)

    def run_phases(self) -> None:
        phases: list[tuple[str, Callable[[], None]]] = [
            ("schema", self.run_schema_updates),
            ("pre-data", self.run_pre_data_updates),
            ("data", self.run_data_updates),
        ]
        for name, phase in phases:
            started = time.monotonic()
            logger.info("Executing %s updates for %s", name, self)
            phase()
            logger.info("Finished %s updates for %s in %.2fs", name, self, time.monotonic() - started)

    def __str__(self) -> str:
        return f"{type(self).__name__}({self.source_version} -> {self.target_version})"
