from __future__ import annotations

import importlib.util
import os
from pathlib import Path

# Must be set before anything imports metastore.db.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("UPGRADE_ON_STARTUP", "false")

import pytest
from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from metastore.config import get_settings

BASELINE_REVISION = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "0001_legacy_baseline.py"


def apply_legacy_baseline(engine: Engine) -> None:
    spec = importlib.util.spec_from_file_location("legacy_baseline", BASELINE_REVISION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    with engine.begin() as conn, Operations.context(MigrationContext.configure(conn)):
        module.upgrade()


@pytest.fixture
def engine() -> Engine:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    apply_legacy_baseline(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.delenv("DB_TYPE", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
