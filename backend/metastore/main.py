import logging

from fastapi import FastAPI

from metastore.api.router import api_router
from metastore.config import get_settings
from metastore.core.stacks import StackMetainfo
from metastore.db import SessionLocal
from metastore.upgrade.catalog import CatalogContext
from metastore.upgrade.helper import SchemaUpgradeHelper

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.include_router(api_router)


def build_context() -> CatalogContext:
    stacks = StackMetainfo.from_file(settings.stack_definitions_path) if settings.stack_definitions_path else StackMetainfo()
    return CatalogContext(session_factory=SessionLocal, settings=settings, stacks=stacks)


@app.on_event("startup")
def startup_event() -> None:
    if not settings.upgrade_on_startup:
        logger.info("Schema upgrade disabled by UPGRADE_ON_STARTUP=false")
        return
    # Any failure propagates and stops the server from starting.
    SchemaUpgradeHelper(build_context()).run()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "environment": settings.app_env}
