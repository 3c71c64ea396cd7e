from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from metastore.db import get_db
from metastore.upgrade.helper import CATALOG_CLASSES, catalog_chain, read_recorded_version, version_key

router = APIRouter(tags=["system"])

# Changes on every process start; a client seeing a new value knows the backend restarted.
BOOT_ID = uuid.uuid4().hex
STARTED_AT = datetime.now(timezone.utc)


@router.get("/system/upgrade_status")
def upgrade_status(db: Session = Depends(get_db)) -> dict[str, object]:
    recorded = read_recorded_version(db)
    pending = [catalog.target_version for catalog in catalog_chain(CATALOG_CLASSES, recorded)]
    latest = max((catalog.target_version for catalog in CATALOG_CLASSES), key=version_key, default=None)
    return {
        "schema_version": recorded,
        "latest_version": latest,
        "pending_versions": pending,
        "upgrade_required": bool(pending),
        "boot_id": BOOT_ID,
        "started_at": STARTED_AT,
    }
