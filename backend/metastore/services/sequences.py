from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from metastore.errors import SequenceMissingError
from metastore.models import IdSequence

logger = logging.getLogger(__name__)

REPO_VERSION_SEQUENCE = "repo_version_id_seq"
CLUSTER_VERSION_SEQUENCE = "cluster_version_id_seq"
HOST_VERSION_SEQUENCE = "host_version_id_seq"


class SequenceCoordinator:
    """Id generators stored as rows of ``id_sequences``; the value is the last id handed out."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def ensure_sequence(self, name: str, seed_value: int) -> bool:
        existing = self.session.get(IdSequence, name)
        if existing is not None:
            logger.debug("Sequence %s already exists at %d", name, existing.sequence_value)
            return False

        self.session.add(IdSequence(sequence_name=name, sequence_value=seed_value))
        self.session.flush()
        logger.info("Created sequence %s seeded at %d", name, seed_value)
        return True

    def current_value(self, name: str) -> int:
        value = self.session.execute(
            select(IdSequence.sequence_value).where(IdSequence.sequence_name == name)
        ).scalar_one_or_none()
        if value is None:
            raise SequenceMissingError(f"Sequence {name} does not exist")
        return int(value)

    def next_value(self, name: str) -> int:
        next_id = self.current_value(name) + 1
        self.session.execute(
            update(IdSequence).where(IdSequence.sequence_name == name).values(sequence_value=next_id)
        )
        return next_id
