from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from metastore.domain.enums import RepositoryVersionState
from metastore.models import (
    Cluster,
    ClusterHostMapping,
    ClusterState,
    ClusterVersion,
    Host,
    HostVersion,
    RepositoryVersion,
    Stack,
)


def add_stack(session: Session, name: str = "HDP", version: str = "2.1") -> Stack:
    stack = Stack(stack_name=name, stack_version=version)
    session.add(stack)
    session.flush()
    return stack


def add_cluster(session: Session, name: str, desired: Stack, current: Stack | None = None) -> Cluster:
    cluster = Cluster(cluster_name=name, desired_stack_id=desired.id)
    session.add(cluster)
    session.flush()
    session.add(ClusterState(cluster_id=cluster.id, current_stack_id=(current or desired).id))
    session.flush()
    return cluster


def add_host(session: Session, name: str, cluster: Cluster | None = None) -> Host:
    host = Host(host_name=name)
    session.add(host)
    session.flush()
    if cluster is not None:
        session.add(ClusterHostMapping(cluster_id=cluster.id, host_id=host.id))
        session.flush()
    return host


def add_legacy_repo_version(
    session: Session,
    repo_version_id: int,
    stack: Stack,
    version: str,
    upgrade_package: str | None,
    display_name: str | None = None,
) -> None:
    session.execute(
        text(
            "INSERT INTO repo_version (repo_version_id, stack_id, version, display_name, upgrade_package, repositories) "
            "VALUES (:id, :stack_id, :version, :display_name, :upgrade_package, '[]')"
        ),
        {
            "id": repo_version_id,
            "stack_id": stack.id,
            "version": version,
            "display_name": display_name or f"{stack.stack_name}-{version}",
            "upgrade_package": upgrade_package,
        },
    )


def add_legacy_upgrade(
    session: Session,
    upgrade_id: int,
    cluster_id: int,
    from_version: str,
    to_version: str,
    direction: str,
) -> None:
    session.execute(
        text(
            "INSERT INTO upgrade (upgrade_id, cluster_id, from_version, to_version, direction) "
            "VALUES (:upgrade_id, :cluster_id, :from_version, :to_version, :direction)"
        ),
        {
            "upgrade_id": upgrade_id,
            "cluster_id": cluster_id,
            "from_version": from_version,
            "to_version": to_version,
            "direction": direction,
        },
    )


def add_cluster_version(
    session: Session, version_id: int, cluster: Cluster, repo_version_id: int, state: RepositoryVersionState
) -> ClusterVersion:
    now = datetime(2015, 8, 1, tzinfo=timezone.utc)
    cluster_version = ClusterVersion(
        id=version_id,
        repo_version_id=repo_version_id,
        cluster_id=cluster.id,
        state=state.value,
        start_time=now,
        end_time=now,
        user_name="admin",
    )
    session.add(cluster_version)
    session.flush()
    return cluster_version


def add_host_version(
    session: Session, version_id: int, host: Host, repo_version_id: int, state: RepositoryVersionState
) -> HostVersion:
    host_version = HostVersion(id=version_id, repo_version_id=repo_version_id, host_id=host.id, state=state.value)
    session.add(host_version)
    session.flush()
    return host_version


def upgrade_rows(session: Session) -> dict[int, dict]:
    rows = session.execute(text("SELECT * FROM upgrade ORDER BY upgrade_id")).mappings().all()
    return {row["upgrade_id"]: dict(row) for row in rows}


def column_info(session: Session, table: str, column: str) -> dict | None:
    for info in inspect(session.connection()).get_columns(table):
        if info["name"] == column:
            return info
    return None


def repo_versions(session: Session) -> list[RepositoryVersion]:
    return list(session.query(RepositoryVersion).order_by(RepositoryVersion.id).all())
