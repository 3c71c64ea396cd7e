from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from metastore.domain.enums import RepositoryVersionState
from metastore.domain.types import StackId
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
from metastore.services.sequences import (
    CLUSTER_VERSION_SEQUENCE,
    HOST_VERSION_SEQUENCE,
    REPO_VERSION_SEQUENCE,
    SequenceCoordinator,
)


def _stack_id(stack: Stack | None) -> StackId | None:
    if stack is None:
        return None
    return StackId(stack.stack_name, stack.stack_version)


def list_clusters(session: Session) -> list[Cluster]:
    return list(session.execute(select(Cluster).order_by(Cluster.id.asc())).scalars().all())


def find_cluster(session: Session, cluster_id: int) -> Cluster | None:
    return session.get(Cluster, cluster_id)


def find_stack(session: Session, stack_id: StackId) -> Stack | None:
    return session.execute(
        select(Stack).where(
            func.lower(Stack.stack_name) == stack_id.stack_name.lower(),
            func.lower(Stack.stack_version) == stack_id.stack_version.lower(),
        )
    ).scalar_one_or_none()


def find_desired_stack(session: Session, cluster_id: int) -> StackId | None:
    stack = session.execute(
        select(Stack).join(Cluster, Cluster.desired_stack_id == Stack.id).where(Cluster.id == cluster_id)
    ).scalar_one_or_none()
    return _stack_id(stack)


def find_current_stack(session: Session, cluster_id: int) -> StackId | None:
    stack = session.execute(
        select(Stack)
        .join(ClusterState, ClusterState.current_stack_id == Stack.id)
        .where(ClusterState.cluster_id == cluster_id)
    ).scalar_one_or_none()
    if stack is None:
        return find_desired_stack(session, cluster_id)
    return _stack_id(stack)


def hosts_for_cluster(session: Session, cluster_id: int) -> list[Host]:
    return list(
        session.execute(
            select(Host)
            .join(ClusterHostMapping, ClusterHostMapping.host_id == Host.id)
            .where(ClusterHostMapping.cluster_id == cluster_id)
            .order_by(Host.host_name.asc())
        )
        .scalars()
        .all()
    )


def find_max_id(session: Session, model: type[RepositoryVersion | ClusterVersion | HostVersion]) -> int:
    value = session.execute(select(func.max(model.id))).scalar_one_or_none()
    return int(value) if value is not None else 0


def find_repo_version_by_display_name(session: Session, display_name: str) -> RepositoryVersion | None:
    return session.execute(
        select(RepositoryVersion).where(RepositoryVersion.display_name == display_name)
    ).scalar_one_or_none()


def find_repo_version_by_stack_and_version(
    session: Session, stack_name: str, version: str
) -> RepositoryVersion | None:
    return (
        session.execute(
            select(RepositoryVersion)
            .join(Stack, RepositoryVersion.stack_id == Stack.id)
            .where(func.lower(Stack.stack_name) == stack_name.lower(), RepositoryVersion.version == version)
            .order_by(RepositoryVersion.id.asc())
        )
        .scalars()
        .first()
    )


def find_repo_version_for_stack(session: Session, stack: Stack, version: str) -> RepositoryVersion | None:
    return session.execute(
        select(RepositoryVersion).where(RepositoryVersion.stack_id == stack.id, RepositoryVersion.version == version)
    ).scalar_one_or_none()


def create_repo_version(
    session: Session,
    sequences: SequenceCoordinator,
    stack: Stack,
    version: str,
    display_name: str,
    repositories: str,
) -> RepositoryVersion:
    repo_version = RepositoryVersion(
        id=sequences.next_value(REPO_VERSION_SEQUENCE),
        stack_id=stack.id,
        version=version,
        display_name=display_name,
        repositories=repositories,
    )
    session.add(repo_version)
    session.flush()
    return repo_version


def find_cluster_version(
    session: Session, cluster_id: int, stack_id: StackId, version: str
) -> ClusterVersion | None:
    return (
        session.execute(
            select(ClusterVersion)
            .join(RepositoryVersion, ClusterVersion.repo_version_id == RepositoryVersion.id)
            .join(Stack, RepositoryVersion.stack_id == Stack.id)
            .where(
                ClusterVersion.cluster_id == cluster_id,
                func.lower(Stack.stack_name) == stack_id.stack_name.lower(),
                func.lower(Stack.stack_version) == stack_id.stack_version.lower(),
                RepositoryVersion.version == version,
            )
            .order_by(ClusterVersion.id.asc())
        )
        .scalars()
        .first()
    )


def find_cluster_versions_by_state(
    session: Session, cluster_id: int, state: RepositoryVersionState
) -> list[ClusterVersion]:
    return list(
        session.execute(
            select(ClusterVersion)
            .where(ClusterVersion.cluster_id == cluster_id, ClusterVersion.state == state.value)
            .order_by(ClusterVersion.id.asc())
        )
        .scalars()
        .all()
    )


def create_cluster_version(
    session: Session,
    sequences: SequenceCoordinator,
    cluster: Cluster,
    repo_version: RepositoryVersion,
    state: RepositoryVersionState,
    user_name: str,
) -> ClusterVersion:
    now_utc = datetime.now(timezone.utc)
    cluster_version = ClusterVersion(
        id=sequences.next_value(CLUSTER_VERSION_SEQUENCE),
        repo_version_id=repo_version.id,
        cluster_id=cluster.id,
        state=state.value,
        start_time=now_utc,
        end_time=now_utc,
        user_name=user_name,
    )
    session.add(cluster_version)
    session.flush()
    return cluster_version


def _host_versions_in_cluster(cluster_id: int, host_id: int):
    return (
        select(HostVersion)
        .join(ClusterHostMapping, ClusterHostMapping.host_id == HostVersion.host_id)
        .where(ClusterHostMapping.cluster_id == cluster_id, HostVersion.host_id == host_id)
    )


def find_host_version(
    session: Session, cluster_id: int, stack_id: StackId, version: str, host_id: int
) -> HostVersion | None:
    return (
        session.execute(
            _host_versions_in_cluster(cluster_id, host_id)
            .join(RepositoryVersion, HostVersion.repo_version_id == RepositoryVersion.id)
            .join(Stack, RepositoryVersion.stack_id == Stack.id)
            .where(
                func.lower(Stack.stack_name) == stack_id.stack_name.lower(),
                func.lower(Stack.stack_version) == stack_id.stack_version.lower(),
                RepositoryVersion.version == version,
            )
            .order_by(HostVersion.id.asc())
        )
        .scalars()
        .first()
    )


def find_host_versions_by_state(
    session: Session, cluster_id: int, host_id: int, state: RepositoryVersionState
) -> list[HostVersion]:
    return list(
        session.execute(
            _host_versions_in_cluster(cluster_id, host_id)
            .where(HostVersion.state == state.value)
            .order_by(HostVersion.id.asc())
        )
        .scalars()
        .all()
    )


def create_host_version(
    session: Session,
    sequences: SequenceCoordinator,
    host: Host,
    repo_version: RepositoryVersion,
    state: RepositoryVersionState,
) -> HostVersion:
    host_version = HostVersion(
        id=sequences.next_value(HOST_VERSION_SEQUENCE),
        repo_version_id=repo_version.id,
        host_id=host.id,
        state=state.value,
    )
    session.add(host_version)
    session.flush()
    return host_version
