from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from metastore.core.stacks import StackMetainfo, serialize_operating_systems
from metastore.domain.enums import RepositoryVersionState
from metastore.domain.types import StackId
from metastore.errors import UnknownStackError
from metastore.models import Cluster, ClusterVersion, HostVersion, RepositoryVersion
from metastore.services import entities
from metastore.services.sequences import (
    CLUSTER_VERSION_SEQUENCE,
    HOST_VERSION_SEQUENCE,
    REPO_VERSION_SEQUENCE,
    SequenceCoordinator,
)

logger = logging.getLogger(__name__)

CURRENT = RepositoryVersionState.CURRENT


@dataclass
class BootstrapSummary:
    clusters_seen: int = 0
    clusters_bootstrapped: list[str] = field(default_factory=list)
    repo_versions_created: int = 0
    cluster_versions_created: int = 0
    cluster_versions_promoted: int = 0
    host_versions_created: int = 0
    host_versions_promoted: int = 0


class HierarchicalBootstrapper:
    """Backfills version tracking for clusters still on the pre-tracking baseline stack.

    For every such cluster a repository version for the baseline build is
    ensured, then a cluster version and one host version per host. A record
    is only ever promoted to CURRENT when its scope has no CURRENT record, so
    versions established by real upgrades are never touched and re-running is
    harmless.
    """

    def __init__(
        self,
        session: Session,
        stacks: StackMetainfo,
        baseline_stack: StackId,
        baseline_version: str,
        acting_user: str,
    ) -> None:
        self.session = session
        self.stacks = stacks
        self.baseline_stack = baseline_stack
        self.baseline_version = baseline_version
        self.acting_user = acting_user
        self.sequences = SequenceCoordinator(session)

    def run(self) -> BootstrapSummary:
        summary = BootstrapSummary()
        for cluster in entities.list_clusters(self.session):
            summary.clusters_seen += 1
            stack_id = entities.find_current_stack(self.session, cluster.id)
            if stack_id is None:
                logger.warning("Cluster %s has no stack; skipping", cluster.cluster_name)
                continue

            logger.info(
                "Analyzing cluster %s, currently at stack %s and version %s",
                cluster.cluster_name,
                stack_id.stack_name,
                stack_id.stack_version,
            )
            if not self.baseline_stack.matches(stack_id.stack_name, stack_id.stack_version):
                continue

            logger.info("Bootstrapping the versions since using %s", stack_id)
            repo_version = self.ensure_repo_version(stack_id, summary)
            self.ensure_cluster_version(cluster, stack_id, repo_version, summary)
            self.ensure_host_versions(cluster, stack_id, repo_version, summary)
            summary.clusters_bootstrapped.append(cluster.cluster_name)
        return summary

    def ensure_repo_version(self, stack_id: StackId, summary: BootstrapSummary) -> RepositoryVersion:
        # The actual build is not known, so the display name uses the placeholder version.
        display_name = f"{stack_id.stack_name}-{self.baseline_version}"
        repo_version = entities.find_repo_version_by_display_name(self.session, display_name)
        if repo_version is not None:
            logger.info("A Repo Version already exists with Display Name: %s", display_name)
            return repo_version

        stack = entities.find_stack(self.session, stack_id)
        if stack is None:
            raise UnknownStackError(f"Stack {stack_id} has no stack record")

        repo_version = entities.find_repo_version_for_stack(self.session, stack, self.baseline_version)
        if repo_version is not None:
            logger.info(
                "A Repo Version already exists for stack %s and version %s with Display Name: %s",
                stack_id,
                self.baseline_version,
                repo_version.display_name,
            )
            return repo_version

        # The repository URLs, however, are the stack's real ones.
        operating_systems = serialize_operating_systems(self.stacks.repositories_for(stack_id))

        self.sequences.ensure_sequence(REPO_VERSION_SEQUENCE, entities.find_max_id(self.session, RepositoryVersion))
        repo_version = entities.create_repo_version(
            self.session,
            self.sequences,
            stack,
            self.baseline_version,
            display_name,
            operating_systems,
        )
        summary.repo_versions_created += 1
        logger.info(
            "Created Repo Version with ID: %d, Display Name: %s, Repo URLs: %s",
            repo_version.id,
            display_name,
            operating_systems,
        )
        return repo_version

    def ensure_cluster_version(
        self,
        cluster: Cluster,
        stack_id: StackId,
        repo_version: RepositoryVersion,
        summary: BootstrapSummary,
    ) -> ClusterVersion:
        cluster_version = entities.find_cluster_version(self.session, cluster.id, stack_id, self.baseline_version)
        if cluster_version is not None:
            logger.info(
                "A Cluster Version for cluster: %s, version: %s, already exists; its state is %s.",
                cluster.cluster_name,
                self.baseline_version,
                cluster_version.state,
            )
            if cluster_version.state != CURRENT and not entities.find_cluster_versions_by_state(
                self.session, cluster.id, CURRENT
            ):
                cluster_version.state = CURRENT.value
                self.session.flush()
                summary.cluster_versions_promoted += 1
                logger.info("Promoted Cluster Version %d to %s", cluster_version.id, CURRENT)
            return cluster_version

        self.sequences.ensure_sequence(CLUSTER_VERSION_SEQUENCE, entities.find_max_id(self.session, ClusterVersion))
        # A cluster with a CURRENT version from a real upgrade keeps it; the
        # baseline record is still created for history.
        state = (
            CURRENT
            if not entities.find_cluster_versions_by_state(self.session, cluster.id, CURRENT)
            else RepositoryVersionState.INSTALLED
        )
        cluster_version = entities.create_cluster_version(
            self.session,
            self.sequences,
            cluster,
            repo_version,
            state,
            self.acting_user,
        )
        summary.cluster_versions_created += 1
        logger.info(
            "Created Cluster Version with ID: %d, cluster: %s, version: %s, state: %s.",
            cluster_version.id,
            cluster.cluster_name,
            self.baseline_version,
            cluster_version.state,
        )
        return cluster_version

    def ensure_host_versions(
        self,
        cluster: Cluster,
        stack_id: StackId,
        repo_version: RepositoryVersion,
        summary: BootstrapSummary,
    ) -> list[HostVersion]:
        hosts = entities.hosts_for_cluster(self.session, cluster.id)
        if not hosts:
            logger.info("Not inserting any Host Version records since cluster %s does not have any hosts.", cluster.cluster_name)
            return []

        host_versions: list[HostVersion] = []
        sequence_ready = False
        for host in hosts:
            host_version = entities.find_host_version(self.session, cluster.id, stack_id, self.baseline_version, host.id)
            if host_version is not None:
                logger.info(
                    "A Host Version for cluster: %s, version: %s, host: %s, already exists; its state is %s.",
                    cluster.cluster_name,
                    self.baseline_version,
                    host.host_name,
                    host_version.state,
                )
                if host_version.state != CURRENT and not entities.find_host_versions_by_state(
                    self.session, cluster.id, host.id, CURRENT
                ):
                    host_version.state = CURRENT.value
                    self.session.flush()
                    summary.host_versions_promoted += 1
                host_versions.append(host_version)
                continue

            if not sequence_ready:
                self.sequences.ensure_sequence(HOST_VERSION_SEQUENCE, entities.find_max_id(self.session, HostVersion))
                sequence_ready = True

            state = (
                CURRENT
                if not entities.find_host_versions_by_state(self.session, cluster.id, host.id, CURRENT)
                else RepositoryVersionState.INSTALLED
            )
            host_version = entities.create_host_version(self.session, self.sequences, host, repo_version, state)
            summary.host_versions_created += 1
            logger.info(
                "Created Host Version with ID: %d, cluster: %s, version: %s, host: %s, state: %s.",
                host_version.id,
                cluster.cluster_name,
                self.baseline_version,
                host.host_name,
                host_version.state,
            )
            host_versions.append(host_version)
        return host_versions
