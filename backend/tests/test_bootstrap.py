from __future__ import annotations

import json

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from factories import (
    add_cluster,
    add_cluster_version,
    add_host,
    add_host_version,
    add_legacy_repo_version,
    add_stack,
    repo_versions,
)
from metastore.core.stacks import StackMetainfo
from metastore.domain.enums import RepositoryVersionState
from metastore.domain.types import StackId
from metastore.errors import UnknownStackError
from metastore.models import ClusterVersion, HostVersion, IdSequence
from metastore.services.bootstrap import HierarchicalBootstrapper
from metastore.services.sequences import HOST_VERSION_SEQUENCE, REPO_VERSION_SEQUENCE

BASELINE = "2.1.0.0-0001"


def _bootstrapper(session: Session, stacks: StackMetainfo | None = None) -> HierarchicalBootstrapper:
    return HierarchicalBootstrapper(session, stacks or StackMetainfo(), StackId("HDP", "2.1"), BASELINE, "admin")


def _cluster_versions(session: Session, cluster_id: int) -> list[ClusterVersion]:
    return list(
        session.execute(select(ClusterVersion).where(ClusterVersion.cluster_id == cluster_id).order_by(ClusterVersion.id))
        .scalars()
        .all()
    )


def _host_versions(session: Session) -> list[HostVersion]:
    return list(session.execute(select(HostVersion).order_by(HostVersion.id)).scalars().all())


def test_baseline_cluster_gets_repo_cluster_and_host_versions(engine) -> None:
    with Session(engine) as session:
        hdp21 = add_stack(session)
        cluster = add_cluster(session, "c1", hdp21)
        for name in ("h3", "h1", "h2"):
            add_host(session, name, cluster)

        summary = _bootstrapper(session).run()

        [repo_version] = repo_versions(session)
        assert repo_version.display_name == "HDP-2.1.0.0-0001"
        assert repo_version.version == BASELINE
        operating_systems = json.loads(repo_version.repositories)
        assert {entry["OperatingSystems/os_type"] for entry in operating_systems} == {
            "redhat5",
            "redhat6",
            "suse11",
            "ubuntu12",
        }

        [cluster_version] = _cluster_versions(session, cluster.id)
        assert cluster_version.state == RepositoryVersionState.CURRENT
        assert cluster_version.user_name == "admin"
        assert cluster_version.repo_version_id == repo_version.id

        host_versions = _host_versions(session)
        assert len(host_versions) == 3
        assert all(hv.state == RepositoryVersionState.CURRENT for hv in host_versions)
        assert all(hv.repo_version_id == repo_version.id for hv in host_versions)

    assert summary.clusters_seen == 1
    assert summary.clusters_bootstrapped == ["c1"]
    assert summary.repo_versions_created == 1
    assert summary.cluster_versions_created == 1
    assert summary.host_versions_created == 3


def test_cluster_without_hosts_gets_no_host_versions(engine) -> None:
    with Session(engine) as session:
        cluster = add_cluster(session, "c1", add_stack(session))
        add_host(session, "unmapped")

        summary = _bootstrapper(session).run()

        assert len(_cluster_versions(session, cluster.id)) == 1
        assert _host_versions(session) == []
        assert session.get(IdSequence, HOST_VERSION_SEQUENCE) is None
    assert summary.host_versions_created == 0


def test_clusters_on_other_stacks_are_skipped(engine) -> None:
    with Session(engine) as session:
        hdp21 = add_stack(session)
        hdp22 = add_stack(session, "HDP", "2.2")
        add_cluster(session, "upgraded", hdp22)
        add_cluster(session, "mid-upgrade", hdp22, current=hdp21)

        summary = _bootstrapper(session).run()

    assert summary.clusters_seen == 2
    assert summary.clusters_bootstrapped == ["mid-upgrade"]


def test_existing_current_version_is_not_overwritten(engine) -> None:
    with Session(engine) as session:
        hdp21 = add_stack(session)
        cluster = add_cluster(session, "c1", hdp21)
        host = add_host(session, "h1", cluster)
        add_legacy_repo_version(session, 7, hdp21, "2.1.5.0-100", None)
        add_cluster_version(session, 3, cluster, 7, RepositoryVersionState.CURRENT)
        add_host_version(session, 4, host, 7, RepositoryVersionState.CURRENT)

        _bootstrapper(session).run()

        cluster_versions = _cluster_versions(session, cluster.id)
        current = [cv for cv in cluster_versions if cv.state == RepositoryVersionState.CURRENT]
        assert [cv.id for cv in current] == [3]
        baseline = [cv for cv in cluster_versions if cv.id != 3]
        assert [cv.state for cv in baseline] == [RepositoryVersionState.INSTALLED]

        host_states = {hv.id: hv.state for hv in _host_versions(session)}
        assert host_states[4] == RepositoryVersionState.CURRENT
        assert sorted(host_states.values()).count(RepositoryVersionState.CURRENT) == 1


def test_existing_baseline_records_are_promoted_and_repo_version_reused(engine) -> None:
    with Session(engine) as session:
        hdp21 = add_stack(session)
        cluster = add_cluster(session, "c1", hdp21)
        host = add_host(session, "h1", cluster)
        add_legacy_repo_version(session, 12, hdp21, BASELINE, None)
        add_cluster_version(session, 20, cluster, 12, RepositoryVersionState.INSTALLED)
        add_host_version(session, 30, host, 12, RepositoryVersionState.INSTALLED)

        summary = _bootstrapper(session).run()

        assert [rv.id for rv in repo_versions(session)] == [12]
        [cluster_version] = _cluster_versions(session, cluster.id)
        assert (cluster_version.id, cluster_version.state) == (20, RepositoryVersionState.CURRENT)
        [host_version] = _host_versions(session)
        assert (host_version.id, host_version.state) == (30, RepositoryVersionState.CURRENT)

    assert summary.repo_versions_created == 0
    assert summary.cluster_versions_promoted == 1
    assert summary.host_versions_promoted == 1


def test_new_ids_continue_after_existing_rows(engine) -> None:
    with Session(engine) as session:
        hdp21 = add_stack(session)
        hdp22 = add_stack(session, "HDP", "2.2")
        add_legacy_repo_version(session, 41, hdp22, "2.2.0.0-2041", None)
        cluster = add_cluster(session, "c1", hdp21)
        add_host(session, "h1", cluster)

        _bootstrapper(session).run()

        created = [rv for rv in repo_versions(session) if rv.version == BASELINE]
        assert [rv.id for rv in created] == [42]
        assert session.get(IdSequence, REPO_VERSION_SEQUENCE).sequence_value == 42


def test_second_run_changes_nothing(engine) -> None:
    with Session(engine) as session:
        cluster = add_cluster(session, "c1", add_stack(session))
        add_host(session, "h1", cluster)
        add_host(session, "h2", cluster)
        _bootstrapper(session).run()
        cluster_id = cluster.id
        session.commit()

    with Session(engine) as session:
        summary = _bootstrapper(session).run()
        assert len(repo_versions(session)) == 1
        assert len(_cluster_versions(session, cluster_id)) == 1
        assert len(_host_versions(session)) == 2

    assert summary.clusters_bootstrapped == ["c1"]
    assert summary.repo_versions_created == 0
    assert summary.cluster_versions_created == 0
    assert summary.cluster_versions_promoted == 0
    assert summary.host_versions_created == 0
    assert summary.host_versions_promoted == 0


def test_undeclared_stack_is_fatal(engine) -> None:
    with Session(engine) as session:
        add_cluster(session, "c1", add_stack(session))

        with pytest.raises(UnknownStackError):
            _bootstrapper(session, StackMetainfo(definitions={})).run()


def test_baseline_repo_version_under_another_display_name_is_reused(engine) -> None:
    with Session(engine) as session:
        hdp21 = add_stack(session)
        cluster = add_cluster(session, "c1", hdp21)
        add_host(session, "h1", cluster)
        add_legacy_repo_version(session, 5, hdp21, BASELINE, None, display_name="HDP 2.1 baseline")

        summary = _bootstrapper(session).run()

        assert [(rv.id, rv.display_name) for rv in repo_versions(session)] == [(5, "HDP 2.1 baseline")]
        [cluster_version] = _cluster_versions(session, cluster.id)
        assert cluster_version.repo_version_id == 5
        assert cluster_version.state == RepositoryVersionState.CURRENT
        [host_version] = _host_versions(session)
        assert host_version.repo_version_id == 5

    assert summary.repo_versions_created == 0
    assert summary.clusters_bootstrapped == ["c1"]
