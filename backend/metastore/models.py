from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Stack(Base):
    __tablename__ = "stack"
    __table_args__ = (UniqueConstraint("stack_name", "stack_version", name="uq_stack"),)

    id: Mapped[int] = mapped_column("stack_id", Integer, primary_key=True)
    stack_name: Mapped[str] = mapped_column(String(255), nullable=False)
    stack_version: Mapped[str] = mapped_column(String(255), nullable=False)


class Cluster(Base):
    __tablename__ = "clusters"

    id: Mapped[int] = mapped_column("cluster_id", Integer, primary_key=True)
    cluster_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    desired_stack_id: Mapped[int] = mapped_column(ForeignKey("stack.stack_id"), nullable=False)


class ClusterState(Base):
    __tablename__ = "clusterstate"

    cluster_id: Mapped[int] = mapped_column(ForeignKey("clusters.cluster_id"), primary_key=True)
    current_stack_id: Mapped[int] = mapped_column(ForeignKey("stack.stack_id"), nullable=False)


class Host(Base):
    __tablename__ = "hosts"

    id: Mapped[int] = mapped_column("host_id", Integer, primary_key=True)
    host_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class ClusterHostMapping(Base):
    __tablename__ = "clusterhostmapping"

    cluster_id: Mapped[int] = mapped_column(ForeignKey("clusters.cluster_id"), primary_key=True)
    host_id: Mapped[int] = mapped_column(ForeignKey("hosts.host_id"), primary_key=True)


class RepositoryVersion(Base):
    """A concrete build of a stack.

    The legacy ``upgrade_package`` column is deliberately not mapped: it is
    being relocated onto ``upgrade`` and is only ever read through raw SQL.
    """

    __tablename__ = "repo_version"
    __table_args__ = (UniqueConstraint("stack_id", "version", name="uq_repo_version_stack_version"),)

    id: Mapped[int] = mapped_column("repo_version_id", Integer, primary_key=True, autoincrement=False)
    stack_id: Mapped[int] = mapped_column(ForeignKey("stack.stack_id"), nullable=False)
    version: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    repositories: Mapped[str] = mapped_column(Text, nullable=False)

    stack: Mapped[Stack] = relationship()


class ClusterVersion(Base):
    __tablename__ = "cluster_version"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    repo_version_id: Mapped[int] = mapped_column(ForeignKey("repo_version.repo_version_id"), nullable=False)
    cluster_id: Mapped[int] = mapped_column(ForeignKey("clusters.cluster_id"), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(32), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_name: Mapped[str] = mapped_column(String(32), nullable=False)

    repository_version: Mapped[RepositoryVersion] = relationship()


class HostVersion(Base):
    __tablename__ = "host_version"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    repo_version_id: Mapped[int] = mapped_column(ForeignKey("repo_version.repo_version_id"), nullable=False)
    host_id: Mapped[int] = mapped_column(ForeignKey("hosts.host_id"), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(32), nullable=False)

    repository_version: Mapped[RepositoryVersion] = relationship()


class Upgrade(Base):
    __tablename__ = "upgrade"

    id: Mapped[int] = mapped_column("upgrade_id", Integer, primary_key=True)
    cluster_id: Mapped[int] = mapped_column(ForeignKey("clusters.cluster_id"), nullable=False)
    from_version: Mapped[str] = mapped_column(String(255), nullable=False)
    to_version: Mapped[str] = mapped_column(String(255), nullable=False)
    direction: Mapped[str] = mapped_column(String(255), nullable=False)
    upgrade_package: Mapped[str] = mapped_column(String(255), nullable=False)
    upgrade_type: Mapped[str] = mapped_column(String(32), nullable=False)


class IdSequence(Base):
    __tablename__ = "id_sequences"

    sequence_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    sequence_value: Mapped[int] = mapped_column(BigInteger, nullable=False)


class MetaInfo(Base):
    __tablename__ = "metainfo"

    metainfo_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    metainfo_value: Mapped[str] = mapped_column(String(255), nullable=False)
