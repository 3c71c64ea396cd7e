"""legacy 2.1.1 baseline schema

Revision ID: 0001_legacy_baseline
Revises:
Create Date: 2026-10-19 09:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_legacy_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "stack",
        sa.Column("stack_id", sa.Integer(), primary_key=True),
        sa.Column("stack_name", sa.String(length=255), nullable=False),
        sa.Column("stack_version", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("stack_name", "stack_version", name="uq_stack"),
    )
    op.create_table(
        "clusters",
        sa.Column("cluster_id", sa.Integer(), primary_key=True),
        sa.Column("cluster_name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("desired_stack_id", sa.Integer(), sa.ForeignKey("stack.stack_id"), nullable=False),
    )
    op.create_table(
        "clusterstate",
        sa.Column("cluster_id", sa.Integer(), sa.ForeignKey("clusters.cluster_id"), primary_key=True),
        sa.Column("current_stack_id", sa.Integer(), sa.ForeignKey("stack.stack_id"), nullable=False),
    )
    op.create_table(
        "hosts",
        sa.Column("host_id", sa.Integer(), primary_key=True),
        sa.Column("host_name", sa.String(length=255), nullable=False, unique=True),
    )
    op.create_table(
        "clusterhostmapping",
        sa.Column("cluster_id", sa.Integer(), sa.ForeignKey("clusters.cluster_id"), primary_key=True),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("hosts.host_id"), primary_key=True),
    )
    op.create_table(
        "repo_version",
        sa.Column("repo_version_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("stack_id", sa.Integer(), sa.ForeignKey("stack.stack_id"), nullable=False),
        sa.Column("version", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=128), nullable=False, unique=True),
        sa.Column("upgrade_package", sa.String(length=255), nullable=True),
        sa.Column("repositories", sa.Text(), nullable=False),
        sa.UniqueConstraint("stack_id", "version", name="uq_repo_version_stack_version"),
    )
    op.create_table(
        "cluster_version",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("repo_version_id", sa.Integer(), sa.ForeignKey("repo_version.repo_version_id"), nullable=False),
        sa.Column("cluster_id", sa.Integer(), sa.ForeignKey("clusters.cluster_id"), nullable=False),
        sa.Column("state", sa.String(length=32), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_name", sa.String(length=32), nullable=False),
    )
    op.create_index("ix_cluster_version_cluster_id", "cluster_version", ["cluster_id"])
    op.create_table(
        "host_version",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("repo_version_id", sa.Integer(), sa.ForeignKey("repo_version.repo_version_id"), nullable=False),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("hosts.host_id"), nullable=False),
        sa.Column("state", sa.String(length=32), nullable=False),
    )
    op.create_index("ix_host_version_host_id", "host_version", ["host_id"])
    op.create_table(
        "upgrade",
        sa.Column("upgrade_id", sa.Integer(), primary_key=True),
        sa.Column("cluster_id", sa.Integer(), sa.ForeignKey("clusters.cluster_id"), nullable=False),
        sa.Column("from_version", sa.String(length=255), nullable=False),
        sa.Column("to_version", sa.String(length=255), nullable=False),
        sa.Column("direction", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "id_sequences",
        sa.Column("sequence_name", sa.String(length=255), primary_key=True),
        sa.Column("sequence_value", sa.BigInteger(), nullable=False),
    )
    metainfo = op.create_table(
        "metainfo",
        sa.Column("metainfo_key", sa.String(length=255), primary_key=True),
        sa.Column("metainfo_value", sa.String(length=255), nullable=False),
    )
    op.bulk_insert(metainfo, [{"metainfo_key": "version", "metainfo_value": "2.1.1"}])


def downgrade() -> None:
    op.drop_table("metainfo")
    op.drop_table("id_sequences")
    op.drop_table("upgrade")
    op.drop_index("ix_host_version_host_id", table_name="host_version")
    op.drop_table("host_version")
    op.drop_index("ix_cluster_version_cluster_id", table_name="cluster_version")
    op.drop_table("cluster_version")
    op.drop_table("repo_version")
    op.drop_table("clusterhostmapping")
    op.drop_table("hosts")
    op.drop_table("clusterstate")
    op.drop_table("clusters")
    op.drop_table("stack")
