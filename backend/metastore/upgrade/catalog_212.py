from __future__ import annotations

import logging

from sqlalchemy import String

from metastore.domain.types import StackId
from metastore.errors import UpgradeCatalogError
from metastore.services.backfill import UPGRADE_PACKAGE_COL, UPGRADE_TYPE_COL, populate_upgrade_table
from metastore.services.bootstrap import BootstrapSummary, HierarchicalBootstrapper
from metastore.upgrade.catalog import UpgradeCatalog

logger = logging.getLogger(__name__)

UPGRADE_TABLE = "upgrade"
REPO_VERSION_TABLE = "repo_version"


class UpgradeCatalog212(UpgradeCatalog):
    source_version = "2.1.1"
    target_version = "2.1.2"

    def run_schema_updates(self) -> None:
        pass

    def run_pre_data_updates(self) -> None:
        pass

    def run_data_updates(self) -> None:
        # Moving upgrade_package mixes DDL with DML, so it runs before the bootstrap.
        self.execute_stack_upgrade_ddl_updates()
        self.bootstrap_repo_version_for_baseline()

    def execute_stack_upgrade_ddl_updates(self) -> None:
        """Relocate ``upgrade_package`` from ``repo_version`` onto ``upgrade``.

        Adds ``upgrade_package``/``upgrade_type`` as nullable columns, fills
        them for every existing upgrade record, drops the legacy column and
        finally makes both new columns NOT NULL. Each part commits on its own;
        the backfill keeps resolved rows even when others fail, and the step
        then aborts listing every unresolved record.
        """
        with self.transaction() as session:
            evolver = self.column_evolver(session)
            evolver.ensure_column(UPGRADE_TABLE, UPGRADE_PACKAGE_COL, String, 255, None, True)
            evolver.ensure_column(UPGRADE_TABLE, UPGRADE_TYPE_COL, String, 32, None, True)

        with self.transaction() as session:
            result = populate_upgrade_table(session, self.context.settings.default_upgrade_type)

        if not result.success:
            raise UpgradeCatalogError(
                "Errors found while populating the upgrade table with values for columns "
                "upgrade_type and upgrade_package.",
                list(result.failed),
            )

        with self.transaction() as session:
            evolver = self.column_evolver(session)
            evolver.drop_column_if_present(REPO_VERSION_TABLE, UPGRADE_PACKAGE_COL)
            evolver.tighten_to_not_null(UPGRADE_TABLE, UPGRADE_PACKAGE_COL, String, 255)
            evolver.tighten_to_not_null(UPGRADE_TABLE, UPGRADE_TYPE_COL, String, 32)

    def bootstrap_repo_version_for_baseline(self) -> BootstrapSummary:
        settings = self.context.settings
        with self.transaction() as session:
            summary = HierarchicalBootstrapper(
                session,
                self.context.stacks,
                StackId(settings.baseline_stack_name, settings.baseline_stack_version),
                settings.baseline_repo_version,
                settings.acting_user,
            ).run()
        logger.info(
            "Bootstrapped %d of %d clusters: %d cluster versions and %d host versions created",
            len(summary.clusters_bootstrapped),
            summary.clusters_seen,
            summary.cluster_versions_created,
            summary.host_versions_created,
        )
        return summary
