from enum import StrEnum


class Direction(StrEnum):
    UPGRADE = "UPGRADE"
    DOWNGRADE = "DOWNGRADE"


class UpgradeType(StrEnum):
    ROLLING = "rolling"
    NON_ROLLING = "nonrolling"


class RepositoryVersionState(StrEnum):
    INIT = "INIT"
    INSTALLING = "INSTALLING"
    INSTALLED = "INSTALLED"
    INSTALL_FAILED = "INSTALL_FAILED"
    OUT_OF_SYNC = "OUT_OF_SYNC"
    CURRENT = "CURRENT"
    UPGRADING = "UPGRADING"
    UPGRADED = "UPGRADED"
    UPGRADE_FAILED = "UPGRADE_FAILED"
