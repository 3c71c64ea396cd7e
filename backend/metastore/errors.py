from __future__ import annotations


class UpgradeCatalogError(Exception):
    """A catalog step could not complete; the store must be fixed before retrying."""

    def __init__(self, message: str, unresolved_ids: list[int] | None = None) -> None:
        self.unresolved_ids = sorted(unresolved_ids or [])
        if self.unresolved_ids:
            message = f"{message} Unresolved upgrade_id values: {', '.join(str(i) for i in self.unresolved_ids)}"
        super().__init__(message)


class ResolutionError(Exception):
    """A single row's derived values could not be computed.

    ``resolved`` holds the fields that were computed before the failure; they
    are still written even though the row counts as failed.
    """

    def __init__(self, message: str, resolved: dict[str, str] | None = None) -> None:
        self.resolved = dict(resolved or {})
        super().__init__(message)


class SequenceMissingError(Exception):
    pass


class UnknownStackError(Exception):
    pass
