from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StackId:
    stack_name: str
    stack_version: str

    def __post_init__(self) -> None:
        if not self.stack_name.strip():
            raise ValueError("stack_name must not be empty")
        if not self.stack_version.strip():
            raise ValueError("stack_version must not be empty")

    def matches(self, stack_name: str, stack_version: str) -> bool:
        return (
            self.stack_name.lower() == stack_name.strip().lower()
            and self.stack_version.lower() == stack_version.strip().lower()
        )

    def __str__(self) -> str:
        return f"{self.stack_name}-{self.stack_version}"


@dataclass(frozen=True, slots=True)
class UpgradeRow:
    upgrade_id: int
    cluster_id: int
    from_version: str | None
    to_version: str | None
    direction: str | None
    upgrade_package: str | None
    upgrade_type: str | None
