from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path

from metastore.domain.types import StackId
from metastore.errors import UnknownStackError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StackRepository:
    os_type: str
    repo_id: str
    repo_name: str
    base_url: str


def _hdp21_repositories() -> list[StackRepository]:
    repos: list[StackRepository] = []
    for os_type, family in (("redhat5", "centos5"), ("redhat6", "centos6"), ("suse11", "suse11"), ("ubuntu12", "ubuntu12")):
        repos.append(
            StackRepository(
                os_type=os_type,
                repo_id="HDP-2.1",
                repo_name="HDP",
                base_url=f"http://public-repo-1.hortonworks.com/HDP/{family}/2.x/updates/2.1.7.0",
            )
        )
        repos.append(
            StackRepository(
                os_type=os_type,
                repo_id="HDP-UTILS-1.1.0.17",
                repo_name="HDP-UTILS",
                base_url=f"http://public-repo-1.hortonworks.com/HDP-UTILS-1.1.0.17/repos/{family}",
            )
        )
    return repos


DEFAULT_STACK_DEFINITIONS: dict[tuple[str, str], list[StackRepository]] = {
    ("hdp", "2.1"): _hdp21_repositories(),
}


class StackMetainfo:
    """Declared package repositories, keyed by stack name and version."""

    def __init__(self, definitions: dict[tuple[str, str], list[StackRepository]] | None = None) -> None:
        source = DEFAULT_STACK_DEFINITIONS if definitions is None else definitions
        self._definitions = {(name.lower(), version.lower()): list(repos) for (name, version), repos in source.items()}

    @classmethod
    def from_file(cls, path: str | Path) -> StackMetainfo:
        # {"HDP": {"2.1": [{"os_type": ..., "repo_id": ..., "repo_name": ..., "base_url": ...}]}}
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        definitions = dict(DEFAULT_STACK_DEFINITIONS)
        for stack_name, versions in payload.items():
            for stack_version, repos in versions.items():
                definitions[(stack_name.lower(), stack_version.lower())] = [StackRepository(**repo) for repo in repos]
        logger.info("Loaded stack definitions from %s", path)
        return cls(definitions)

    def repositories_for(self, stack_id: StackId) -> list[StackRepository]:
        key = (stack_id.stack_name.lower(), stack_id.stack_version.lower())
        if key not in self._definitions:
            raise UnknownStackError(f"Stack {stack_id} is not declared")
        return list(self._definitions[key])


def serialize_operating_systems(repositories: list[StackRepository]) -> str:
    by_os: dict[str, list[StackRepository]] = defaultdict(list)
    for repo in repositories:
        by_os[repo.os_type].append(repo)

    payload = [
        {
            "OperatingSystems/os_type": os_type,
            "repositories": [
                {
                    "Repositories/base_url": repo.base_url,
                    "Repositories/repo_id": repo.repo_id,
                    "Repositories/repo_name": repo.repo_name,
                }
                for repo in sorted(by_os[os_type], key=lambda r: r.repo_id)
            ],
        }
        for os_type in sorted(by_os)
    ]
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))
