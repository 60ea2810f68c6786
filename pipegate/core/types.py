from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, FrozenSet, Iterable, Iterator, Union


class ResourceType(str, Enum):
    REPO = "repo"
    PIPELINE = "pipeline"


class Permission(str, Enum):
    """Operation kinds requested against a repository or one of its pipelines."""

    REPO_VIEW = "repo_view"
    REPO_EDIT = "repo_edit"
    REPO_PUSH = "repo_push"
    REPO_DELETE = "repo_delete"
    REPO_REPORT_COMMIT_CHECK = "repo_reportCommitCheck"
    PIPELINE_VIEW = "pipeline_view"
    PIPELINE_EDIT = "pipeline_edit"
    PIPELINE_DELETE = "pipeline_delete"
    PIPELINE_EXECUTE = "pipeline_execute"

    @property
    def is_read(self) -> bool:
        return self.value.endswith("_view")


class RepoState(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    MIGRATE_GIT_PUSH = "migrate_git_push"
    MIGRATE_DATA_IMPORT = "migrate_data_import"


StateLike = Union[RepoState, str]


@dataclass(frozen=True)
class RepoStateSet:
    """
    Finite set of repository states a caller accepts for one operation.

    The empty set is "unrestricted": only the default state policy applies.
    """

    states: FrozenSet[RepoState] = frozenset()

    ANY: ClassVar["RepoStateSet"]

    def __post_init__(self) -> None:
        # Unknown values raise ValueError.
        object.__setattr__(self, "states", frozenset(RepoState(s) for s in self.states))

    @classmethod
    def of(cls, *states: StateLike) -> "RepoStateSet":
        return cls(states=frozenset(states))

    @classmethod
    def coerce(cls, value: "RepoStateSet | Iterable[StateLike] | None") -> "RepoStateSet":
        if value is None:
            return cls()
        if isinstance(value, RepoStateSet):
            return value
        if isinstance(value, (str, RepoState)):
            return cls.of(value)
        return cls.of(*value)

    @property
    def unrestricted(self) -> bool:
        return not self.states

    def __contains__(self, state: object) -> bool:
        return state in self.states

    def __iter__(self) -> Iterator[RepoState]:
        return iter(sorted(self.states, key=lambda s: s.value))

    def __len__(self) -> int:
        return len(self.states)

    def values(self) -> list[str]:
        return [s.value for s in self]


RepoStateSet.ANY = RepoStateSet()


@dataclass(frozen=True)
class Principal:
    id: int
    uid: str
    type: str = "user"  # user|service
    admin: bool = False


@dataclass(frozen=True)
class Session:
    principal: Principal
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Repository:
    id: int
    path: str
    state: RepoState = RepoState.ACTIVE
    default_branch: str = "main"
    is_public: bool = False

    @property
    def identifier(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "identifier": self.identifier,
            "state": self.state.value,
            "default_branch": self.default_branch,
            "is_public": self.is_public,
        }


@dataclass(frozen=True)
class Scope:
    space_path: str
    repo: str = ""


@dataclass(frozen=True)
class Resource:
    type: ResourceType
    identifier: str = ""
