from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Protocol

from .context import CallContext
from .errors import StateViolation
from .types import Permission, RepoState, RepoStateSet, Repository, Session

P = Permission

READ_PERMISSIONS: FrozenSet[Permission] = frozenset(p for p in Permission if p.is_read)

PERMISSIONS_BY_STATE: Dict[RepoState, FrozenSet[Permission]] = {
    RepoState.ACTIVE: frozenset(Permission),
    RepoState.ARCHIVED: READ_PERMISSIONS | {P.REPO_DELETE},
    RepoState.MIGRATE_GIT_PUSH: READ_PERMISSIONS | {P.REPO_PUSH, P.REPO_DELETE},
    RepoState.MIGRATE_DATA_IMPORT: frozenset({P.REPO_VIEW, P.REPO_DELETE}),
}


class RepoStateChecker(Protocol):
    def check_repo_state(
        self,
        ctx: CallContext,
        session: Session,
        repo: Repository,
        permission: Permission,
        allowed_states: RepoStateSet,
    ) -> None:
        ...


class RepoStatePolicy:
    """
    Decides whether a repository's lifecycle state permits a permission.

    Rules, in order:
    - a non-empty `allowed_states` set is a hard filter: the repo state must be a member.
    - an empty set is unrestricted and defers entirely to the per-state table.
    - the per-state table always applies, so an archived repo rejects write-class
      permissions even when the caller lists `archived` as acceptable.

    The session is accepted for interface symmetry; the default table does not
    depend on who is asking.
    """

    def __init__(self, permissions_by_state: Optional[Dict[RepoState, FrozenSet[Permission]]] = None):
        self._table = dict(permissions_by_state if permissions_by_state is not None else PERMISSIONS_BY_STATE)

    def permitted(self, state: RepoState) -> FrozenSet[Permission]:
        return self._table.get(state, frozenset())

    def check_repo_state(
        self,
        ctx: CallContext,
        session: Session,
        repo: Repository,
        permission: Permission,
        allowed_states: RepoStateSet = RepoStateSet.ANY,
    ) -> None:
        _ = (ctx, session)
        data = {
            "repo_path": repo.path,
            "state": repo.state.value,
            "permission": permission.value,
            "allowed_states": allowed_states.values(),
        }
        if not allowed_states.unrestricted and repo.state not in allowed_states:
            raise StateViolation(
                code="repo.state_not_allowed",
                message=f"Operation is not allowed for repository in state {repo.state.value}",
                data=data,
            )
        if permission not in self.permitted(repo.state):
            raise StateViolation(
                code="repo.state_forbids_permission",
                message=f"Permission {permission.value} is not allowed for repository in state {repo.state.value}",
                data=data,
            )
