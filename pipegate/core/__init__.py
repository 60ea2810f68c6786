from .context import CallContext
from .errors import (
    AuthorizationFailure,
    CancellationFailure,
    ForbiddenError,
    GateError,
    NotFoundError,
    ResolutionFailure,
    StateViolation,
    ValidationError,
)
from .repo_state import PERMISSIONS_BY_STATE, RepoStateChecker, RepoStatePolicy
from .types import Permission, Principal, RepoState, RepoStateSet, Repository, Resource, ResourceType, Scope, Session

__all__ = [
  "CallContext",
  "GateError",
  "ValidationError",
  "NotFoundError",
  "ForbiddenError",
  "ResolutionFailure",
  "StateViolation",
  "AuthorizationFailure",
  "CancellationFailure",
  "PERMISSIONS_BY_STATE",
  "RepoStateChecker",
  "RepoStatePolicy",
  "Permission",
  "Principal",
  "RepoState",
  "RepoStateSet",
  "Repository",
  "Resource",
  "ResourceType",
  "Scope",
  "Session",
]
