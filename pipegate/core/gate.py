from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple, Union

from pipegate.authz.authorizer import Authorizer, check_pipeline
from pipegate.registry.repo_registry import RepoFinder
from pipegate.trace.trace_emitter import TraceEmitter
from pipegate.trace.trace_store_jsonl import TraceStoreJSONL

from .context import CallContext
from .errors import (
    AuthorizationFailure,
    CancellationFailure,
    GateError,
    ResolutionFailure,
    StateViolation,
    ValidationError,
)
from .repo_state import RepoStateChecker, RepoStatePolicy
from .types import Permission, RepoStateSet, Repository, Session, StateLike

STEP_RESOLVE = "resolve"
STEP_STATE = "state_check"
STEP_AUTHORIZE = "authorize"

AllowedStates = Union[RepoStateSet, Iterable[StateLike], None]


class PipelineAccessGate:
    """
    Guard that runs before any pipeline-execution operation.

    Sequence (strict, fail-fast, never retried):
    - resolve the repository by reference
    - check the repository state permits the permission
    - check the session holds the permission on the pipeline

    Invariant:
    - a Repository is only returned after both checks passed.

    The gate keeps no per-call state; one instance serves concurrent callers.
    """

    def __init__(
        self,
        repo_finder: RepoFinder,
        authorizer: Authorizer,
        state_checker: Optional[RepoStateChecker] = None,
    ):
        self._repo_finder = repo_finder
        self._authorizer = authorizer
        self._state_checker = state_checker if state_checker is not None else RepoStatePolicy()

    def check_access(
        self,
        ctx: CallContext,
        session: Session,
        repo_ref: str,
        pipeline_identifier: str,
        permission: Union[Permission, str],
        allowed_states: AllowedStates = None,
    ) -> Repository:
        permission, states = _validate_request(session, repo_ref, pipeline_identifier, permission, allowed_states)

        trace = _trace_for(ctx)
        ids: Dict[str, Any] = {"repo_ref": repo_ref, "pipeline": pipeline_identifier, "permission": permission.value}
        if trace.enabled:
            # The session is opaque to the gate unless it is auditing.
            trace.emit(
                "access_requested",
                **ids,
                data={"principal": session.principal.uid, "allowed_states": states.values()},
            )

        try:
            repo = self._resolve(ctx, repo_ref)
            trace.emit("repo_resolved", **ids, step=STEP_RESOLVE, data={"repo_id": repo.id, "state": repo.state.value})

            self._check_state(ctx, session, repo, permission, states)
            trace.emit("state_checked", **ids, step=STEP_STATE)

            self._authorize(ctx, session, repo, pipeline_identifier, permission)
            ctx.raise_if_done(STEP_AUTHORIZE)
        except CancellationFailure as e:
            trace.emit("cancelled", **ids, step=_step_of(e), message=str(e))
            raise
        except GateError as e:
            data: Dict[str, Any] = {"code": e.code}
            if e.__cause__ is not None:
                # Audit only: the caller never sees the underlying cause.
                data["cause"] = str(e.__cause__)
            trace.emit("access_denied", **ids, step=_step_of(e), message=e.message, data=data)
            raise

        trace.emit("access_granted", **ids, data={"repo_id": repo.id, "repo_path": repo.path})
        return repo

    def _resolve(self, ctx: CallContext, repo_ref: str) -> Repository:
        ctx.raise_if_done(STEP_RESOLVE)
        try:
            repo = self._repo_finder.find_by_ref(ctx, repo_ref)
        except CancellationFailure:
            raise
        except Exception as e:  # noqa: BLE001
            ctx.raise_if_done(STEP_RESOLVE)
            raise ResolutionFailure(
                code="repo.not_found",
                message=f"failed to find repo by ref: {repo_ref}",
                data={"step": STEP_RESOLVE, "repo_ref": repo_ref},
            ) from e
        ctx.raise_if_done(STEP_RESOLVE)
        return repo

    def _check_state(
        self,
        ctx: CallContext,
        session: Session,
        repo: Repository,
        permission: Permission,
        states: RepoStateSet,
    ) -> None:
        ctx.raise_if_done(STEP_STATE)
        try:
            self._state_checker.check_repo_state(ctx, session, repo, permission, states)
        except (CancellationFailure, StateViolation):
            raise
        except Exception as e:  # noqa: BLE001
            ctx.raise_if_done(STEP_STATE)
            raise StateViolation(
                code="repo.state_check_failed",
                message=f"failed to check state of repo {repo.path}",
                data={"step": STEP_STATE, "repo_path": repo.path},
            ) from e
        ctx.raise_if_done(STEP_STATE)

    def _authorize(
        self,
        ctx: CallContext,
        session: Session,
        repo: Repository,
        pipeline_identifier: str,
        permission: Permission,
    ) -> None:
        ctx.raise_if_done(STEP_AUTHORIZE)
        try:
            check_pipeline(ctx, self._authorizer, session, repo.path, pipeline_identifier, permission)
        except CancellationFailure:
            raise
        except Exception as e:  # noqa: BLE001
            ctx.raise_if_done(STEP_AUTHORIZE)
            # Forbidden and not-found surface identically.
            raise AuthorizationFailure(
                code="access.denied",
                message="failed to authorize",
                data={"step": STEP_AUTHORIZE},
            ) from e


def _validate_request(
    session: Session,
    repo_ref: str,
    pipeline_identifier: str,
    permission: Union[Permission, str],
    allowed_states: AllowedStates,
) -> Tuple[Permission, RepoStateSet]:
    if session is None:
        raise ValidationError(code="access.invalid_request", message="session is required")
    if not isinstance(repo_ref, str) or not repo_ref.strip():
        raise ValidationError(code="access.invalid_request", message="repo_ref must be a non-empty string")
    if not isinstance(pipeline_identifier, str) or not pipeline_identifier.strip():
        raise ValidationError(code="access.invalid_request", message="pipeline_identifier must be a non-empty string")
    try:
        perm = Permission(permission)
    except ValueError as e:
        raise ValidationError(
            code="access.invalid_request",
            message=f"Unknown permission: {permission}",
            data={"permission": str(permission)},
        ) from e
    try:
        states = RepoStateSet.coerce(allowed_states)
    except ValueError as e:
        raise ValidationError(code="access.invalid_request", message=f"Unknown repository state: {e}") from e
    return perm, states


def _trace_for(ctx: CallContext) -> TraceEmitter:
    store = TraceStoreJSONL(ctx.trace_path) if ctx.trace_path is not None else None
    return TraceEmitter(store=store, run_id=ctx.run_id)


def _step_of(e: GateError) -> Optional[str]:
    if isinstance(e.data, dict):
        step = e.data.get("step")
        if isinstance(step, str):
            return step
    if isinstance(e, StateViolation):
        return STEP_STATE
    return None
