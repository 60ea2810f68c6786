from __future__ import annotations

from typing import Protocol

from pipegate.core.context import CallContext
from pipegate.core.errors import ForbiddenError, ValidationError
from pipegate.core.paths import disect_leaf
from pipegate.core.types import Permission, Resource, ResourceType, Scope, Session


class Authorizer(Protocol):
    def check(
        self,
        ctx: CallContext,
        session: Session,
        scope: Scope,
        resource: Resource,
        permission: Permission,
    ) -> bool:
        ...


def check(
    ctx: CallContext,
    authorizer: Authorizer,
    session: Session,
    scope: Scope,
    resource: Resource,
    permission: Permission,
) -> None:
    """
    Ask the authorizer and turn a negative answer into ForbiddenError.
    Errors raised by the authorizer propagate unchanged.
    """
    if not authorizer.check(ctx, session, scope, resource, permission):
        raise ForbiddenError(
            code="authz.forbidden",
            message="Forbidden",
            data={"principal": session.principal.uid, "permission": permission.value},
        )


def check_pipeline(
    ctx: CallContext,
    authorizer: Authorizer,
    session: Session,
    repo_path: str,
    pipeline_identifier: str,
    permission: Permission,
) -> None:
    try:
        space_path, repo_identifier = disect_leaf(repo_path)
    except ValidationError as e:
        raise ValidationError(
            code="path.invalid",
            message=f"failed to disect path '{repo_path}'",
            data={"path": repo_path},
        ) from e

    scope = Scope(space_path=space_path, repo=repo_identifier)
    resource = Resource(type=ResourceType.PIPELINE, identifier=pipeline_identifier)
    check(ctx, authorizer, session, scope, resource, permission)
