from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from pipegate.contract_store import ContractStore, default_store
from pipegate.core import paths
from pipegate.core.context import CallContext
from pipegate.core.errors import NotFoundError
from pipegate.core.types import Permission, Resource, ResourceType, Scope, Session

PipelineCatalog = Callable[[str], Optional[Tuple[str, ...]]]


@dataclass(frozen=True)
class Grant:
    principal: str
    scope: str
    permissions: FrozenSet[Permission]
    pipelines: Tuple[str, ...] = ("*",)

    def covers(self, principal_uid: str, repo_path: str, pipeline: str, permission: Permission) -> bool:
        if self.principal != "*" and self.principal != principal_uid:
            return False
        if permission not in self.permissions:
            return False
        if not paths.is_same_or_ancestor(self.scope, repo_path):
            return False
        return any(fnmatch.fnmatchcase(pipeline, pat) for pat in self.pipelines)


class GrantAuthorizer:
    """
    Static grant table authorizer.

    Notes:
    - a grant scoped to a space path covers every repository beneath it.
    - admin principals (session flag or `admins:` list) are always authorized.
    - with a pipeline catalogue, unknown pipelines raise NotFoundError before
      any grant is consulted.
    """

    def __init__(
        self,
        grants: Optional[List[Grant]] = None,
        *,
        admins: Optional[List[str]] = None,
        pipeline_catalog: Optional[PipelineCatalog] = None,
    ):
        self._grants: List[Grant] = list(grants or [])
        self._admins = frozenset(admins or [])
        self._pipeline_catalog = pipeline_catalog

    def check(
        self,
        ctx: CallContext,
        session: Session,
        scope: Scope,
        resource: Resource,
        permission: Permission,
    ) -> bool:
        ctx.raise_if_done("authorize")
        repo_path = "/".join(p for p in (scope.space_path, scope.repo) if p)

        if resource.type == ResourceType.PIPELINE and self._pipeline_catalog is not None:
            known = self._pipeline_catalog(repo_path)
            if known is not None and resource.identifier not in known:
                raise NotFoundError(
                    code="pipeline.not_found",
                    message=f"Pipeline not found: {repo_path}/{resource.identifier}",
                    data={"repo_path": repo_path, "pipeline": resource.identifier},
                )

        principal = session.principal
        if principal.admin or principal.uid in self._admins:
            return True

        return any(g.covers(principal.uid, repo_path, resource.identifier, permission) for g in self._grants)


def grants_from_dict(doc: Dict[str, Any]) -> Tuple[List[Grant], List[str]]:
    grants: List[Grant] = []
    for item in doc.get("grants", []):
        grants.append(
            Grant(
                principal=item["principal"],
                scope=paths.normalize(item["scope"]),
                permissions=frozenset(Permission(p) for p in item["permissions"]),
                pipelines=tuple(item.get("pipelines", ["*"])),
            )
        )
    return grants, list(doc.get("admins", []))


def load_grant_authorizer(
    path: Path,
    *,
    pipeline_catalog: Optional[PipelineCatalog] = None,
    store: Optional[ContractStore] = None,
) -> GrantAuthorizer:
    doc = (store or default_store()).load_document("grants.schema.json", path)
    grants, admins = grants_from_dict(doc)
    return GrantAuthorizer(grants, admins=admins, pipeline_catalog=pipeline_catalog)
