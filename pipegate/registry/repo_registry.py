from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from pipegate.contract_store import ContractStore, default_store
from pipegate.core import paths
from pipegate.core.context import CallContext
from pipegate.core.errors import NotFoundError, ValidationError
from pipegate.core.types import RepoState, Repository


class RepoFinder(Protocol):
    def find_by_ref(self, ctx: CallContext, ref: str) -> Repository:
        ...


class RepoRegistry:
    """
    In-memory repository catalogue.

    - resolves a ref that is either a numeric id ("42") or a path ("org/repo1")
    - paths compare case-insensitively with surrounding slashes ignored
    - tracks the pipelines declared for each repository
    """

    def __init__(self) -> None:
        self._by_id: Dict[int, Repository] = {}
        self._by_path: Dict[str, Repository] = {}
        self._pipelines: Dict[int, Tuple[str, ...]] = {}

    def add(self, repo: Repository, pipelines: Iterable[str] = ()) -> None:
        key = paths.normalize(repo.path)
        if not key:
            raise ValidationError(code="repo.invalid", message="Repository path must be non-empty")
        if repo.id in self._by_id:
            raise ValidationError(code="repo.duplicate", message=f"Duplicate repository id: {repo.id}")
        if key in self._by_path:
            raise ValidationError(code="repo.duplicate", message=f"Duplicate repository path: {repo.path}")
        self._by_id[repo.id] = repo
        self._by_path[key] = repo
        self._pipelines[repo.id] = tuple(pipelines)

    def load_file(self, path: Path, store: Optional[ContractStore] = None) -> None:
        doc = (store or default_store()).load_document("repos.schema.json", path)
        self.load_dict(doc)

    def load_dict(self, doc: Dict[str, Any]) -> None:
        for item in doc.get("repos", []):
            repo = Repository(
                id=int(item["id"]),
                path=paths.normalize(item["path"]),
                state=RepoState(item.get("state", RepoState.ACTIVE.value)),
                default_branch=item.get("default_branch", "main"),
                is_public=bool(item.get("is_public", False)),
            )
            self.add(repo, item.get("pipelines", []))

    def list_repos(self) -> List[Repository]:
        return [self._by_path[k] for k in sorted(self._by_path.keys())]

    def pipelines_of(self, repo_path: str) -> Optional[Tuple[str, ...]]:
        repo = self._by_path.get(paths.normalize(repo_path))
        if repo is None:
            return None
        return self._pipelines.get(repo.id, ())

    def find_by_ref(self, ctx: CallContext, ref: str) -> Repository:
        ctx.raise_if_done("resolve")
        ref = ref.strip() if isinstance(ref, str) else ""
        if ref.isdigit():
            repo = self._by_id.get(int(ref))
        else:
            repo = self._by_path.get(paths.normalize(ref))
        if repo is None:
            raise NotFoundError(code="repo.not_found", message=f"Repository not found: {ref}", data={"ref": ref})
        return repo


def load_repo_registry(path: Path, store: Optional[ContractStore] = None) -> RepoRegistry:
    reg = RepoRegistry()
    reg.load_file(path, store)
    return reg
