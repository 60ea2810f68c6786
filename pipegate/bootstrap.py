from __future__ import annotations

from typing import Optional

from pipegate.authz.grants import load_grant_authorizer
from pipegate.contract_store import ContractStore
from pipegate.core.gate import PipelineAccessGate
from pipegate.core.repo_state import RepoStatePolicy
from pipegate.registry.repo_registry import load_repo_registry
from pipegate.settings import GateSettings


def build_gate(settings: GateSettings, store: Optional[ContractStore] = None) -> PipelineAccessGate:
    """
    Wire the file-backed collaborators named by `settings` into a gate.
    The authorizer knows each repository's declared pipelines.
    """
    repos = load_repo_registry(settings.repos_path, store)
    authorizer = load_grant_authorizer(settings.grants_path, pipeline_catalog=repos.pipelines_of, store=store)
    return PipelineAccessGate(repo_finder=repos, authorizer=authorizer, state_checker=RepoStatePolicy())
