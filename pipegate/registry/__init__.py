from .repo_registry import RepoFinder, RepoRegistry, load_repo_registry

__all__ = ["RepoFinder", "RepoRegistry", "load_repo_registry"]
