from __future__ import annotations

from typing import Tuple

from .errors import ValidationError

SEPARATOR = "/"


def normalize(path: str) -> str:
    # Deterministic normalization: trim separators, lower-case, collapse empty segments.
    segments = [s for s in path.strip().strip(SEPARATOR).split(SEPARATOR) if s]
    return SEPARATOR.join(segments).lower()


def disect_leaf(path: str) -> Tuple[str, str]:
    """
    Split a repository path into (parent space path, leaf identifier).

    Example:
      disect_leaf("org/team/repo1") -> ("org/team", "repo1")
    """
    p = normalize(path)
    if not p:
        raise ValidationError(code="path.invalid", message="path must be non-empty", data={"path": path})
    if SEPARATOR not in p:
        return "", p
    parent, leaf = p.rsplit(SEPARATOR, 1)
    return parent, leaf


def is_same_or_ancestor(ancestor: str, path: str) -> bool:
    a = normalize(ancestor)
    p = normalize(path)
    if not a:
        return False
    return p == a or p.startswith(a + SEPARATOR)
