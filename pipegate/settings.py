from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from pipegate.contract_store import ContractStore, default_store
from pipegate.core.errors import ValidationError


@dataclass(frozen=True)
class GateSettings:
    repos_path: Path = Path("repos.yml")
    grants_path: Path = Path("grants.yml")
    trace_path: Optional[Path] = None
    timeout_seconds: Optional[float] = None


def default_settings_path(env: Optional[Mapping[str, str]] = None) -> Path:
    """
    Default settings location.

    - PIPEGATE_CONFIG wins when set.
    - Else $XDG_CONFIG_HOME/pipegate/config.yml
    - Else ~/.config/pipegate/config.yml
    """
    env = os.environ if env is None else env
    explicit = env.get("PIPEGATE_CONFIG")
    if isinstance(explicit, str) and explicit.strip():
        return Path(explicit).expanduser()
    base = env.get("XDG_CONFIG_HOME")
    if isinstance(base, str) and base.strip():
        return Path(base).expanduser() / "pipegate" / "config.yml"
    return Path("~/.config").expanduser() / "pipegate" / "config.yml"


def _resolve(base_dir: Path, value: str) -> Path:
    p = Path(os.path.expandvars(os.path.expanduser(value)))
    return p if p.is_absolute() else base_dir / p


def _parse_timeout(raw: str) -> float:
    try:
        v = float(raw)
    except ValueError as e:
        raise ValidationError(code="config.invalid", message=f"PIPEGATE_TIMEOUT must be a number: {raw}") from e
    if v <= 0:
        raise ValidationError(code="config.invalid", message="PIPEGATE_TIMEOUT must be positive")
    return v


def load_settings(
    path: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    store: Optional[ContractStore] = None,
) -> GateSettings:
    """
    Load settings from YAML, then apply PIPEGATE_* environment overrides.

    An explicit `path` must exist; a missing default file yields defaults.
    Relative paths inside the file resolve against the file's directory.
    """
    env = os.environ if env is None else env
    settings = GateSettings()

    cfg_path = path if path is not None else default_settings_path(env)
    if path is not None or cfg_path.exists():
        doc = (store or default_store()).load_document("settings.schema.json", cfg_path)
        base_dir = cfg_path.resolve().parent
        if "repos_path" in doc:
            settings = replace(settings, repos_path=_resolve(base_dir, doc["repos_path"]))
        if "grants_path" in doc:
            settings = replace(settings, grants_path=_resolve(base_dir, doc["grants_path"]))
        if doc.get("trace_path"):
            settings = replace(settings, trace_path=_resolve(base_dir, doc["trace_path"]))
        if doc.get("timeout_seconds") is not None:
            settings = replace(settings, timeout_seconds=float(doc["timeout_seconds"]))

    if env.get("PIPEGATE_REPOS"):
        settings = replace(settings, repos_path=Path(env["PIPEGATE_REPOS"]).expanduser())
    if env.get("PIPEGATE_GRANTS"):
        settings = replace(settings, grants_path=Path(env["PIPEGATE_GRANTS"]).expanduser())
    if env.get("PIPEGATE_TRACE"):
        settings = replace(settings, trace_path=Path(env["PIPEGATE_TRACE"]).expanduser())
    if env.get("PIPEGATE_TIMEOUT"):
        settings = replace(settings, timeout_seconds=_parse_timeout(env["PIPEGATE_TIMEOUT"]))
    return settings
