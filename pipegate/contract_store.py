from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
import yaml

from pipegate.core.errors import ValidationError
from pipegate.resources import contracts_dir


@dataclass(frozen=True)
class SchemaRef:
    name: str
    path: Path
    schema: Dict[str, Any]


class ContractStore:
    """
    Loads `pipegate/contracts/*.schema.json` and provides validation helpers.

    Notes:
    - Schemas are self-contained; `$ref` only points into their own `$defs`.
    """

    def __init__(self, schemas_dir: Optional[Path] = None):
        self._schemas_dir = schemas_dir if schemas_dir is not None else contracts_dir()
        self._schemas: Dict[str, SchemaRef] = {}

    @property
    def schemas_dir(self) -> Path:
        return self._schemas_dir

    def load(self) -> "ContractStore":
        if not self._schemas_dir.exists():
            raise FileNotFoundError(str(self._schemas_dir))

        for p in sorted(self._schemas_dir.glob("*.schema.json")):
            schema = json.loads(p.read_text(encoding="utf-8"))
            self._schemas[p.name] = SchemaRef(name=p.name, path=p, schema=schema)
        return self

    def list_schema_names(self) -> List[str]:
        return sorted(self._schemas.keys())

    def _get(self, schema_name: str) -> SchemaRef:
        ref = self._schemas.get(schema_name)
        if ref is None:
            raise KeyError(schema_name)
        return ref

    def check_schemas(self) -> List[Tuple[str, str]]:
        """
        Returns a list of (schema_name, error_message) for invalid schemas.
        """
        errors: List[Tuple[str, str]] = []
        for name in self.list_schema_names():
            try:
                jsonschema.Draft202012Validator.check_schema(self._get(name).schema)
            except jsonschema.SchemaError as e:
                errors.append((name, e.message))
        return errors

    def validate(self, schema_name: str, instance: Any) -> List[str]:
        """
        Validates an instance and returns a list of error strings (empty means valid).
        """
        validator = jsonschema.Draft202012Validator(self._get(schema_name).schema)
        out: List[str] = []
        for e in sorted(validator.iter_errors(instance), key=str):
            where = "/".join(str(x) for x in e.absolute_path)
            out.append(f"{where}: {e.message}" if where else e.message)
        return out

    def load_document(self, schema_name: str, path: Path) -> Dict[str, Any]:
        """
        Read a YAML (or JSON) document and validate it, raising ValidationError on failure.
        """
        if not path.exists():
            raise ValidationError(code="config.missing", message=f"File not found: {path}", data={"path": str(path)})
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValidationError(
                code="config.invalid",
                message=f"Invalid YAML: {path}",
                data={"path": str(path), "error": str(e)},
            ) from e
        if raw is None:
            raw = {}
        errors = self.validate(schema_name, raw)
        if errors:
            raise ValidationError(
                code="config.invalid",
                message=f"{path} does not validate against {schema_name}",
                data={"path": str(path), "errors": errors},
            )
        return raw


_DEFAULT_STORE: Optional[ContractStore] = None


def default_store() -> ContractStore:
    global _DEFAULT_STORE
    if _DEFAULT_STORE is None:
        _DEFAULT_STORE = ContractStore().load()
    return _DEFAULT_STORE
