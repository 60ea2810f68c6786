from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

# Gates on different threads may share one audit file.
_WRITE_LOCK = threading.Lock()


class TraceStoreJSONL:
    """
    Append-only audit log, one JSON event per line.

    Notes:
    - values json cannot encode (enums, paths) are written with str().
    - append() reports an unwritable sink by returning False; access decisions
      never depend on the audit log.
    """

    def __init__(self, path: Path):
        self._path = path

    def append(self, event: dict[str, Any]) -> bool:
        line = json.dumps(event, ensure_ascii=False, default=str) + "\n"
        with _WRITE_LOCK:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(line)
            except OSError:
                return False
        return True
