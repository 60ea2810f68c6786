from __future__ import annotations

import json
from collections import deque
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


class Replay:
    """
    Reads an access audit log back, optionally narrowed to one run or event type.

    A missing file reads as an empty log.
    """

    def __init__(self, path: Path):
        self._path = path

    def iter_events(self, *, run_id: Optional[str] = None, event_type: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                event = json.loads(line)
                if run_id is not None and event.get("run_id") != run_id:
                    continue
                if event_type is not None and event.get("event_type") != event_type:
                    continue
                yield event

    def tail(self, n: int, *, run_id: Optional[str] = None, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        if n <= 0:
            return []
        return list(deque(self.iter_events(run_id=run_id, event_type=event_type), maxlen=n))
