from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .errors import CancellationFailure

CANCELED = "context.canceled"
DEADLINE_EXCEEDED = "context.deadline_exceeded"


@dataclass(frozen=True)
class CallContext:
    """
    Per-call execution context: cancellation flag, optional deadline, trace target.

    Hard rules:
    - `deadline` is a time.monotonic() timestamp.
    - once done, a context never becomes live again.
    """

    run_id: str = "run_default"
    deadline: Optional[float] = None
    trace_path: Optional[Path] = None
    cancel_event: threading.Event = field(default_factory=threading.Event, repr=False, compare=False)

    @classmethod
    def with_timeout(cls, seconds: float, **kwargs: Any) -> "CallContext":
        return cls(deadline=time.monotonic() + seconds, **kwargs)

    def cancel(self) -> None:
        self.cancel_event.set()

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def err(self) -> Optional[str]:
        if self.cancel_event.is_set():
            return CANCELED
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DEADLINE_EXCEEDED
        return None

    def done(self) -> bool:
        return self.err() is not None

    def raise_if_done(self, step: str) -> None:
        code = self.err()
        if code is None:
            return
        msg = "context canceled" if code == CANCELED else "context deadline exceeded"
        raise CancellationFailure(code=code, message=f"{msg} during {step}", data={"step": step})
