from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class GateError(Exception):
    code: str
    message: str
    data: dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(GateError):
    pass


class NotFoundError(GateError):
    pass


class ForbiddenError(GateError):
    pass


class ResolutionFailure(GateError):
    pass


class StateViolation(GateError):
    pass


class AuthorizationFailure(GateError):
    pass


class CancellationFailure(GateError):
    pass
