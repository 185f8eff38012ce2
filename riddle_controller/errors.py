"""Exception types raised across the controller."""
from __future__ import annotations

from typing import Optional


class RiddleControllerError(RuntimeError):
    """Base class for recoverable controller failures."""


class TransportFailure(RiddleControllerError):
    """A backend fetch or submit did not produce a usable response."""

    def __init__(self, operation: str, detail: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.status_code = status_code


class CaptureUnavailable(RiddleControllerError):
    """The capture source could not produce a snapshot."""


class StaleVerdict(RiddleControllerError):
    """A verdict arrived for a position the session has already left."""


class InvalidActionError(RiddleControllerError):
    """Raised when a player action is not allowed in the current phase."""

    def __init__(self, action: str, reason: str) -> None:
        super().__init__(f"{action} not allowed: {reason}")
        self.action = action
        self.reason = reason


__all__ = [
    "RiddleControllerError",
    "TransportFailure",
    "CaptureUnavailable",
    "StaleVerdict",
    "InvalidActionError",
]
