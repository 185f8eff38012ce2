"""Shared controller state definitions for the riddle game."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .models import CaptureArtifact


class SessionPhase(str, enum.Enum):
    """
    Session phases in chronological order:

    1. IDLE                - No session (never started, quit, or discarded)
    2. AWAITING_QUESTIONS  - Question list requested, not yet arrived
    3. READY               - Prompt shown for (question, step); capture allowed
    4. CAPTURING           - Countdown armed / snapshot being taken
    5. JUDGING             - Capture submitted, waiting for the verdict
    6. CONFIRMING          - Final step solved, success confirmation open
    7. FINISHED            - All questions recorded; summary available
    """
    IDLE = "idle"
    AWAITING_QUESTIONS = "awaiting_questions"
    READY = "ready"
    CAPTURING = "capturing"
    JUDGING = "judging"
    CONFIRMING = "confirming"
    FINISHED = "finished"


class Severity(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """Toast shown to the player."""

    title: str
    description: str
    severity: Severity = Severity.INFO

    def as_dict(self) -> Dict[str, str]:
        return {"title": self.title, "description": self.description, "severity": self.severity.value}


GENERIC_FAILURE = Notification("문제가 발생했어요.", "다시 시도해주세요.", Severity.ERROR)
WRONG_ANSWER = Notification("틀렸습니다!", "정답과 일치하지 않습니다. 다시 시도해 보세요.", Severity.ERROR)
CAMERA_UNAVAILABLE = Notification("카메라를 사용할 수 없어요.", "다시 시도해주세요.", Severity.ERROR)


@dataclass
class SessionState:
    """Mutable playthrough state, owned by the progression state machine."""

    difficulty: str
    current_question_index: int = 0
    current_step_index: int = 1
    corrected_answer_count: int = 0
    skip_count: int = 0
    per_question_outcome: List[bool] = field(default_factory=list)
    verdict: Optional[bool] = None
    artifact: Optional[CaptureArtifact] = None
    # correlates a verdict with the capture that produced it
    attempt: int = 0

    def clear_capture(self) -> None:
        self.artifact = None
        self.verdict = None


@dataclass
class ControllerEvent:
    """Event payload distributed to UI clients over the local WebSocket."""

    type: str
    data: Dict[str, Any]
    phase: SessionPhase
    error: Optional[str] = None


__all__ = [
    "SessionPhase",
    "Severity",
    "Notification",
    "SessionState",
    "ControllerEvent",
    "GENERIC_FAILURE",
    "WRONG_ANSWER",
    "CAMERA_UNAVAILABLE",
]
