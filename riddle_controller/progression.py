"""Question/step progression for one riddle session.

This module is deliberately free of I/O: it owns the ``SessionState`` of a
playthrough and decides, for every verdict, skip or confirmation, whether the
player retries the current step, moves to the next step, moves to the next
question, or finishes. The async session manager performs the side effects
(prompt fetches, notifications, celebration) that each returned ``Transition``
calls for.
"""
from __future__ import annotations

import enum
import logging
from typing import List, Optional, Sequence

from .errors import InvalidActionError, StaleVerdict
from .models import CaptureArtifact, Riddle, VerdictMessage
from .state import SessionPhase, SessionState
from .summary import SessionSummary

logger = logging.getLogger(__name__)


class Transition(str, enum.Enum):
    """What a progression step did, so the caller knows which effects to run."""

    IGNORED = "ignored"
    RETRY = "retry"
    STEP_ADVANCED = "step_advanced"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    QUESTION_ADVANCED = "question_advanced"
    FINISHED = "finished"


_QUESTION_PHASES = {
    SessionPhase.READY,
    SessionPhase.CAPTURING,
    SessionPhase.JUDGING,
    SessionPhase.CONFIRMING,
}


class ProgressionStateMachine:
    """Drives question sequencing and step progression for one session."""

    def __init__(self) -> None:
        self.phase: SessionPhase = SessionPhase.IDLE
        self.state: Optional[SessionState] = None
        self.questions: List[Riddle] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self.phase in _QUESTION_PHASES

    @property
    def total_question(self) -> int:
        return len(self.questions)

    @property
    def current_riddle(self) -> Optional[Riddle]:
        if not self.active or self.state is None:
            return None
        return self.questions[self.state.current_question_index]

    @property
    def is_last_step(self) -> bool:
        riddle = self.current_riddle
        return bool(riddle and self.state and self.state.current_step_index == riddle.total_steps)

    @property
    def is_last_question(self) -> bool:
        return bool(self.state and self.state.current_question_index == self.total_question - 1)

    def snapshot(self) -> dict:
        """Plain-data view used by the HTTP surface and UI events."""
        riddle = self.current_riddle
        data: dict = {"phase": self.phase.value, "total_question": self.total_question}
        if self.state is not None:
            data.update(
                {
                    "difficulty": self.state.difficulty,
                    "current_question_index": self.state.current_question_index,
                    "current_step_index": self.state.current_step_index,
                    "corrected_answer_count": self.state.corrected_answer_count,
                    "skip_count": self.state.skip_count,
                    "per_question_outcome": list(self.state.per_question_outcome),
                }
            )
        if riddle is not None:
            data["riddle"] = {"id": riddle.id, "total_steps": riddle.total_steps}
        return data

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def reset(self, difficulty: str) -> SessionState:
        """Fresh state for a new session; questions must be loaded next."""
        self.state = SessionState(difficulty=difficulty)
        self.questions = []
        self.phase = SessionPhase.AWAITING_QUESTIONS
        return self.state

    def load_questions(self, questions: Sequence[Riddle]) -> Riddle:
        """Seed the session with the fetched list and move to ``READY(0, 1)``."""
        if self.phase != SessionPhase.AWAITING_QUESTIONS or self.state is None:
            raise InvalidActionError("load_questions", f"phase is {self.phase.value}")
        if not questions:
            raise InvalidActionError("load_questions", "question list is empty")

        self.questions = list(questions)
        self.state.current_question_index = 0
        self.state.current_step_index = 1
        self.state.clear_capture()
        self.phase = SessionPhase.READY
        return self.questions[0]

    def discard(self) -> None:
        """Drop all session state; used by quit and after the summary is taken."""
        self.state = None
        self.questions = []
        self.phase = SessionPhase.IDLE

    # ------------------------------------------------------------------
    # Capture bookkeeping
    # ------------------------------------------------------------------

    def begin_capture(self) -> None:
        if self.phase not in (SessionPhase.READY, SessionPhase.CAPTURING):
            raise InvalidActionError("capture", f"phase is {self.phase.value}")
        self.phase = SessionPhase.CAPTURING

    def next_attempt(self) -> int:
        assert self.state is not None
        self.state.attempt += 1
        return self.state.attempt

    def capture_submitted(self, artifact: CaptureArtifact) -> None:
        if self.phase != SessionPhase.CAPTURING or self.state is None:
            raise InvalidActionError("submit", f"phase is {self.phase.value}")
        self.state.artifact = artifact
        self.state.verdict = None
        self.phase = SessionPhase.JUDGING

    def judgement_failed(self) -> None:
        """Submission never produced a verdict; the player may capture again."""
        if self.phase != SessionPhase.JUDGING or self.state is None:
            return
        self.state.clear_capture()
        self.phase = SessionPhase.CAPTURING

    def check_fresh(self, message: VerdictMessage) -> None:
        """Raise ``StaleVerdict`` unless ``message`` answers the pending capture."""
        riddle = self.current_riddle
        if self.phase != SessionPhase.JUDGING or riddle is None or self.state is None:
            raise StaleVerdict(f"no judgement pending (phase={self.phase.value})")
        position = (riddle.id, self.state.current_step_index, self.state.attempt)
        received = (message.riddle_id, message.step, message.attempt)
        if received != position:
            raise StaleVerdict(f"verdict for {received} but session is at {position}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def apply_verdict(self, message: VerdictMessage) -> Transition:
        if message.is_correct is None:
            return Transition.IGNORED
        try:
            self.check_fresh(message)
        except StaleVerdict as exc:
            logger.debug("Dropping stale verdict: %s", exc)
            return Transition.IGNORED

        state = self.state
        assert state is not None
        state.verdict = message.is_correct

        if not message.is_correct:
            state.clear_capture()
            self.phase = SessionPhase.READY
            return Transition.RETRY

        if self.is_last_step:
            # scored only once the player confirms
            state.clear_capture()
            self.phase = SessionPhase.CONFIRMING
            return Transition.AWAITING_CONFIRMATION

        state.current_step_index += 1
        state.clear_capture()
        self.phase = SessionPhase.READY
        return Transition.STEP_ADVANCED

    def confirm_question_solved(self, was_correct: bool) -> Transition:
        if self.phase != SessionPhase.CONFIRMING:
            raise InvalidActionError("confirm", f"phase is {self.phase.value}")
        return self._record_outcome(was_correct)

    def skip_current_question(self) -> Transition:
        if self.phase not in (SessionPhase.READY, SessionPhase.CAPTURING, SessionPhase.JUDGING):
            raise InvalidActionError("skip", f"phase is {self.phase.value}")
        assert self.state is not None
        self.state.skip_count += 1
        return self._record_outcome(False)

    def _record_outcome(self, was_correct: bool) -> Transition:
        state = self.state
        assert state is not None
        state.per_question_outcome.append(was_correct)
        if was_correct:
            state.corrected_answer_count += 1
        state.clear_capture()

        if self.is_last_question:
            self.phase = SessionPhase.FINISHED
            return Transition.FINISHED

        state.current_question_index += 1
        state.current_step_index = 1
        self.phase = SessionPhase.READY
        return Transition.QUESTION_ADVANCED

    def summary(self) -> SessionSummary:
        if self.phase != SessionPhase.FINISHED or self.state is None:
            raise InvalidActionError("summary", f"phase is {self.phase.value}")
        return SessionSummary.from_session(self.state, self.questions)


__all__ = ["ProgressionStateMachine", "Transition"]
