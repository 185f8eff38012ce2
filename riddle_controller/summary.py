"""Completion report for a finished riddle session."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from .models import Riddle
from .state import SessionState


@dataclass(frozen=True)
class QuestionResult:
    riddle_id: int
    question: str
    solved: bool


@dataclass(frozen=True)
class SessionSummary:
    """Read-only totals handed to the finish screen."""

    difficulty: str
    corrected_answer_count: int
    total_question: int
    skip_count: int
    per_question_outcome: Tuple[bool, ...]
    results: Tuple[QuestionResult, ...]

    @classmethod
    def from_session(cls, state: SessionState, questions: Sequence[Riddle]) -> "SessionSummary":
        outcomes = tuple(state.per_question_outcome)
        results = tuple(
            QuestionResult(riddle_id=riddle.id, question=riddle.prompt_text, solved=solved)
            for riddle, solved in zip(questions, outcomes)
        )
        return cls(
            difficulty=state.difficulty,
            corrected_answer_count=state.corrected_answer_count,
            total_question=len(questions),
            skip_count=state.skip_count,
            per_question_outcome=outcomes,
            results=results,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "difficulty": self.difficulty,
            "corrected_answer_count": self.corrected_answer_count,
            "total_question": self.total_question,
            "skip_count": self.skip_count,
            "per_question_outcome": list(self.per_question_outcome),
            "results": [
                {"riddle_id": r.riddle_id, "question": r.question, "solved": r.solved}
                for r in self.results
            ],
        }


__all__ = ["QuestionResult", "SessionSummary"]
