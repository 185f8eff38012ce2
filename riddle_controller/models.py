"""Riddle, capture and verdict payloads exchanged with the backend."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Riddle(BaseModel):
    """One multi-step riddle as served by ``/get-words``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(..., alias="riddleId", description="Riddle identifier")
    prompt_text: str = Field(..., alias="question", description="Word or phrase to be signed")
    total_steps: int = Field(..., alias="totalStep", ge=1, description="Number of steps in this riddle")


class StepPrompt(BaseModel):
    """Visual hint for one step of a riddle."""

    model_config = ConfigDict(frozen=True)

    riddle_id: int
    step: int
    guide: str


class WordVideo(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    url: str


@dataclass(frozen=True)
class CaptureArtifact:
    """JPEG snapshot plus the position it was taken against."""

    image: bytes
    riddle_id: int
    step: int
    attempt: int
    content_type: str = "image/jpeg"


@dataclass(frozen=True)
class VerdictMessage:
    """Judgement result for one capture attempt.

    ``is_correct`` is ``None`` when no verdict is available yet; such messages
    are ignored by the progression state machine.
    """

    riddle_id: int
    step: int
    attempt: int
    is_correct: Optional[bool]


__all__ = ["Riddle", "StepPrompt", "WordVideo", "CaptureArtifact", "VerdictMessage"]
