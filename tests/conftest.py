"""
Pytest fixtures for riddle controller tests.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from riddle_controller.config import GameSettings, PerformanceSettings, Settings
from riddle_controller.errors import CaptureUnavailable, TransportFailure
from riddle_controller.models import CaptureArtifact, Riddle, StepPrompt, VerdictMessage, WordVideo
from riddle_controller.session_manager import GameSessionManager
from riddle_controller.state import ControllerEvent


def make_riddles() -> List[Riddle]:
    return [
        Riddle(riddleId=1, question="바나나", totalStep=2),
        Riddle(riddleId=4, question="안녕하세요", totalStep=3),
        Riddle(riddleId=6, question="금연", totalStep=3),
    ]


class FakeApiClient:
    """In-memory stand-in for ``RiddleApiClient``."""

    def __init__(self, questions: Optional[List[Riddle]] = None) -> None:
        self.questions = make_riddles() if questions is None else questions
        self.verdicts: List[bool] = []
        self.question_requests: List[Tuple[str, int]] = []
        self.prompt_requests: List[Tuple[int, int]] = []
        self.submissions: List[CaptureArtifact] = []
        self.question_error: Optional[TransportFailure] = None
        self.prompt_error: Optional[TransportFailure] = None
        self.submit_error: Optional[TransportFailure] = None
        self.video_error: Optional[TransportFailure] = None
        # when set, submissions block until the event is set
        self.verdict_gate: Optional[asyncio.Event] = None
        self.closed = False

    async def fetch_question_list(self, difficulty: str, total_question: int) -> List[Riddle]:
        self.question_requests.append((difficulty, total_question))
        if self.question_error:
            raise self.question_error
        return list(self.questions)

    async def fetch_step_prompt(self, riddle_id: int, step: int) -> StepPrompt:
        self.prompt_requests.append((riddle_id, step))
        if self.prompt_error:
            raise self.prompt_error
        return StepPrompt(riddle_id=riddle_id, step=step, guide=f"/images/{riddle_id}_{step}.png")

    async def submit_capture(self, artifact: CaptureArtifact) -> VerdictMessage:
        self.submissions.append(artifact)
        if self.verdict_gate is not None:
            await self.verdict_gate.wait()
        if self.submit_error:
            raise self.submit_error
        return VerdictMessage(
            riddle_id=artifact.riddle_id,
            step=artifact.step,
            attempt=artifact.attempt,
            is_correct=self.verdicts.pop(0),
        )

    async def fetch_word_video(self, text: str) -> WordVideo:
        if self.video_error:
            raise self.video_error
        return WordVideo(text=text, url=f"https://videos.example/{text}.mp4")

    async def aclose(self) -> None:
        self.closed = True


class FakeCaptureSource:
    def __init__(self) -> None:
        self.fail_next = 0
        self.acquired = 0
        self.started = 0
        self.closed = False
        # when set, reads block until the event is set
        self.gate: Optional[asyncio.Event] = None

    async def acquire(self) -> bytes:
        self.started += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise CaptureUnavailable("camera not ready")
        self.acquired += 1
        return b"\xff\xd8fake-jpeg\xff\xd9"

    async def close(self) -> None:
        self.closed = True


def drain(queue: "asyncio.Queue[ControllerEvent]") -> List[ControllerEvent]:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


def notifications(events: List[ControllerEvent]) -> List[Dict[str, str]]:
    return [event.data for event in events if event.type == "notification"]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        log_directory=tmp_path / "logs",
        game=GameSettings(countdown_ms=10, celebration_seconds=0.01),
        performance=PerformanceSettings(ui_event_queue_size=256),
    )


@pytest.fixture
def api() -> FakeApiClient:
    return FakeApiClient()


@pytest.fixture
def camera() -> FakeCaptureSource:
    return FakeCaptureSource()


@pytest.fixture
async def manager(settings, api, camera):
    manager = GameSessionManager(settings=settings, api_client=api, capture_source=camera)
    yield manager
    await manager.stop()


@pytest.fixture
async def ui_events(manager):
    return manager.register_ui()
