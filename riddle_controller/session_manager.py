"""Session orchestration for the riddle game controller."""
from __future__ import annotations

import asyncio
from asyncio import QueueEmpty
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from .backend.http_client import RiddleApiClient
from .capture.webcam import CaptureSource, WebcamCaptureSource
from .config import Settings, get_settings
from .confirmation import SuccessConfirmation
from .errors import CaptureUnavailable, InvalidActionError, TransportFailure
from .judgement import JudgementGateway
from .models import CaptureArtifact, StepPrompt, VerdictMessage, WordVideo
from .progression import ProgressionStateMachine, Transition
from .state import (
    CAMERA_UNAVAILABLE,
    GENERIC_FAILURE,
    WRONG_ANSWER,
    ControllerEvent,
    Notification,
    SessionPhase,
)
from .summary import SessionSummary
from .timer import CountdownTimer

logger = logging.getLogger(__name__)

# (session generation, question index, step index)
Position = Tuple[int, int, int]


class GameSessionManager:
    """Coordinates countdown, capture, judgement and UI updates for one player."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        api_client: Optional[RiddleApiClient] = None,
        capture_source: Optional[CaptureSource] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._api = api_client or RiddleApiClient(self.settings)
        self._capture: CaptureSource = capture_source or WebcamCaptureSource(self.settings.camera)

        self._progression = ProgressionStateMachine()
        self._timer = CountdownTimer(
            duration_ms=self.settings.game.countdown_ms,
            tick_ms=self.settings.game.countdown_tick_ms,
            on_complete=self._on_countdown_complete,
        )
        self._gateway = JudgementGateway(
            self._api,
            on_verdict=self._handle_verdict,
            on_failure=self._handle_judgement_failure,
        )
        self._confirmation = SuccessConfirmation(self._confirm_solved)

        self._ui_subscribers: List[asyncio.Queue[ControllerEvent]] = []
        self._generation = 0
        self._questions_task: Optional[asyncio.Task[None]] = None
        self._prompt_task: Optional[asyncio.Task[None]] = None
        self._prompt_key: Optional[Position] = None
        self._current_prompt: Optional[StepPrompt] = None
        self._capture_in_progress = False
        self._summary: Optional[SessionSummary] = None
        self._pending: Set[asyncio.Task[Any]] = set()
        self._background_tasks: List[asyncio.Task[Any]] = []

    # ============================================================
    # Read-only views
    # ============================================================

    @property
    def phase(self) -> SessionPhase:
        return self._progression.phase

    @property
    def progression(self) -> ProgressionStateMachine:
        return self._progression

    @property
    def summary(self) -> Optional[SessionSummary]:
        return self._summary

    @property
    def current_prompt(self) -> Optional[StepPrompt]:
        return self._current_prompt

    @property
    def capture_enabled(self) -> bool:
        return (
            self.phase in (SessionPhase.READY, SessionPhase.CAPTURING)
            and not self._timer.running
            and not self._capture_in_progress
            and not self._gateway.in_flight
        )

    def snapshot(self) -> Dict[str, Any]:
        data = self._progression.snapshot()
        data["capture_enabled"] = self.capture_enabled
        data["countdown_remaining_ms"] = self._timer.remaining_ms
        data["prompt"] = self._current_prompt.guide if self._current_prompt else None
        return data

    # ============================================================
    # Service lifecycle
    # ============================================================

    async def start(self) -> None:
        logger.info("Starting riddle session manager")
        self._background_tasks.append(asyncio.create_task(self._heartbeat_loop(), name="controller-heartbeat"))
        logger.info("Session manager started in IDLE state")

    async def stop(self) -> None:
        logger.info("Stopping riddle session manager")

        self._abandon_session()
        for task in self._background_tasks + list(self._pending):
            task.cancel()
        for task in self._background_tasks + list(self._pending):
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Error stopping background task: %s", e)
        self._background_tasks.clear()
        self._pending.clear()

        try:
            await self._capture.close()
        except Exception as e:
            logger.warning("Error closing capture source: %s", e)

        await self._api.aclose()
        logger.info("Session manager stopped")

    async def wait_for_pending(self) -> None:
        """Wait until countdowns, captures, judgements and fetches settle."""
        while True:
            tasks = {task for task in self._pending if not task.done()}
            if not tasks:
                return
            await asyncio.wait(tasks)

    def register_ui(self) -> asyncio.Queue[ControllerEvent]:
        queue: asyncio.Queue[ControllerEvent] = asyncio.Queue(maxsize=self.settings.performance.ui_event_queue_size)
        self._ui_subscribers.append(queue)
        return queue

    def unregister_ui(self, queue: asyncio.Queue[ControllerEvent]) -> None:
        if queue in self._ui_subscribers:
            self._ui_subscribers.remove(queue)

    # ============================================================
    # Player actions
    # ============================================================

    async def start_session(self, difficulty: str) -> None:
        """Reset everything and load a fresh question list for ``difficulty``."""
        state = self._progression.state
        if (
            self.phase == SessionPhase.AWAITING_QUESTIONS
            and state is not None
            and state.difficulty == difficulty
            and self._questions_task is not None
            and not self._questions_task.done()
        ):
            logger.info("Question list already loading for difficulty=%s; ignoring", difficulty)
            return

        logger.info("🎬 [SESSION_START] New session (difficulty=%s)", difficulty)
        self._abandon_session()
        self._generation += 1
        self._summary = None
        self._progression.reset(difficulty)
        await self._publish_state()

        task = self._spawn(self._load_questions(difficulty, self._generation), name="fetch-questions")
        self._questions_task = task
        await asyncio.wait({task})

    async def start_capture(self) -> None:
        """Arm the capture countdown for the current step."""
        if not self.capture_enabled:
            if self.phase in (SessionPhase.READY, SessionPhase.CAPTURING):
                raise InvalidActionError("capture", "countdown or judgement already in progress")
            raise InvalidActionError("capture", f"phase is {self.phase.value}")

        self._progression.begin_capture()
        self._timer.arm()
        if self._timer.task is not None:
            self._track(self._timer.task)
        logger.info("📸 [CAPTURE] Countdown armed (%dms)", self._timer.duration_ms)
        await self._broadcast(
            ControllerEvent(
                type="countdown",
                phase=self.phase,
                data={"duration_ms": self._timer.duration_ms, "tick_ms": self._timer.tick_ms},
            )
        )
        await self._publish_state()

    async def confirm_success(self) -> Optional[SessionSummary]:
        """Player acknowledged the solved riddle; score it and move on."""
        if self.phase != SessionPhase.CONFIRMING:
            raise InvalidActionError("confirm", f"phase is {self.phase.value}")
        await self._confirmation.confirm()
        return self._summary

    async def skip_current_question(self) -> Optional[SessionSummary]:
        """Abandon the current riddle; scored as incorrect."""
        transition = self._progression.skip_current_question()
        logger.info("⏭️ [SKIP] Question skipped (skip_count=%d)", self._progression.state.skip_count)
        await self._after_question_recorded(transition)
        return self._summary

    async def quit_session(self) -> None:
        """Discard the session; no summary is produced."""
        logger.info("🚪 [SESSION_END] Session quit in phase %s", self.phase.value)
        self._abandon_session()
        self._generation += 1
        self._summary = None
        self._progression.discard()
        await self._publish_state()

    async def refresh_prompt(self) -> None:
        """Re-request the hint for the current step (e.g. after a failed fetch)."""
        if self.phase not in (SessionPhase.READY, SessionPhase.CAPTURING, SessionPhase.JUDGING):
            raise InvalidActionError("refresh_prompt", f"phase is {self.phase.value}")
        self._request_prompt()
        if self._prompt_task is not None:
            await asyncio.wait({self._prompt_task})

    async def fetch_word_video(self, text: str) -> Optional[WordVideo]:
        try:
            return await self._api.fetch_word_video(text)
        except TransportFailure as exc:
            logger.error("❌ Word video fetch failed: %s", exc)
            await self._notify(GENERIC_FAILURE)
            return None

    # ============================================================
    # Flow steps
    # ============================================================

    async def _load_questions(self, difficulty: str, generation: int) -> None:
        try:
            questions = await self._api.fetch_question_list(difficulty, self.settings.game.total_question)
        except TransportFailure as exc:
            logger.error("❌ Question list fetch failed: %s", exc)
            await self._notify(GENERIC_FAILURE)
            return

        if generation != self._generation:
            logger.info("Question list arrived for an abandoned session; dropping")
            return
        if not questions:
            logger.error("❌ Backend returned an empty question list")
            await self._notify(GENERIC_FAILURE)
            return

        first = self._progression.load_questions(questions)
        logger.info(
            "📚 [SESSION_FLOW] %d riddles loaded (requested %d); first riddle=%d",
            len(questions),
            self.settings.game.total_question,
            first.id,
        )
        await self._publish_state()
        self._request_prompt()

    def _request_prompt(self) -> None:
        riddle = self._progression.current_riddle
        state = self._progression.state
        if riddle is None or state is None:
            return
        key = self._position()
        if self._prompt_task is not None and not self._prompt_task.done():
            if self._prompt_key == key:
                logger.debug("Prompt fetch already in flight for %s", key)
                return
            self._prompt_task.cancel()

        self._current_prompt = None
        self._prompt_key = key
        self._prompt_task = self._spawn(
            self._fetch_prompt(riddle.id, state.current_step_index, key),
            name=f"fetch-prompt-{riddle.id}-{state.current_step_index}",
        )

    async def _fetch_prompt(self, riddle_id: int, step: int, key: Position) -> None:
        try:
            prompt = await self._api.fetch_step_prompt(riddle_id, step)
        except TransportFailure as exc:
            logger.error("❌ Prompt fetch failed (riddle=%d step=%d): %s", riddle_id, step, exc)
            await self._notify(GENERIC_FAILURE)
            return

        if key != self._position():
            logger.debug("Prompt for riddle=%d step=%d arrived after the session moved on", riddle_id, step)
            return
        self._current_prompt = prompt
        await self._broadcast(
            ControllerEvent(
                type="prompt",
                phase=self.phase,
                data={"riddle_id": riddle_id, "step": step, "guide": prompt.guide},
            )
        )

    async def _on_countdown_complete(self) -> None:
        if self.phase != SessionPhase.CAPTURING:
            return
        riddle = self._progression.current_riddle
        state = self._progression.state
        if riddle is None or state is None:
            return
        position = self._position()

        self._capture_in_progress = True
        try:
            image = await self._capture.acquire()
        except CaptureUnavailable as exc:
            logger.error("📷 [CAPTURE] Capture unavailable: %s", exc)
            self._capture_in_progress = False
            await self._notify(CAMERA_UNAVAILABLE)
            await self._publish_state()
            return
        finally:
            self._capture_in_progress = False

        if position != self._position() or self.phase != SessionPhase.CAPTURING:
            logger.info("📷 [CAPTURE] Session moved on while capturing; snapshot discarded")
            await self._publish_state()
            return

        artifact = CaptureArtifact(
            image=image,
            riddle_id=riddle.id,
            step=state.current_step_index,
            attempt=self._progression.next_attempt(),
        )
        self._progression.capture_submitted(artifact)
        self._track(self._gateway.submit(artifact))
        logger.info("📤 [CAPTURE] Submitted riddle=%d step=%d attempt=%d", artifact.riddle_id, artifact.step, artifact.attempt)
        await self._publish_state()

    async def _handle_verdict(self, message: VerdictMessage) -> None:
        transition = self._progression.apply_verdict(message)
        logger.info("⚖️ [VERDICT] correct=%s -> %s", message.is_correct, transition.value)

        if transition == Transition.IGNORED:
            return

        if transition == Transition.RETRY:
            await self._notify(WRONG_ANSWER)
            await self._publish_state()
            return

        if transition == Transition.STEP_ADVANCED:
            self._celebrate()
            self._request_prompt()
            await self._publish_state()
            return

        if transition == Transition.AWAITING_CONFIRMATION:
            riddle = self._progression.current_riddle
            assert riddle is not None
            await self._broadcast(
                ControllerEvent(type="confirmation", phase=self.phase, data=self._confirmation.open(riddle))
            )
            await self._publish_state()

    async def _handle_judgement_failure(self, artifact: CaptureArtifact, exc: TransportFailure) -> None:
        state = self._progression.state
        if self.phase != SessionPhase.JUDGING or state is None or state.artifact is not artifact:
            logger.debug("Ignoring failure for abandoned submission: %s", exc)
            return
        self._progression.judgement_failed()
        await self._notify(GENERIC_FAILURE)
        await self._publish_state()

    async def _confirm_solved(self) -> None:
        transition = self._progression.confirm_question_solved(True)
        await self._after_question_recorded(transition)

    async def _after_question_recorded(self, transition: Transition) -> None:
        self._timer.disarm()
        self._capture_in_progress = False
        self._gateway.cancel()
        self._confirmation.close()
        self._current_prompt = None

        if transition == Transition.FINISHED:
            self._summary = self._progression.summary()
            logger.info(
                "🏁 [SESSION_END] Finished: %d/%d correct, %d skipped",
                self._summary.corrected_answer_count,
                self._summary.total_question,
                self._summary.skip_count,
            )
            await self._broadcast(ControllerEvent(type="summary", phase=self.phase, data=self._summary.as_dict()))
            await self._publish_state()
            return

        state = self._progression.state
        assert state is not None
        logger.info("➡️ [SESSION_FLOW] Advancing to question %d", state.current_question_index)
        await self._publish_state()
        self._request_prompt()

    def _celebrate(self) -> None:
        """Fire-and-forget confetti window; never awaited by the flow."""

        async def run() -> None:
            await self._broadcast(
                ControllerEvent(type="effect", phase=self.phase, data={"effect": "confetti", "active": True})
            )
            await asyncio.sleep(self.settings.game.celebration_seconds)
            await self._broadcast(
                ControllerEvent(type="effect", phase=self.phase, data={"effect": "confetti", "active": False})
            )

        self._spawn(run(), name="celebration")

    # ============================================================
    # Helpers
    # ============================================================

    def _position(self) -> Position:
        state = self._progression.state
        if state is None:
            return (self._generation, -1, -1)
        return (self._generation, state.current_question_index, state.current_step_index)

    def _abandon_session(self) -> None:
        """Cancel every in-flight piece of work tied to the current session."""
        self._timer.disarm()
        self._capture_in_progress = False
        self._gateway.cancel()
        self._confirmation.close()
        for task in (self._questions_task, self._prompt_task):
            if task is not None and not task.done():
                task.cancel()
        self._questions_task = None
        self._prompt_task = None
        self._prompt_key = None
        self._current_prompt = None

    def _spawn(self, coro: Any, *, name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._track(task)
        return task

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify(self, notification: Notification) -> None:
        logger.info("🔔 %s %s", notification.title, notification.description)
        await self._broadcast(ControllerEvent(type="notification", phase=self.phase, data=notification.as_dict()))

    async def _publish_state(self) -> None:
        await self._broadcast(ControllerEvent(type="state", phase=self.phase, data=self.snapshot()))

    async def _broadcast(self, event: ControllerEvent) -> None:
        """Broadcast event to all UI subscribers with error handling."""
        for queue in list(self._ui_subscribers):
            try:
                if queue.full():
                    try:
                        queue.get_nowait()
                    except QueueEmpty:
                        pass
                queue.put_nowait(event)
            except Exception as e:
                logger.warning("Failed to broadcast event to subscriber: %s", e)

    async def _heartbeat_loop(self) -> None:
        """Send periodic heartbeat to UI clients."""
        try:
            while True:
                await asyncio.sleep(self.settings.performance.heartbeat_interval)
                try:
                    await self._broadcast(ControllerEvent(type="heartbeat", data={}, phase=self.phase))
                except Exception as e:
                    logger.warning("Failed to send heartbeat: %s", e)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Heartbeat loop crashed: %s", e)


__all__ = ["GameSessionManager"]
