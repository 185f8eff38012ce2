"""Judgement gateway: submits captures and delivers typed verdicts."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from .backend.http_client import RiddleApiClient
from .errors import InvalidActionError, TransportFailure
from .models import CaptureArtifact, VerdictMessage

logger = logging.getLogger(__name__)

VerdictHandler = Callable[[VerdictMessage], Awaitable[None]]
FailureHandler = Callable[[CaptureArtifact, TransportFailure], Awaitable[None]]


class JudgementGateway:
    """Sends one capture at a time to the backend.

    Each submission yields exactly one call to either ``on_verdict`` or
    ``on_failure``. A cancelled submission yields neither.
    """

    def __init__(
        self,
        client: RiddleApiClient,
        *,
        on_verdict: VerdictHandler,
        on_failure: FailureHandler,
    ) -> None:
        self._client = client
        self._on_verdict = on_verdict
        self._on_failure = on_failure
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> Optional[asyncio.Task[None]]:
        return self._task

    def submit(self, artifact: CaptureArtifact) -> asyncio.Task[None]:
        if self.in_flight:
            raise InvalidActionError("submit", "a judgement is already in flight")
        self._task = asyncio.create_task(
            self._judge(artifact), name=f"judge-{artifact.riddle_id}-{artifact.step}-{artifact.attempt}"
        )
        return self._task

    def cancel(self) -> None:
        """Abandon the pending submission; its response is never delivered."""
        if self._task and not self._task.done():
            logger.info("⚖️ [JUDGE] Abandoning in-flight judgement")
            self._task.cancel()
        self._task = None

    async def _judge(self, artifact: CaptureArtifact) -> None:
        try:
            verdict = await self._client.submit_capture(artifact)
        except TransportFailure as exc:
            logger.warning("⚖️ [JUDGE] Submission failed: %s", exc)
            self._task = None
            await self._on_failure(artifact, exc)
            return

        self._task = None
        logger.info(
            "⚖️ [JUDGE] Verdict riddle=%d step=%d attempt=%d correct=%s",
            verdict.riddle_id,
            verdict.step,
            verdict.attempt,
            verdict.is_correct,
        )
        await self._on_verdict(verdict)


__all__ = ["JudgementGateway", "VerdictHandler", "FailureHandler"]
