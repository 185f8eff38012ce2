"""HTTP client for the riddle backend REST endpoints."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import TransportFailure
from ..models import CaptureArtifact, Riddle, StepPrompt, VerdictMessage, WordVideo

logger = logging.getLogger(__name__)


def _unwrap(payload: Any) -> Any:
    """Accept both bare bodies and ``{"data": ...}`` envelopes."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class RiddleApiClient:
    """Thin wrapper around the riddle backend API.

    Every call either returns a parsed model or raises ``TransportFailure``;
    the cause is logged here so callers only decide how to recover.
    """

    def __init__(self, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=self.settings.backend_api_url,
            timeout=self.settings.backend_timeout_seconds,
            transport=transport,
        )

    async def fetch_question_list(self, difficulty: str, total_question: int) -> List[Riddle]:
        """GET /get-words: ordered riddles for a new session."""
        logger.info("riddle_api.fetch_question_list: difficulty=%s total=%d", difficulty, total_question)
        payload = await self._request(
            "fetch_question_list",
            "GET",
            "/get-words",
            params={"difficulty": difficulty, "totalQuestion": total_question},
        )
        items = _unwrap(payload)
        if not isinstance(items, list):
            logger.error("riddle_api.fetch_question_list: expected a list, got %r", payload)
            raise TransportFailure("fetch_question_list", "response is not a list")
        try:
            return [Riddle.model_validate(item) for item in items]
        except ValidationError as e:
            logger.error("riddle_api.fetch_question_list: malformed riddle - %s", e)
            raise TransportFailure("fetch_question_list", "malformed riddle") from e

    async def fetch_step_prompt(self, riddle_id: int, step: int) -> StepPrompt:
        """POST /gameStart: hint image reference for one step."""
        payload = await self._request(
            "fetch_step_prompt",
            "POST",
            "/gameStart",
            data={"riddleId": str(riddle_id), "step": str(step)},
        )
        body = _unwrap(payload)
        guide = body.get("guide") if isinstance(body, dict) else None
        if not guide:
            logger.error("riddle_api.fetch_step_prompt: response missing guide %s", payload)
            raise TransportFailure("fetch_step_prompt", "response missing guide")
        return StepPrompt(riddle_id=riddle_id, step=step, guide=str(guide))

    async def submit_capture(self, artifact: CaptureArtifact) -> VerdictMessage:
        """POST /check-correct: multipart snapshot, answers ``{"isCorrect": bool}``."""
        logger.info(
            "riddle_api.submit_capture: riddle=%d step=%d attempt=%d (%d bytes)",
            artifact.riddle_id,
            artifact.step,
            artifact.attempt,
            len(artifact.image),
        )
        payload = await self._request(
            "submit_capture",
            "POST",
            "/check-correct",
            files={"file": ("capture.jpg", artifact.image, artifact.content_type)},
            data={"riddle_id": str(artifact.riddle_id), "current_step": str(artifact.step)},
        )
        body = _unwrap(payload)
        is_correct = body.get("isCorrect") if isinstance(body, dict) else None
        if not isinstance(is_correct, bool):
            logger.error("riddle_api.submit_capture: response missing isCorrect %s", payload)
            raise TransportFailure("submit_capture", "response missing isCorrect")
        return VerdictMessage(
            riddle_id=artifact.riddle_id,
            step=artifact.step,
            attempt=artifact.attempt,
            is_correct=is_correct,
        )

    async def fetch_word_video(self, text: str) -> WordVideo:
        """GET /get-video-link: sign-language video for a word."""
        payload = await self._request(
            "fetch_word_video",
            "GET",
            "/get-video-link",
            params={"wordDes": text},
        )
        body = _unwrap(payload)
        link = body.get("videoLink") if isinstance(body, dict) else body
        if not isinstance(link, str) or not link:
            logger.error("riddle_api.fetch_word_video: response missing videoLink %s", payload)
            raise TransportFailure("fetch_word_video", "response missing videoLink")
        return WordVideo(text=text, url=link)

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error("riddle_api.%s: request timeout", operation)
            raise TransportFailure(operation, "request timeout") from e
        except httpx.NetworkError as e:
            logger.error("riddle_api.%s: network error - %s", operation, e)
            raise TransportFailure(operation, "network error") from e
        except httpx.HTTPStatusError as e:
            logger.error("riddle_api.%s: HTTP %d - %s", operation, e.response.status_code, e.response.text)
            raise TransportFailure(
                operation, f"HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error("riddle_api.%s: transport error - %s", operation, e)
            raise TransportFailure(operation, "transport error") from e
        except ValueError as e:
            logger.error("riddle_api.%s: invalid JSON body - %s", operation, e)
            raise TransportFailure(operation, "invalid JSON body") from e

    async def aclose(self) -> None:
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning("Error closing HTTP client: %s", e)


__all__ = ["RiddleApiClient"]
