"""Tests for the riddle backend HTTP client against ``httpx.MockTransport``."""

from __future__ import annotations

import json

import httpx
import pytest

from riddle_controller.backend.http_client import RiddleApiClient
from riddle_controller.config import Settings
from riddle_controller.errors import TransportFailure
from riddle_controller.models import CaptureArtifact


def _client(handler) -> RiddleApiClient:
    settings = Settings(_env_file=None, backend_api_url="http://riddles.test/")
    return RiddleApiClient(settings, transport=httpx.MockTransport(handler))


WORDS = [
    {"riddleId": 1, "question": "바나나", "totalStep": 2},
    {"riddleId": 4, "question": "안녕하세요", "totalStep": 3},
]


class TestFetchQuestionList:
    async def test_parses_bare_list(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json=WORDS)

        client = _client(handler)
        riddles = await client.fetch_question_list("easy", 3)
        await client.aclose()

        assert [r.id for r in riddles] == [1, 4]
        assert riddles[1].prompt_text == "안녕하세요"
        assert riddles[1].total_steps == 3
        assert seen["url"].path == "/get-words"
        assert seen["url"].params["difficulty"] == "easy"
        assert seen["url"].params["totalQuestion"] == "3"

    async def test_parses_data_envelope(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"data": WORDS}))
        riddles = await client.fetch_question_list("easy", 3)
        await client.aclose()

        assert len(riddles) == 2

    async def test_malformed_riddle_is_transport_failure(self) -> None:
        bad = [{"riddleId": 1, "question": "바나나", "totalStep": 0}]
        client = _client(lambda request: httpx.Response(200, json=bad))

        with pytest.raises(TransportFailure):
            await client.fetch_question_list("easy", 3)
        await client.aclose()

    async def test_server_error_is_transport_failure(self) -> None:
        client = _client(lambda request: httpx.Response(503, text="maintenance"))

        with pytest.raises(TransportFailure) as excinfo:
            await client.fetch_question_list("easy", 3)
        await client.aclose()

        assert excinfo.value.status_code == 503
        assert excinfo.value.operation == "fetch_question_list"

    async def test_network_error_is_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(TransportFailure):
            await client.fetch_question_list("easy", 3)
        await client.aclose()

    async def test_invalid_json_is_transport_failure(self) -> None:
        client = _client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

        with pytest.raises(TransportFailure):
            await client.fetch_question_list("easy", 3)
        await client.aclose()


class TestStepPrompt:
    async def test_posts_form_and_reads_guide(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = request.content.decode()
            return httpx.Response(200, json={"guide": "/images/no_smoking_2.png"})

        client = _client(handler)
        prompt = await client.fetch_step_prompt(6, 2)
        await client.aclose()

        assert prompt.guide == "/images/no_smoking_2.png"
        assert (prompt.riddle_id, prompt.step) == (6, 2)
        assert seen["method"] == "POST"
        assert seen["path"] == "/gameStart"
        assert "riddleId=6" in seen["body"]
        assert "step=2" in seen["body"]

    async def test_missing_guide_is_transport_failure(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={}))

        with pytest.raises(TransportFailure):
            await client.fetch_step_prompt(6, 2)
        await client.aclose()


class TestSubmitCapture:
    async def test_multipart_upload_returns_verdict(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.content
            return httpx.Response(200, json={"isCorrect": True})

        artifact = CaptureArtifact(image=b"\xff\xd8jpeg\xff\xd9", riddle_id=4, step=3, attempt=7)
        client = _client(handler)
        verdict = await client.submit_capture(artifact)
        await client.aclose()

        assert verdict.is_correct is True
        assert (verdict.riddle_id, verdict.step, verdict.attempt) == (4, 3, 7)
        assert seen["path"] == "/check-correct"
        assert seen["content_type"].startswith("multipart/form-data")
        assert b'name="riddle_id"' in seen["body"]
        assert b'name="current_step"' in seen["body"]
        assert b'filename="capture.jpg"' in seen["body"]
        assert b"\xff\xd8jpeg\xff\xd9" in seen["body"]

    async def test_non_boolean_verdict_is_transport_failure(self) -> None:
        artifact = CaptureArtifact(image=b"jpeg", riddle_id=4, step=1, attempt=1)
        client = _client(lambda request: httpx.Response(200, content=json.dumps({"isCorrect": "yes"})))

        with pytest.raises(TransportFailure):
            await client.submit_capture(artifact)
        await client.aclose()

    async def test_timeout_is_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("judge is slow", request=request)

        artifact = CaptureArtifact(image=b"jpeg", riddle_id=4, step=1, attempt=1)
        client = _client(handler)
        with pytest.raises(TransportFailure):
            await client.submit_capture(artifact)
        await client.aclose()


class TestWordVideo:
    async def test_reads_video_link(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = request.url.params
            return httpx.Response(200, json={"videoLink": "https://cdn.example/geumyeon.mp4"})

        client = _client(handler)
        video = await client.fetch_word_video("금연")
        await client.aclose()

        assert video.url == "https://cdn.example/geumyeon.mp4"
        assert video.text == "금연"
        assert seen["params"]["wordDes"] == "금연"

    async def test_missing_link_is_transport_failure(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"videoLink": ""}))

        with pytest.raises(TransportFailure):
            await client.fetch_word_video("금연")
        await client.aclose()
