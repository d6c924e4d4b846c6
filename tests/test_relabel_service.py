"""
Tests for the relabeling service: prompt, retry loop, model call, HTTP app.
"""

import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from realign.config import get_settings
from realign.main import app
from realign.schemas.relabel import RelabelSegment
from realign.services import relabel_service
from realign.services.relabel_service import (
    RelabelAttemptsExhausted,
    build_prompt,
    call_model,
    relabel_segments,
)

TWO_SEGMENTS = [
    {"speaker": "SPEAKER_00", "text": "Welcome back to the show."},
    {"speaker": "SPEAKER_00", "text": "Thanks for having me."},
]
GOOD_REPLY = (
    'Sure: [{"speaker": "SPEAKER_00", "text": "Welcome back to the show."}, '
    '{"speaker": "SPEAKER_01", "text": "Thanks for having me."}]'
)


class FakeModel:
    """Replaces call_model; replies are returned in order, exceptions raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    async def __call__(self, prompt, settings=None):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_model(monkeypatch):
    def install(*replies):
        model = FakeModel(*replies)
        monkeypatch.setattr(relabel_service, "call_model", model)
        return model
    return install


class TestBuildPrompt:
    """Prompt text built from window segments."""

    def test_lines_per_segment(self):
        prompt = build_prompt([
            RelabelSegment(speaker="SPEAKER_00", text="hello"),
            RelabelSegment(speaker=None, text="who is this"),
        ])
        assert "SPEAKER_00: hello\nUnknown: who is this" in prompt
        assert '[{"speaker": "SPEAKER_01", "text": "..."}, ...]' in prompt


class TestRelabelSegments:
    """Retry loop around the model call."""

    def test_first_attempt_succeeds(self, fake_model):
        model = fake_model(GOOD_REPLY)
        entries = asyncio.run(relabel_segments([RelabelSegment(**s) for s in TWO_SEGMENTS]))
        assert [e["speaker"] for e in entries] == ["SPEAKER_00", "SPEAKER_01"]
        assert len(model.prompts) == 1

    def test_retries_after_unparseable_reply(self, fake_model):
        model = fake_model("no array here", GOOD_REPLY)
        entries = asyncio.run(relabel_segments([RelabelSegment(**s) for s in TWO_SEGMENTS]))
        assert len(entries) == 2
        assert len(model.prompts) == 2

    def test_retries_after_http_error(self, fake_model):
        request = httpx.Request("POST", "https://llm.example.test")
        failure = httpx.HTTPStatusError("429", request=request, response=httpx.Response(429, request=request))
        model = fake_model(failure, GOOD_REPLY)
        asyncio.run(relabel_segments([RelabelSegment(**s) for s in TWO_SEGMENTS]))
        assert len(model.prompts) == 2

    def test_exhausted_reports_last_raw_text(self, fake_model):
        model = fake_model("first garbage", "second garbage", "third garbage")
        with pytest.raises(RelabelAttemptsExhausted) as exc_info:
            asyncio.run(relabel_segments([RelabelSegment(**s) for s in TWO_SEGMENTS]))
        assert len(model.prompts) == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.raw == "third garbage"
        assert "third garbage" in str(exc_info.value)
        assert "first garbage" not in str(exc_info.value)

    def test_attempt_limit_from_settings(self, fake_model, monkeypatch):
        monkeypatch.setenv("RELABEL_MAX_ATTEMPTS", "2")
        model = fake_model("x", "y", GOOD_REPLY)
        with pytest.raises(RelabelAttemptsExhausted):
            asyncio.run(relabel_segments([RelabelSegment(**s) for s in TWO_SEGMENTS]))
        assert len(model.prompts) == 2

    def test_fixed_delay_between_attempts(self, fake_model, monkeypatch):
        monkeypatch.setenv("RELABEL_RETRY_DELAY_SECONDS", "1.5")
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(relabel_service.asyncio, "sleep", fake_sleep)
        fake_model("a", "b", "c")
        with pytest.raises(RelabelAttemptsExhausted):
            asyncio.run(relabel_segments([RelabelSegment(**s) for s in TWO_SEGMENTS]))
        assert delays == [1.5, 1.5]


class TestCallModel:
    """Chat-completions request against a mocked transport."""

    def _patch_transport(self, monkeypatch, handler):
        real_client = httpx.AsyncClient

        def factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        monkeypatch.setattr(relabel_service.httpx, "AsyncClient", factory)

    def test_returns_message_content(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "llm-key")
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": GOOD_REPLY}}]})

        self._patch_transport(monkeypatch, handler)
        text = asyncio.run(call_model("PROMPT", get_settings()))
        assert text == GOOD_REPLY
        assert seen["auth"] == "Bearer llm-key"
        assert seen["body"]["messages"] == [{"role": "user", "content": "PROMPT"}]
        assert seen["body"]["temperature"] == 0.3

    def test_unexpected_shape_is_empty_text(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "llm-key")
        self._patch_transport(monkeypatch, lambda request: httpx.Response(200, json={"choices": []}))
        assert asyncio.run(call_model("PROMPT")) == ""

    @pytest.mark.parametrize("reply", [
        {"choices": {"0": {}}},
        {"choices": [{"message": {"content": [{"type": "text", "text": "hi"}]}}]},
        {"choices": [{"message": "hi"}]},
    ])
    def test_malformed_reply_is_empty_text(self, monkeypatch, reply):
        monkeypatch.setenv("LLM_API_KEY", "llm-key")
        self._patch_transport(monkeypatch, lambda request: httpx.Response(200, json=reply))
        assert asyncio.run(call_model("PROMPT")) == ""

    def test_malformed_reply_is_retried(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "llm-key")
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"choices": [{"message": {"content": [{"type": "text"}]}}]})

        self._patch_transport(monkeypatch, handler)
        with pytest.raises(RelabelAttemptsExhausted):
            asyncio.run(relabel_segments([RelabelSegment(**s) for s in TWO_SEGMENTS]))
        assert len(calls) == 3

    def test_http_error_raises(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "llm-key")
        self._patch_transport(monkeypatch, lambda request: httpx.Response(503, text="overloaded"))
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(call_model("PROMPT"))

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="LLM_API_KEY"):
            asyncio.run(call_model("PROMPT"))


class TestRelabelEndpoint:
    """POST /api/relabel."""

    def test_success_returns_model_array(self, fake_model):
        fake_model(GOOD_REPLY)
        with TestClient(app) as client:
            resp = client.post("/api/relabel", json={"segments": TWO_SEGMENTS})
        assert resp.status_code == 200
        assert resp.json() == [
            {"speaker": "SPEAKER_00", "text": "Welcome back to the show."},
            {"speaker": "SPEAKER_01", "text": "Thanks for having me."},
        ]

    def test_fewer_than_two_segments(self, fake_model):
        model = fake_model()
        with TestClient(app) as client:
            resp = client.post("/api/relabel", json={"segments": TWO_SEGMENTS[:1]})
        assert resp.status_code == 400
        assert "at least 2" in resp.json()["error"]
        assert model.prompts == []

    def test_missing_segments_field(self):
        with TestClient(app) as client:
            resp = client.post("/api/relabel", json={"lines": []})
        assert resp.status_code == 422

    def test_malformed_reply_every_attempt(self, fake_model):
        """No [ ] pair in any reply: retried to the limit, then 500 with the raw text."""
        model = fake_model("I am not sure.", "Still not sure.", "Speaker one talks first.")
        with TestClient(app) as client:
            resp = client.post("/api/relabel", json={"segments": TWO_SEGMENTS})
        assert resp.status_code == 500
        assert "Speaker one talks first." in resp.json()["error"]
        assert len(model.prompts) == 3

    def test_health(self):
        with TestClient(app) as client:
            assert client.get("/health").json() == {"status": "ok"}
