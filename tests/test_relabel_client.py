"""
Tests for RelabelClient against a mocked HTTP transport.
"""

import json

import httpx
import pytest

from conftest import make_segments
from realign.batching.planner import Window
from realign.errors import ConfigError, FormatError, ServiceError, TransportError
from realign.services.relabel_client import RelabelClient, parse_window_result, window_payload

URL = "https://relabel.example.test/api/relabel"


def _window(count=3):
    return Window(segments=make_segments(count), start_offset=0)


def _client(handler):
    return RelabelClient(URL, "secret-token", timeout=5.0, transport=httpx.MockTransport(handler))


class TestWindowPayload:
    """Request body built from a window."""

    def test_speaker_and_text(self):
        payload = window_payload(_window(2))
        assert payload == {
            "segments": [
                {"speaker": "SPEAKER_00", "text": "w0_0 w0_1 w0_2"},
                {"speaker": "SPEAKER_01", "text": "w1_0 w1_1 w1_2"},
            ]
        }

    def test_missing_speaker_sent_as_unknown(self):
        window = _window(2)
        window.segments[1].speaker = None
        assert window_payload(window)["segments"][1]["speaker"] == "Unknown"


class TestSubmit:
    """submit() success and error mapping."""

    def test_success(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["content_type"] = request.headers["Content-Type"]
            seen["body"] = json.loads(request.content)
            entries = [{"speaker": "HOST", "text": s["text"]} for s in seen["body"]["segments"]]
            return httpx.Response(200, json=entries)

        with _client(handler) as client:
            result = client.submit(_window(3))

        assert seen["auth"] == "Bearer secret-token"
        assert seen["content_type"] == "application/json"
        assert len(seen["body"]["segments"]) == 3
        assert [r.speaker for r in result] == ["HOST"] * 3
        assert result[0].text == "w0_0 w0_1 w0_2"

    def test_non_success_keeps_raw_body(self):
        def handler(request):
            return httpx.Response(500, text='{"error": "Invalid AI response format. Raw output: nope"}')

        with _client(handler) as client:
            with pytest.raises(ServiceError) as exc_info:
                client.submit(_window())

        err = exc_info.value
        assert err.status_code == 500
        assert err.body == '{"error": "Invalid AI response format. Raw output: nope"}'
        assert "Error 500" in str(err)
        assert isinstance(err, TransportError)

    def test_bad_request_is_service_error(self):
        with _client(lambda request: httpx.Response(400, text="Request must include at least 2 segments.")) as client:
            with pytest.raises(ServiceError) as exc_info:
                client.submit(_window())
        assert exc_info.value.status_code == 400

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                client.submit(_window())
        assert not isinstance(exc_info.value, ServiceError)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with _client(handler) as client:
            with pytest.raises(TransportError):
                client.submit(_window())

    def test_non_json_body(self):
        with _client(lambda request: httpx.Response(200, text="<html>gateway</html>")) as client:
            with pytest.raises(FormatError) as exc_info:
                client.submit(_window())
        assert exc_info.value.raw == "<html>gateway</html>"

    def test_object_instead_of_array(self):
        with _client(lambda request: httpx.Response(200, json={"error": "nope"})) as client:
            with pytest.raises(FormatError):
                client.submit(_window())

    def test_length_not_checked_by_client(self):
        with _client(lambda request: httpx.Response(200, json=[{"speaker": "A", "text": "x"}])) as client:
            result = client.submit(_window(3))
        assert len(result) == 1


class TestParseWindowResult:
    """Validation of decoded response bodies."""

    def test_missing_text_defaults_empty(self):
        result = parse_window_result([{"speaker": "A"}])
        assert result[0].text == ""

    def test_entry_without_speaker(self):
        with pytest.raises(FormatError):
            parse_window_result([{"speaker": "A", "text": "x"}, {"text": "y"}])

    def test_non_object_entries(self):
        with pytest.raises(FormatError):
            parse_window_result(["A: hello", "B: hi"])


class TestConfiguration:
    """Base URL and token are mandatory."""

    def test_from_settings_requires_url(self, monkeypatch):
        monkeypatch.setenv("RELABEL_SERVICE_TOKEN", "t")
        with pytest.raises(ConfigError, match="RELABEL_SERVICE_URL"):
            RelabelClient.from_settings()

    def test_from_settings_requires_token(self, monkeypatch):
        monkeypatch.setenv("RELABEL_SERVICE_URL", URL)
        with pytest.raises(ConfigError, match="RELABEL_SERVICE_TOKEN"):
            RelabelClient.from_settings()

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("RELABEL_SERVICE_URL", URL)
        monkeypatch.setenv("RELABEL_SERVICE_TOKEN", "t")
        client = RelabelClient.from_settings()
        client.close()
