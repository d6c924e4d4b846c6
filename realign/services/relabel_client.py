"""
RelabelClient: sends one window to the relabeling service and reads back its result.

One POST per submit(); no retries here (the service retries its own model call,
the run loop skips a window that still fails). Errors keep the raw response body
so a failed window can be diagnosed from the log alone.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from realign.batching.planner import Window
from realign.config import Settings, get_settings
from realign.errors import ConfigError, FormatError, ServiceError, TransportError
from realign.schemas.relabel import RelabelSegment

logger = logging.getLogger(__name__)

_RESULT_ADAPTER = TypeAdapter(list[RelabelSegment])


def window_payload(window: Window) -> dict[str, Any]:
    """Request body: {"segments": [{"speaker", "text"}, ...]}; missing speaker -> Unknown."""
    return {
        "segments": [
            {"speaker": s.request_speaker, "text": s.transcription}
            for s in window.segments
        ]
    }


def parse_window_result(data: Any) -> list[RelabelSegment]:
    """Validate a decoded response body as a list of {speaker, text}. Raises FormatError."""
    try:
        entries = _RESULT_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise FormatError(f"Unexpected relabel response shape: {e.error_count()} error(s)", raw=repr(data)) from e
    for i, entry in enumerate(entries):
        if not entry.speaker:
            raise FormatError(f"Relabel response entry {i} has no speaker", raw=repr(data))
    return entries


class RelabelClient:
    """Blocking client for the relabeling endpoint. Use as a context manager or call close()."""

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 120.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        url = (url or "").strip()
        token = (token or "").strip()
        if not url:
            raise ConfigError("RELABEL_SERVICE_URL is required")
        if not token:
            raise ConfigError("RELABEL_SERVICE_TOKEN is required")
        self._url = url
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "RelabelClient":
        s = settings or get_settings()
        return cls(
            url=s.RELABEL_SERVICE_URL,
            token=s.RELABEL_SERVICE_TOKEN,
            timeout=s.RELABEL_REQUEST_TIMEOUT_SECONDS,
            **kwargs,
        )

    def submit(self, window: Window) -> list[RelabelSegment]:
        """
        POST the window; return its relabeled entries in window order.
        Raises ServiceError (non-2xx, raw body kept), TransportError (network/timeout),
        FormatError (body is not a JSON list of {speaker, text}).
        """
        try:
            resp = self._client.post(self._url, json=window_payload(window))
        except httpx.HTTPError as e:
            raise TransportError(f"Request to relabel service failed: {e}") from e

        if not resp.is_success:
            raise ServiceError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise FormatError(f"Relabel response was not valid JSON: {e}", raw=resp.text) from e
        return parse_window_result(data)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RelabelClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
