"""
Error kinds for the realignment pipeline.

- ConfigError: missing/invalid configuration; fatal before any window is sent.
- TransportError / ServiceError: calling the relabeling service failed; per-window, non-fatal.
- FormatError: response could not be read as a list of {speaker, text}; per-window, non-fatal.
- LengthMismatch: response length differs from the window (only raised in strict stitching).
"""
from __future__ import annotations


class RealignError(Exception):
    """Base for all realignment errors."""


class ConfigError(RealignError, ValueError):
    """Required configuration is missing or inconsistent."""


class TransportError(RealignError):
    """Network/HTTP failure talking to the relabeling service."""


class ServiceError(TransportError):
    """Relabeling service answered with a non-success status. Body is kept verbatim."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class FormatError(RealignError):
    """Response (or model output) is not the expected JSON array."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class LengthMismatch(RealignError):
    """Window result length differs from the window it answers."""

    def __init__(self, expected: int, actual: int, start_offset: int) -> None:
        super().__init__(
            f"Window at offset {start_offset}: expected {expected} entries, got {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.start_offset = start_offset
