"""Shared fixtures for realignment tests."""
from __future__ import annotations

import pytest

from realign.schemas.relabel import RelabelSegment
from realign.segments.models import Segment

_SETTINGS_ENV = (
    "RELABEL_SERVICE_URL",
    "RELABEL_SERVICE_TOKEN",
    "LLM_API_KEY",
    "BATCH_POLICY",
    "BATCH_WINDOW_SIZE",
    "BATCH_OVERLAP",
    "BATCH_EMIT_TRAILING",
    "STITCH_STRICT_LENGTH",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Settings come from the environment; start every test from defaults."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RELABEL_RETRY_DELAY_SECONDS", "0")


def make_segments(count: int, words: int = 3) -> list[Segment]:
    """Segments alternating SPEAKER_00 / SPEAKER_01, `words` words of text each."""
    segments = []
    for i in range(count):
        text = " ".join(f"w{i}_{k}" for k in range(words))
        segments.append(
            Segment.from_dict(i, {
                "start": float(i),
                "end": float(i) + 0.9,
                "transcription": text,
                "speaker": f"SPEAKER_0{i % 2}",
                "confidence": 0.9,
            })
        )
    return segments


def result_for(window, speaker: str = "SPEAKER_09") -> list[RelabelSegment]:
    """Well-formed window result labelling every segment with `speaker`."""
    return [RelabelSegment(speaker=speaker, text=s.transcription) for s in window.segments]
