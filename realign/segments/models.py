"""
Transcript segment as loaded from the upstream transcription stage.

Each segment includes:
- index: position in the flattened, ordered conversation
- start, end (seconds)
- transcription (text)
- speaker: label from the upstream diarizer (may be missing)
- aligned_speaker: label written by the stitcher; absent until resolved

Keys we do not model (confidence, words, ...) are kept in `source` and written
back unchanged to every checkpoint.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from realign.errors import FormatError

UNKNOWN_SPEAKER = "Unknown"


def _seconds(index: int, data: dict[str, Any], key: str) -> float:
    try:
        return float(data.get(key) or 0.0)
    except (TypeError, ValueError) as e:
        raise FormatError(f"Segment {index}: invalid {key} {data.get(key)!r}") from e


@dataclass
class Segment:
    """One transcribed utterance. aligned_speaker is None until stitched."""

    index: int
    start: float
    end: float
    transcription: str
    speaker: str | None = None
    aligned_speaker: str | None = None
    source: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, index: int, data: dict[str, Any]) -> "Segment":
        return cls(
            index=index,
            start=_seconds(index, data, "start"),
            end=_seconds(index, data, "end"),
            transcription=data.get("transcription") or data.get("text") or "",
            speaker=data.get("speaker") or None,
            aligned_speaker=data.get("aligned_speaker") or None,
            source=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        """Upstream dict with aligned_speaker set when resolved. Key order of the source is kept."""
        data = dict(self.source)
        for key, value in (
            ("start", self.start),
            ("end", self.end),
            ("transcription", self.transcription),
            ("speaker", self.speaker),
        ):
            if key in data or value is not None:
                data[key] = value
        if self.aligned_speaker is not None:
            data["aligned_speaker"] = self.aligned_speaker
        return data

    @property
    def request_speaker(self) -> str:
        """Speaker label sent to the relabeling service."""
        return self.speaker or UNKNOWN_SPEAKER
