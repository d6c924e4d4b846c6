"""
Segment store: load the ordered transcript produced by the transcription stage.

Accepted layouts:
- bare list of segment dicts (e.g. a previous realigned/partial output)
- transcription envelope {"result": {"output": [{"transcriptions": [...]}, ...]}};
  chunks are flattened in order.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from realign.errors import FormatError
from realign.segments.models import Segment

logger = logging.getLogger(__name__)


def extract_segment_dicts(payload: Any) -> list[dict[str, Any]]:
    """Return the flat list of raw segment dicts from either supported layout."""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        output = (payload.get("result") or {}).get("output")
        if isinstance(output, list):
            flat: list[dict[str, Any]] = []
            for chunk in output:
                if not isinstance(chunk, dict):
                    continue
                flat.extend(t for t in chunk.get("transcriptions") or [] if isinstance(t, dict))
            return flat
    raise FormatError("Expected a list of segments or a result.output[].transcriptions envelope")


def segments_from_payload(payload: Any) -> list[Segment]:
    return [Segment.from_dict(i, item) for i, item in enumerate(extract_segment_dicts(payload))]


def load_segments(path: str | Path) -> list[Segment]:
    """Load segments from a JSON file. Raises FormatError on invalid JSON or layout."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid JSON in {path}: {e}") from e
    segments = segments_from_payload(payload)
    logger.info("Loaded %s segments from %s", len(segments), path)
    return segments


def dump_segments(segments: list[Segment]) -> list[dict[str, Any]]:
    return [s.to_dict() for s in segments]
