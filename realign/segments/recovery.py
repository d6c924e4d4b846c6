"""
Best-effort recovery of a truncated/corrupted transcription file.

Finds the "transcriptions" array, splits it into object-sized pieces and keeps
the pieces that parse. Output is the envelope load_segments() accepts.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from realign.errors import FormatError

logger = logging.getLogger(__name__)

_TRANSCRIPTIONS_RE = re.compile(r'"transcriptions":\s*\[')


def _parse_object(piece: str) -> dict[str, Any] | None:
    try:
        value = json.loads(piece.strip().rstrip(","))
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def recover_transcriptions(raw: str) -> list[dict[str, Any]]:
    """Return every transcription object that can still be parsed. Raises FormatError if no array is found."""
    cleaned = raw.replace("\u00a0", " ")
    match = _TRANSCRIPTIONS_RE.search(cleaned)
    if not match:
        raise FormatError("Could not locate transcriptions array")

    start_idx = match.end()
    end_idx = cleaned.find("]", start_idx)
    if end_idx == -1:
        end_idx = len(cleaned)
    region = cleaned[start_idx:end_idx].strip()
    if not region:
        return []

    recovered: list[dict[str, Any]] = []
    for i, piece in enumerate(region.split("},")):
        candidate = piece.strip().rstrip(",")
        if not candidate.endswith("}"):
            candidate += "}"
        obj = _parse_object(candidate)
        if obj is None:
            logger.warning("Skipping invalid entry at index %s", i)
            continue
        recovered.append(obj)
    return recovered


def wrap_recovered(transcriptions: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "id": "recovered-file",
        "result": {
            "output": [
                {"name": "recovered_chunk.wav", "transcriptions": transcriptions},
            ]
        },
    }
