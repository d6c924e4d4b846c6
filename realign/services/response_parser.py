"""
Best-effort extraction of a JSON array from free-form model output.

Model text may contain reasoning, markdown fences or explanations around the array.
We take the substring from the first "[" to the last "]" and parse it. Anything else
(no brackets, invalid JSON, a non-array) is an error result; this never raises.
Truncated or over-long arrays are accepted as long as they parse; length is checked
by the stitcher, not here.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ExtractionResult:
    """Parsed array (ok) or error message, with the raw model text kept for diagnostics."""

    raw: str
    entries: list[Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.entries is not None


def extract_json_array(text: str) -> ExtractionResult:
    raw = text or ""
    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end == -1 or end < start:
        return ExtractionResult(raw=raw, error="No valid JSON array found.")
    try:
        value = json.loads(raw[start:end + 1])
    except json.JSONDecodeError as e:
        return ExtractionResult(raw=raw, error=f"Invalid JSON array: {e.msg}")
    if not isinstance(value, list):
        return ExtractionResult(raw=raw, error="Extracted JSON is not an array.")
    return ExtractionResult(raw=raw, entries=value)
