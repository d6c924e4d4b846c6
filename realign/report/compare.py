"""
Compare two realignment runs of the same transcript.

Segments are compared by position; positions whose (stripped) transcription differs
are skipped, since they are not the same utterance. Three lists are produced:
aligned_speaker differences, original speaker differences, and every position with
either difference.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from realign.pipeline.checkpoint import atomic_write_json

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 10


@dataclass
class RunComparison:
    diffs: list[dict[str, Any]] = field(default_factory=list)
    aligned_speaker_diffs: list[dict[str, Any]] = field(default_factory=list)
    speaker_diffs: list[dict[str, Any]] = field(default_factory=list)


def _text(segment: dict[str, Any]) -> str:
    return (segment.get("transcription") or "").strip()


def compare_runs(run1: list[dict[str, Any]], run2: list[dict[str, Any]]) -> RunComparison:
    comparison = RunComparison()
    for i, (seg1, seg2) in enumerate(zip(run1, run2)):
        if _text(seg1) != _text(seg2):
            continue
        text = seg1.get("transcription")
        aligned_differs = seg1.get("aligned_speaker") != seg2.get("aligned_speaker")
        speaker_differs = seg1.get("speaker") != seg2.get("speaker")
        if aligned_differs:
            comparison.aligned_speaker_diffs.append({
                "index": i, "text": text,
                "run1": seg1.get("aligned_speaker"), "run2": seg2.get("aligned_speaker"),
            })
        if speaker_differs:
            comparison.speaker_diffs.append({
                "index": i, "text": text, "run1": seg1.get("speaker"), "run2": seg2.get("speaker"),
            })
        if aligned_differs or speaker_differs:
            comparison.diffs.append({"index": i, "text": text, "run1": seg1, "run2": seg2})
    return comparison


def _cell(value: Any, limit: int | None = None) -> str:
    text = "" if value is None else str(value)
    if limit is not None:
        text = text[:limit]
    return text.replace("|", "\\|").replace("\n", " ")


def render_markdown(comparison: RunComparison) -> str:
    lines = [
        "# Realignment Comparison Report",
        "",
        f"**Differing Segments:** {len(comparison.diffs)}",
        f"**Aligned Speaker Differences:** {len(comparison.aligned_speaker_diffs)}",
        f"**Original Speaker Differences:** {len(comparison.speaker_diffs)}",
        "",
        "## Sample Aligned Speaker Differences",
        "",
        "| Index | Text | Run 1 | Run 2 |",
        "|-------|------|-------|-------|",
    ]
    for d in comparison.aligned_speaker_diffs[:SAMPLE_ROWS]:
        lines.append(f"| {d['index']} | {_cell(d['text'], 60)} | {_cell(d['run1'])} | {_cell(d['run2'])} |")
    return "\n".join(lines) + "\n"


def write_comparison(comparison: RunComparison, out_dir: str | Path) -> list[Path]:
    out_dir = Path(out_dir)
    written = []
    for name, payload in (
        ("comparison_differences.json", comparison.diffs),
        ("comparison_aligned_diffs.json", comparison.aligned_speaker_diffs),
        ("comparison_speaker_diffs.json", comparison.speaker_diffs),
    ):
        path = out_dir / name
        atomic_write_json(path, payload)
        written.append(path)
    report_path = out_dir / "comparison_report.md"
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path.write_text(render_markdown(comparison), encoding="utf-8")
    written.append(report_path)
    logger.info("Comparison complete. Reports saved to %s", out_dir)
    return written
