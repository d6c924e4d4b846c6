"""
Alignment analysis: what realignment changed relative to the upstream transcript.

Segments are matched by position. A position counts as changed when its stripped
transcription is identical in both files and its aligned_speaker differs. The
changed segments are then analyzed per (new) speaker:

- segments, duration, words, tokens, letters, sentences, punctuation
- words per segment, speaking rate (words/minute), tokens per second
- longest monologue (consecutive changed segments with the same speaker)
- vocabulary richness (unique normalized words / words)
- average upstream confidence, when present
- speaker turns, turn movements ("A → B") and overlapping speech

Ratios over zero duration or zero segments are reported as None.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from realign.batching.planner import estimate_tokens
from realign.errors import FormatError
from realign.pipeline.checkpoint import atomic_write_json
from realign.segments.models import UNKNOWN_SPEAKER

logger = logging.getLogger(__name__)

SILENCE = "Silence"
SAMPLE_TURNS = 10
SAMPLE_OVERLAPS = 5
TOP_MOVEMENTS = 5

_LETTER_RE = re.compile(r"[a-zA-Z]")
_SENTENCE_RE = re.compile(r"[.!?]+")
_PUNCT_RE = re.compile(r"[.,!?;:'\"()\[\]{}]")
_NON_ALPHA_RE = re.compile(r"[^a-z]")


def _text(segment: dict[str, Any]) -> str:
    return (segment.get("transcription") or "").strip()


def _seconds(change: dict[str, Any], key: str) -> float:
    try:
        return float(change[key] or 0.0)
    except (TypeError, ValueError) as e:
        raise FormatError(f"Segment {change['index']}: invalid {key} {change[key]!r}") from e


def _ratio(numerator: float, denominator: float) -> float | None:
    return numerator / denominator if denominator else None


def alignment_changes(original: list[dict[str, Any]], realigned: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Positions with the same text whose aligned_speaker changed."""
    changes = []
    for i, (orig, updated) in enumerate(zip(original, realigned)):
        if _text(orig) != _text(updated):
            continue
        if orig.get("aligned_speaker") == updated.get("aligned_speaker"):
            continue
        changes.append({
            "index": i,
            "start": orig.get("start"),
            "end": orig.get("end"),
            "text": orig.get("transcription"),
            "original": orig.get("aligned_speaker"),
            "updated": updated.get("aligned_speaker"),
        })
    return changes


def field_differences(
    original: list[dict[str, Any]], realigned: list[dict[str, Any]], field_name: str
) -> list[dict[str, Any]]:
    """Positions where `field_name` differs, regardless of text."""
    diffs = []
    for i, (orig, updated) in enumerate(zip(original, realigned)):
        if orig.get(field_name) != updated.get(field_name):
            diffs.append({
                "index": i,
                "start": orig.get("start"),
                "end": orig.get("end"),
                "text": orig.get("transcription"),
                "original": orig.get(field_name),
                "updated": updated.get(field_name),
            })
    return diffs


@dataclass
class SpeakerStats:
    segments: int = 0
    duration: float = 0.0
    words: int = 0
    tokens: int = 0
    letters: int = 0
    sentences: int = 0
    punctuation: int = 0
    unique_words: int = 0
    words_per_segment: float | None = None
    average_segment_duration: float | None = None
    tokens_per_second: float | None = None
    speaking_rate: float | None = None
    longest_monologue: float = 0.0
    vocabulary_richness: float | None = None
    confidence_avg: float | None = None
    monologues: list[float] = field(default_factory=list)
    time_ranges: list[dict[str, float]] = field(default_factory=list)


@dataclass
class Totals:
    segments: int = 0
    duration: float = 0.0
    words: int = 0
    tokens: int = 0
    letters: int = 0
    sentences: int = 0
    punctuation: int = 0

    @property
    def average_segment_duration(self) -> float | None:
        return _ratio(self.duration, self.segments)

    @property
    def average_words_per_segment(self) -> float | None:
        return _ratio(self.words, self.segments)

    @property
    def speaking_rate(self) -> float | None:
        return _ratio(self.words, self.duration / 60)


@dataclass
class AlignmentAnalysis:
    speakers: dict[str, SpeakerStats] = field(default_factory=dict)
    totals: Totals = field(default_factory=Totals)
    turns: list[dict[str, Any]] = field(default_factory=list)
    movements: dict[str, dict[str, Any]] = field(default_factory=dict)
    overlaps: list[dict[str, Any]] = field(default_factory=list)

    @property
    def turn_count(self) -> int:
        return len(self.turns)

    @property
    def overlap_count(self) -> int:
        return len(self.overlaps)

    def ranked_movements(self) -> list[tuple[str, dict[str, Any]]]:
        return sorted(self.movements.items(), key=lambda item: item[1]["count"], reverse=True)

    def to_dict(self) -> dict[str, Any]:
        totals = asdict(self.totals)
        return {
            "speakers": {name: asdict(stats) for name, stats in self.speakers.items()},
            "totals": totals,
            "analysis": {
                "total_duration": self.totals.duration,
                "average_segment_duration": self.totals.average_segment_duration,
                "total_words": self.totals.words,
                "average_words_per_segment": self.totals.average_words_per_segment,
                "speaking_rate": self.totals.speaking_rate,
            },
            "speaker_turn_count": self.turn_count,
            "overlap_count": self.overlap_count,
            "speaker_turns": self.turns[:SAMPLE_TURNS],
            "overlaps": self.overlaps[:SAMPLE_OVERLAPS],
            "speaker_movements": self.movements,
        }


def analyze_changes(changes: list[dict[str, Any]], original: list[dict[str, Any]]) -> AlignmentAnalysis:
    """Per-speaker analytics over changed segments, keyed by the new aligned_speaker."""
    analysis = AlignmentAnalysis()
    vocabulary: dict[str, list[str]] = {}
    confidence: dict[str, list[float]] = {}
    last_speaker = None
    monologue: dict[str, Any] | None = None

    for i, change in enumerate(changes):
        speaker = change["updated"] or UNKNOWN_SPEAKER
        start, end = _seconds(change, "start"), _seconds(change, "end")
        duration = end - start
        text = change["text"] or ""
        words = text.split()

        stats = analysis.speakers.setdefault(speaker, SpeakerStats())
        counts = {
            "segments": 1,
            "duration": duration,
            "words": len(words),
            "tokens": estimate_tokens(text),
            "letters": len(_LETTER_RE.findall(text)),
            "sentences": len(_SENTENCE_RE.findall(text)),
            "punctuation": len(_PUNCT_RE.findall(text)),
        }
        for name, value in counts.items():
            setattr(stats, name, getattr(stats, name) + value)
            setattr(analysis.totals, name, getattr(analysis.totals, name) + value)
        stats.time_ranges.append({"start": start, "end": end, "duration": duration})
        vocabulary.setdefault(speaker, []).extend(words)

        index = change["index"]
        upstream_confidence = original[index].get("confidence") if index < len(original) else None
        if isinstance(upstream_confidence, (int, float)):
            confidence.setdefault(speaker, []).append(float(upstream_confidence))

        if speaker != last_speaker:
            source = last_speaker or SILENCE
            analysis.turns.append({"from": last_speaker, "to": speaker, "time": start})
            movement = analysis.movements.setdefault(
                f"{source} → {speaker}", {"count": 0, "from": source, "to": speaker, "times": []}
            )
            movement["count"] += 1
            movement["times"].append(start)
            last_speaker = speaker

        if monologue is None or monologue["speaker"] != speaker:
            if monologue is not None:
                analysis.speakers[monologue["speaker"]].monologues.append(monologue["end"] - monologue["start"])
            monologue = {"speaker": speaker, "start": start, "end": end}
        else:
            monologue["end"] = end

        for following in changes[i + 1:]:
            next_start = _seconds(following, "start")
            if next_start >= end:
                break
            other = following["updated"] or UNKNOWN_SPEAKER
            if other != speaker:
                next_end = _seconds(following, "end")
                analysis.overlaps.append({
                    "index": change["index"],
                    "speaker_a": speaker,
                    "speaker_b": other,
                    "range": [start, next_end],
                    "duration": next_end - start,
                })

    if monologue is not None:
        analysis.speakers[monologue["speaker"]].monologues.append(monologue["end"] - monologue["start"])

    for speaker, stats in analysis.speakers.items():
        all_words = vocabulary.get(speaker, [])
        unique = {_NON_ALPHA_RE.sub("", w.lower()) for w in all_words} - {""}
        stats.unique_words = len(unique)
        stats.vocabulary_richness = round(len(unique) / len(all_words), 3) if all_words else None
        stats.words_per_segment = _ratio(stats.words, stats.segments)
        stats.average_segment_duration = _ratio(stats.duration, stats.segments)
        stats.tokens_per_second = _ratio(stats.tokens, stats.duration)
        rate = _ratio(stats.words, stats.duration / 60)
        stats.speaking_rate = round(rate, 1) if rate is not None else None
        stats.longest_monologue = max(stats.monologues, default=0.0)
        scores = confidence.get(speaker)
        stats.confidence_avg = sum(scores) / len(scores) if scores else None
    return analysis


def format_time(seconds: float) -> str:
    """m:ss.s"""
    minutes = int(seconds // 60)
    return f"{minutes}:{seconds % 60:04.1f}"


def _percent(value: float, total: float) -> str:
    return f"{value / total * 100:.1f}%" if total else "-"


def _number(value: float | None, digits: int = 1, suffix: str = "") -> str:
    return "-" if value is None else f"{value:.{digits}f}{suffix}"


def render_alignment_markdown(analysis: AlignmentAnalysis) -> str:
    totals = analysis.totals
    lines = [
        "# Speaker Alignment Analysis Report",
        "",
        "## Summary",
        "",
        f"- **Total Segments**: {totals.segments}",
        f"- **Total Duration**: {format_time(totals.duration)}",
        f"- **Total Words**: {totals.words}",
        f"- **Speaker Turns**: {analysis.turn_count}",
        f"- **Overlaps Detected**: {analysis.overlap_count}",
        f"- **Average Segment Duration**: {_number(totals.average_segment_duration, 2, 's')}",
        f"- **Average Words per Segment**: {_number(totals.average_words_per_segment)}",
        f"- **Overall Speaking Rate**: {_number(totals.speaking_rate, 1, ' words/minute')}",
        "",
        "### Most Common Speaker Transitions",
        "",
    ]
    for n, (name, movement) in enumerate(analysis.ranked_movements()[:TOP_MOVEMENTS], 1):
        lines.append(f"{n}. **{name}**: {movement['count']} times ({_percent(movement['count'], analysis.turn_count)})")

    lines += ["", "## Speaker Breakdown", ""]
    for speaker, stats in analysis.speakers.items():
        richness = None if stats.vocabulary_richness is None else stats.vocabulary_richness * 100
        lines += [
            f"### {speaker}",
            "",
            "| Metric | Value | Percentage |",
            "|--------|-------|------------|",
            f"| **Segments** | {stats.segments} | {_percent(stats.segments, totals.segments)} |",
            f"| **Duration** | {format_time(stats.duration)} | {_percent(stats.duration, totals.duration)} |",
            f"| **Words** | {stats.words} | {_percent(stats.words, totals.words)} |",
            f"| **Tokens** | {stats.tokens} | - |",
            f"| **Sentences** | {stats.sentences} | - |",
            "",
            f"- **Average Segment Duration**: {_number(stats.average_segment_duration, 2, 's')}",
            f"- **Words per Segment**: {_number(stats.words_per_segment)}",
            f"- **Speaking Rate**: {_number(stats.speaking_rate, 1, ' words/minute')}",
            f"- **Longest Monologue**: {format_time(stats.longest_monologue)}",
            f"- **Vocabulary Richness**: {_number(richness, 1, '%')}",
            f"- **Unique Words**: {stats.unique_words}",
        ]
        if stats.confidence_avg is not None:
            lines.append(f"- **Average Confidence**: {stats.confidence_avg * 100:.1f}%")
        lines.append("")

    lines += [
        "## Speaker Turns",
        "",
        "| Movement | Count | Percentage |",
        "|----------|-------|------------|",
    ]
    for name, movement in analysis.ranked_movements():
        lines.append(f"| **{name}** | {movement['count']} | {_percent(movement['count'], analysis.turn_count)} |")
    lines += ["", "### First Speaker Changes", ""]
    for n, turn in enumerate(analysis.turns[:SAMPLE_TURNS], 1):
        lines.append(f"{n}. **{turn['from'] or SILENCE}** → **{turn['to']}** ({format_time(turn['time'])})")

    if analysis.overlaps:
        lines += ["", "### Overlapping Speech", ""]
        for n, overlap in enumerate(analysis.overlaps[:SAMPLE_OVERLAPS], 1):
            lines.append(
                f"{n}. **{overlap['speaker_a']}** + **{overlap['speaker_b']}** ({format_time(overlap['duration'])})"
            )

    lines += [
        "",
        "## Detailed Statistics",
        "",
        "| Speaker | Segments | Duration | Words | Tokens | Sentences | Punctuation |",
        "|---------|----------|----------|-------|--------|-----------|-------------|",
    ]
    for speaker, stats in analysis.speakers.items():
        lines.append(
            f"| {speaker} | {stats.segments} | {format_time(stats.duration)} | {stats.words} "
            f"| {stats.tokens} | {stats.sentences} | {stats.punctuation} |"
        )
    lines.append(
        f"| **TOTAL** | {totals.segments} | {format_time(totals.duration)} | {totals.words} "
        f"| {totals.tokens} | {totals.sentences} | {totals.punctuation} |"
    )
    return "\n".join(lines) + "\n"


def write_alignment_report(
    original: list[dict[str, Any]], realigned: list[dict[str, Any]], out_dir: str | Path
) -> list[Path]:
    """
    Write the alignment report files into out_dir and return their paths:

    - alignment_differences.json (a message object when nothing changed)
    - speaker_field_differences.json, only when the speaker field differs somewhere
    - alignment_comprehensive_analysis.json, alignment_summary.json, alignment_summary.md
    """
    out_dir = Path(out_dir)
    changes = alignment_changes(original, realigned)
    differences_path = out_dir / "alignment_differences.json"
    if not changes:
        atomic_write_json(differences_path, {"message": "No speaker alignment differences found."})
        logger.info("No speaker alignment differences found")
        return [differences_path]

    logger.info("Found %s alignment changes", len(changes))
    atomic_write_json(differences_path, changes)
    written = [differences_path]

    speaker_diffs = field_differences(original, realigned, "speaker")
    if speaker_diffs:
        path = out_dir / "speaker_field_differences.json"
        atomic_write_json(path, speaker_diffs)
        written.append(path)

    analysis = analyze_changes(changes, original)
    payload = analysis.to_dict()
    for name, content in (
        ("alignment_comprehensive_analysis.json", payload),
        ("alignment_summary.json", {"speakers": payload["speakers"], "totals": payload["totals"]}),
    ):
        path = out_dir / name
        atomic_write_json(path, content)
        written.append(path)

    md_path = out_dir / "alignment_summary.md"
    md_path.write_text(render_alignment_markdown(analysis), encoding="utf-8")
    written.append(md_path)
    logger.info("Alignment report saved to %s", out_dir)
    return written
