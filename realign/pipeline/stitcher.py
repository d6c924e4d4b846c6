"""
Stitcher: write one window's relabeled speakers back onto the full sequence.

Only the window's "new" part commits: the first window.overlap entries are prompt
context for the model and were already written by the previous window. Every index
covered by several windows therefore has exactly one writer. Re-applying the same
result is idempotent.

The sequence is borrowed for the duration of one call; nothing keeps a reference to it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from realign.batching.planner import Window
from realign.errors import LengthMismatch
from realign.schemas.relabel import RelabelSegment
from realign.segments.models import Segment

logger = logging.getLogger(__name__)


@dataclass
class StitchReport:
    """Outcome of one apply_window_result() call."""

    start_offset: int
    expected: int
    received: int
    committed: list[int] = field(default_factory=list)

    @property
    def length_mismatch(self) -> bool:
        return self.expected != self.received


def apply_window_result(
    window: Window,
    result: list[RelabelSegment],
    sequence: list[Segment],
    strict: bool = False,
) -> StitchReport:
    """
    Set aligned_speaker for absolute indices window.start_offset + j, j >= window.overlap.
    Entries beyond the sequence are ignored. With strict=True a length mismatch raises
    LengthMismatch before anything is written.
    """
    report = StitchReport(start_offset=window.start_offset, expected=len(window), received=len(result))
    if report.length_mismatch:
        if strict:
            raise LengthMismatch(report.expected, report.received, window.start_offset)
        logger.warning(
            "Window at %s: expected %s entries, got %s; stitching what is in range",
            window.start_offset, report.expected, report.received,
        )

    for j in range(window.overlap, len(result)):
        absolute = window.start_offset + j
        if absolute >= len(sequence):
            break
        sequence[absolute].aligned_speaker = result[j].speaker
        report.committed.append(absolute)
    return report
