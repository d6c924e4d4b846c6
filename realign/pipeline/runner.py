"""
Run loop: realign a whole conversation window by window.

Windows are processed strictly in order, one request at a time. A window that fails
(transport, bad response, strict length mismatch) is logged with its raw error and
skipped; its new segments keep aligned_speaker unset. The partial checkpoint is
rewritten after every window, success or failure, and the final checkpoint once the
loop is done. Checkpoint I/O errors are not caught.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Protocol

from realign.batching.planner import BatchConfig, Window, plan_windows
from realign.errors import FormatError, LengthMismatch, TransportError
from realign.pipeline.checkpoint import CheckpointWriter
from realign.pipeline.stitcher import apply_window_result
from realign.schemas.relabel import RelabelSegment
from realign.segments.models import Segment

logger = logging.getLogger(__name__)


class WindowSubmitter(Protocol):
    def submit(self, window: Window) -> list[RelabelSegment]:
        ...


@dataclass
class WindowOutcome:
    """Per-window record: number is 1-based, error is None on success."""

    number: int
    start_offset: int
    size: int
    elapsed_sec: float
    committed: int = 0
    length_mismatch: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunSummary:
    total_segments: int
    windows: list[WindowOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for w in self.windows if w.ok)

    @property
    def failed(self) -> list[WindowOutcome]:
        return [w for w in self.windows if not w.ok]

    @property
    def resolved(self) -> int:
        return sum(w.committed for w in self.windows)


def run_windows(
    sequence: list[Segment],
    windows: list[Window],
    client: WindowSubmitter,
    checkpoints: CheckpointWriter,
    strict_length: bool = False,
) -> RunSummary:
    """Submit each window in order, stitch successes into sequence, checkpoint after each."""
    summary = RunSummary(total_segments=len(sequence))
    total = len(windows)

    for number, window in enumerate(windows, start=1):
        logger.info("Processing batch %s of %s", number, total)
        started = time.monotonic()
        outcome = WindowOutcome(number=number, start_offset=window.start_offset, size=len(window), elapsed_sec=0.0)
        try:
            result = client.submit(window)
            report = apply_window_result(window, result, sequence, strict=strict_length)
            outcome.committed = len(report.committed)
            outcome.length_mismatch = report.length_mismatch
            checkpoints.save_batch_artifact(number, result)
        except (TransportError, FormatError, LengthMismatch) as e:
            outcome.error = str(e)
            logger.error("Failed batch %s: %s", number, e)

        checkpoints.save_partial(sequence)
        outcome.elapsed_sec = time.monotonic() - started
        summary.windows.append(outcome)
        logger.info("Batch %s processed in %.2f seconds", number, outcome.elapsed_sec)

    checkpoints.save_final(sequence)
    logger.info(
        "Processed %s of %s batches (%s failed); %s of %s segments resolved",
        summary.processed, total, len(summary.failed), summary.resolved, summary.total_segments,
    )
    return summary


def realign_segments(
    sequence: list[Segment],
    client: WindowSubmitter,
    checkpoints: CheckpointWriter,
    batch_config: BatchConfig | None = None,
    strict_length: bool = False,
) -> RunSummary:
    """Plan windows for sequence and run them. ConfigError from planning is raised before any request."""
    windows = plan_windows(sequence, batch_config)
    logger.info("Planned %s batches for %s segments", len(windows), len(sequence))
    return run_windows(sequence, windows, client, checkpoints, strict_length=strict_length)
