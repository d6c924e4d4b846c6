"""
Batch planner: split the ordered transcript into overlapping windows for the relabeling service.

Two policies (one per run):
- fixed: windows of exactly window_size segments, start advancing by stride = window_size - overlap.
  The trailing window shorter than window_size is dropped unless emit_trailing is set, so the
  last < window_size segments of a conversation may never be realigned.
- token_budget: grow a window until the estimated token cost would exceed token_budget, then close
  it and carry floor(len * overlap_ratio) trailing segments into the next window.

Window.overlap is the number of leading segments shared with the previous window; the stitcher
never commits those.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal

from realign.config import Settings, get_settings
from realign.errors import ConfigError
from realign.segments.models import Segment

logger = logging.getLogger(__name__)

# Relabeling service rejects requests with fewer segments than this
MIN_WINDOW_SEGMENTS = 2


@dataclass
class BatchConfig:
    """Window planning parameters. Only the fields of the selected policy are used."""

    policy: Literal["fixed", "token_budget"] = "fixed"
    window_size: int = 50
    overlap: int = 10
    token_budget: int = 3000
    overlap_ratio: float = 0.25
    emit_trailing: bool = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "BatchConfig":
        s = settings or get_settings()
        return cls(
            policy=s.BATCH_POLICY,
            window_size=s.BATCH_WINDOW_SIZE,
            overlap=s.BATCH_OVERLAP,
            token_budget=s.BATCH_TOKEN_BUDGET,
            overlap_ratio=s.BATCH_OVERLAP_RATIO,
            emit_trailing=s.BATCH_EMIT_TRAILING,
        )


@dataclass
class Window:
    """Contiguous run of segments starting at absolute index start_offset."""

    segments: list[Segment]
    start_offset: int
    overlap: int = 0

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def end_offset(self) -> int:
        """Absolute index one past the last segment."""
        return self.start_offset + len(self.segments)


def _shared_with_previous(windows: list[Window], start: int, length: int) -> int:
    """Leading segments of a new window already covered by the last planned window."""
    if not windows:
        return 0
    return max(0, min(length, windows[-1].end_offset - start))


def estimate_tokens(text: str) -> int:
    """Cheap token estimate: whitespace words / 0.75. Not a real tokenizer."""
    words = (text or "").split()
    return math.ceil(len(words) / 0.75)


def plan_fixed_windows(
    segments: list[Segment],
    window_size: int,
    overlap: int,
    emit_trailing: bool = False,
) -> list[Window]:
    """Fixed-size windows [start, start + window_size) with start += window_size - overlap."""
    if window_size <= 0:
        raise ConfigError(f"window_size must be positive, got {window_size}")
    if overlap < 0:
        raise ConfigError(f"overlap must be >= 0, got {overlap}")
    stride = window_size - overlap
    if stride <= 0:
        raise ConfigError(f"overlap ({overlap}) must be smaller than window_size ({window_size})")

    windows: list[Window] = []
    total = len(segments)
    for start in range(0, total, stride):
        chunk = segments[start:start + window_size]
        if len(chunk) < window_size:
            if emit_trailing:
                _append_trailing(windows, segments, start)
            else:
                logger.debug(
                    "Dropping trailing window at %s (%s < %s segments)", start, len(chunk), window_size
                )
            break
        windows.append(
            Window(segments=chunk, start_offset=start, overlap=_shared_with_previous(windows, start, len(chunk)))
        )
    return windows


def _append_trailing(windows: list[Window], segments: list[Segment], start: int) -> None:
    """Undersized last window; only when it adds new segments and meets the service minimum."""
    chunk = segments[start:]
    shared = _shared_with_previous(windows, start, len(chunk))
    if len(chunk) <= shared or len(chunk) < MIN_WINDOW_SEGMENTS:
        return
    windows.append(Window(segments=chunk, start_offset=start, overlap=shared))


def plan_token_windows(
    segments: list[Segment],
    token_budget: int,
    overlap_ratio: float,
) -> list[Window]:
    """Token-budgeted windows. Windows with fewer than 2 segments are discarded."""
    if token_budget <= 0:
        raise ConfigError(f"token_budget must be positive, got {token_budget}")
    if not 0.0 <= overlap_ratio < 1.0:
        raise ConfigError(f"overlap_ratio must be in [0, 1), got {overlap_ratio}")

    windows: list[Window] = []
    batch: list[Segment] = []
    batch_start = 0
    token_count = 0

    def close(batch: list[Segment], start: int) -> None:
        if len(batch) < MIN_WINDOW_SEGMENTS:
            logger.debug("Discarding window at %s with %s segment(s)", start, len(batch))
            return
        shared = _shared_with_previous(windows, start, len(batch))
        windows.append(Window(segments=batch, start_offset=start, overlap=shared))

    for i, segment in enumerate(segments):
        cost = estimate_tokens(segment.transcription)
        if batch and token_count + cost > token_budget:
            close(batch, batch_start)
            carried = math.floor(len(batch) * overlap_ratio)
            tail = batch[len(batch) - carried:] if carried else []
            batch = list(tail)
            batch_start = i - carried
            token_count = sum(estimate_tokens(s.transcription) for s in tail)
        batch.append(segment)
        token_count += cost

    if batch:
        close(batch, batch_start)
    return windows


def plan_windows(segments: list[Segment], config: BatchConfig | None = None) -> list[Window]:
    """Plan windows for the configured policy."""
    config = config or BatchConfig.from_settings()
    if config.policy == "fixed":
        windows = plan_fixed_windows(segments, config.window_size, config.overlap, config.emit_trailing)
    elif config.policy == "token_budget":
        windows = plan_token_windows(segments, config.token_budget, config.overlap_ratio)
    else:
        raise ConfigError(f"Unknown batch policy: {config.policy!r}")

    covered = windows[-1].end_offset if windows else 0
    if covered < len(segments):
        logger.warning(
            "Segments %s-%s are not covered by any window and will stay unresolved",
            covered, len(segments) - 1,
        )
    return windows
