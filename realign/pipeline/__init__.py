"""Realignment run loop: stitching and checkpointing."""
from realign.pipeline.checkpoint import CheckpointWriter, atomic_write_json
from realign.pipeline.runner import RunSummary, WindowOutcome, realign_segments, run_windows
from realign.pipeline.stitcher import StitchReport, apply_window_result

__all__ = [
    "CheckpointWriter",
    "RunSummary",
    "StitchReport",
    "WindowOutcome",
    "apply_window_result",
    "atomic_write_json",
    "realign_segments",
    "run_windows",
]
