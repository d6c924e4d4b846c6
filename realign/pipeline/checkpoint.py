"""
CheckpointWriter: durable progress for a realignment run.

- partial: full sequence, overwritten after every window (recovery point if the process dies)
- batch artifact: raw result of window N, realigned_batch_NNN.json (N from 1), for audit
- final: full sequence once the run loop exits

Every file is written to a temp file in the target directory and renamed over the
destination, so a crash mid-write never leaves a truncated checkpoint. I/O errors
propagate: a run that cannot checkpoint must stop.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from realign.config import Settings, get_settings
from realign.schemas.relabel import RelabelSegment
from realign.segments.models import Segment
from realign.segments.store import dump_segments

logger = logging.getLogger(__name__)


def atomic_write_json(path: Path, payload: Any) -> None:
    """Write JSON to path via temp file + os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def batch_artifact_name(window_number: int) -> str:
    return f"realigned_batch_{window_number:03d}.json"


class CheckpointWriter:
    """Checkpoint files for one input stem, e.g. callout -> callout_realigned_partial.json."""

    def __init__(self, output_dir: str | Path, stem: str, batch_dir_name: str = "realigned_batches") -> None:
        self._output_dir = Path(output_dir)
        self.partial_path = self._output_dir / f"{stem}_realigned_partial.json"
        self.final_path = self._output_dir / f"{stem}_realigned.json"
        self.batch_dir = self._output_dir / batch_dir_name

    @classmethod
    def for_input(cls, input_path: str | Path, output_dir: str | Path | None = None,
                  settings: Settings | None = None) -> "CheckpointWriter":
        s = settings or get_settings()
        return cls(
            output_dir=output_dir or s.OUTPUT_DIR,
            stem=Path(input_path).stem,
            batch_dir_name=s.BATCH_ARTIFACT_DIR,
        )

    def save_partial(self, sequence: list[Segment]) -> Path:
        atomic_write_json(self.partial_path, dump_segments(sequence))
        logger.info("Intermediate result saved to: %s", self.partial_path)
        return self.partial_path

    def save_batch_artifact(self, window_number: int, result: list[RelabelSegment]) -> Path:
        path = self.batch_dir / batch_artifact_name(window_number)
        atomic_write_json(path, [entry.model_dump() for entry in result])
        logger.info("Saved batch to: %s", path.name)
        return path

    def save_final(self, sequence: list[Segment]) -> Path:
        atomic_write_json(self.final_path, dump_segments(sequence))
        logger.info("Realignment complete. Final output saved to: %s", self.final_path)
        return self.final_path
