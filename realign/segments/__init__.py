"""Transcript segments: model, loading, and recovery of damaged input files."""
from realign.segments.models import UNKNOWN_SPEAKER, Segment
from realign.segments.recovery import recover_transcriptions, wrap_recovered
from realign.segments.store import dump_segments, load_segments, segments_from_payload

__all__ = [
    "UNKNOWN_SPEAKER",
    "Segment",
    "dump_segments",
    "load_segments",
    "recover_transcriptions",
    "segments_from_payload",
    "wrap_recovered",
]
