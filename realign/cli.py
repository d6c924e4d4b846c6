"""
Command line entry point: python -m realign <command>.

  run INPUT        realign speakers of a transcript through the relabeling service
  recover IN OUT   salvage transcriptions from a damaged transcript file
  compare A B      compare two realigned outputs
  analyze ORIG NEW analyze what realignment changed against the upstream transcript
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from realign.batching.planner import BatchConfig
from realign.config import get_settings
from realign.errors import ConfigError, FormatError
from realign.logging_setup import configure_logging
from realign.pipeline.checkpoint import CheckpointWriter, atomic_write_json
from realign.pipeline.runner import realign_segments
from realign.report.alignment import write_alignment_report
from realign.report.compare import compare_runs, write_comparison
from realign.segments.recovery import recover_transcriptions, wrap_recovered
from realign.segments.store import extract_segment_dicts, load_segments
from realign.services.relabel_client import RelabelClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="realign")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Realign speaker labels of a transcript")
    run.add_argument("input_path")
    run.add_argument("--out", dest="out_dir")
    run.add_argument("--policy", choices=("fixed", "token_budget"))
    run.add_argument("--window-size", type=int)
    run.add_argument("--overlap", type=int)
    run.add_argument("--token-budget", type=int)
    run.add_argument("--overlap-ratio", type=float)
    run.add_argument("--emit-trailing", action="store_true", default=None)
    run.add_argument("--strict-length", action="store_true", default=None)

    recover = sub.add_parser("recover", help="Recover transcriptions from a damaged file")
    recover.add_argument("input_path")
    recover.add_argument("output_path")

    compare = sub.add_parser("compare", help="Compare two realigned outputs")
    compare.add_argument("run1_path")
    compare.add_argument("run2_path")
    compare.add_argument("--out", dest="out_dir", default=".")

    analyze = sub.add_parser("analyze", help="Analyze speaker changes against the upstream transcript")
    analyze.add_argument("original_path")
    analyze.add_argument("realigned_path")
    analyze.add_argument("--out", dest="out_dir", default=".")
    return parser


def _batch_config(args: argparse.Namespace) -> BatchConfig:
    config = BatchConfig.from_settings()
    overrides = {
        "policy": args.policy,
        "window_size": args.window_size,
        "overlap": args.overlap,
        "token_budget": args.token_budget,
        "overlap_ratio": args.overlap_ratio,
        "emit_trailing": args.emit_trailing,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    return config


def _cmd_run(args: argparse.Namespace) -> int:
    settings = get_settings()
    batch_config = _batch_config(args)
    strict = settings.STITCH_STRICT_LENGTH if args.strict_length is None else args.strict_length
    segments = load_segments(args.input_path)
    checkpoints = CheckpointWriter.for_input(args.input_path, args.out_dir, settings)
    with RelabelClient.from_settings(settings) as client:
        summary = realign_segments(segments, client, checkpoints, batch_config, strict_length=strict)
    for failed in summary.failed:
        logger.warning("Batch %s (offset %s) unresolved: %s", failed.number, failed.start_offset, failed.error)
    return 0


def _cmd_recover(args: argparse.Namespace) -> int:
    raw = Path(args.input_path).read_text(encoding="utf-8")
    transcriptions = recover_transcriptions(raw)
    atomic_write_json(Path(args.output_path), wrap_recovered(transcriptions))
    logger.info("Recovered %s transcription entries to %s", len(transcriptions), args.output_path)
    return 0


def _load_run(path: str) -> list[dict]:
    with open(path, "r", encoding="utf-8") as f:
        return extract_segment_dicts(json.load(f))


def _cmd_compare(args: argparse.Namespace) -> int:
    comparison = compare_runs(_load_run(args.run1_path), _load_run(args.run2_path))
    write_comparison(comparison, args.out_dir)
    return 0


def _cmd_analyze(args: argparse.Namespace) -> int:
    write_alignment_report(_load_run(args.original_path), _load_run(args.realigned_path), args.out_dir)
    return 0


_COMMANDS = {"run": _cmd_run, "recover": _cmd_recover, "compare": _cmd_compare, "analyze": _cmd_analyze}


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(level=args.log_level)
        return _COMMANDS[args.command](args)
    except (ConfigError, ValidationError) as e:
        logger.error("Configuration error: %s", e)
        return 2
    except (FormatError, OSError, json.JSONDecodeError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
