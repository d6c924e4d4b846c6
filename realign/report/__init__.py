"""Reports over realigned transcripts."""
from realign.report.alignment import (
    AlignmentAnalysis,
    alignment_changes,
    analyze_changes,
    field_differences,
    render_alignment_markdown,
    write_alignment_report,
)
from realign.report.compare import RunComparison, compare_runs, render_markdown, write_comparison

__all__ = [
    "AlignmentAnalysis",
    "RunComparison",
    "alignment_changes",
    "analyze_changes",
    "compare_runs",
    "field_differences",
    "render_alignment_markdown",
    "render_markdown",
    "write_alignment_report",
    "write_comparison",
]
