"""Window planning for the relabeling service."""
from realign.batching.planner import (
    MIN_WINDOW_SEGMENTS,
    BatchConfig,
    Window,
    estimate_tokens,
    plan_fixed_windows,
    plan_token_windows,
    plan_windows,
)

__all__ = [
    "MIN_WINDOW_SEGMENTS",
    "BatchConfig",
    "Window",
    "estimate_tokens",
    "plan_fixed_windows",
    "plan_token_windows",
    "plan_windows",
]
