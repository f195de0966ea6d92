"""Scheduling engine for blockwise."""

from blockwise.engine.errors import InvalidRecurrenceError, InvalidTimeRangeError, ReorganizationApplyError
from blockwise.engine.reorganizer import (
    reorganize_day,
    apply_reorganization,
    suggest_postponement,
    ReorganizeResult,
    WorkdayConfig,
    BlockPlacement,
    PostponementSuggestion,
)
from blockwise.engine.lifecycle import start_block, complete_block
from blockwise.engine.stats import compute_daily_stats, DailyStats

__all__ = [
    "InvalidRecurrenceError",
    "InvalidTimeRangeError",
    "ReorganizationApplyError",
    "reorganize_day",
    "apply_reorganization",
    "suggest_postponement",
    "ReorganizeResult",
    "WorkdayConfig",
    "BlockPlacement",
    "PostponementSuggestion",
    "start_block",
    "complete_block",
    "compute_daily_stats",
    "DailyStats",
]
