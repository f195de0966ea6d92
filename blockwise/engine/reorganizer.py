"""Day reorganization for blockwise.

Repacks a single day's unfinished flexible blocks into the free time left
around fixed blocks and the lunch window. Placement is greedy first-fit in
priority order: fixed blocks never move, and a block that does not fit
anywhere is reported as removed instead of being moved.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, Field, model_validator

from blockwise.engine.errors import ReorganizationApplyError
from blockwise.engine.interfaces import PlacementUpdateFn
from blockwise.models.calendar_block import (
    ACTIVE_STATUSES,
    BlockPriority,
    BlockStatus,
    CalendarBlock,
    DemandType,
)
from blockwise.models.constants import (
    DEFAULT_BREAK_MINUTES,
    DEFAULT_LUNCH_DURATION_MINUTES,
    DEFAULT_LUNCH_START_HOUR,
    DEFAULT_WORKDAY_END_HOUR,
    DEFAULT_WORKDAY_START_HOUR,
)

logger = logging.getLogger(__name__)

# Lower rank sorts first
PRIORITY_RANK = {
    BlockPriority.URGENT.value: 0,
    BlockPriority.HIGH.value: 1,
    BlockPriority.MEDIUM.value: 2,
    BlockPriority.LOW.value: 3,
}


class WorkdayConfig(BaseModel):
    """Workday window, inter-block break and lunch window used for reorganization."""

    workday_start_hour: int = Field(DEFAULT_WORKDAY_START_HOUR, ge=0, le=23)
    workday_end_hour: int = Field(DEFAULT_WORKDAY_END_HOUR, ge=1, le=24)
    break_minutes: int = Field(DEFAULT_BREAK_MINUTES, ge=0)
    lunch_start_hour: int = Field(DEFAULT_LUNCH_START_HOUR, ge=0, le=23)
    lunch_duration_minutes: int = Field(DEFAULT_LUNCH_DURATION_MINUTES, ge=0)

    @model_validator(mode="after")
    def _validate_window(self):
        if self.workday_end_hour <= self.workday_start_hour:
            raise ValueError("workday_end_hour must be after workday_start_hour")
        return self


class TimeInterval(NamedTuple):
    """Half-open [start, end) span of time."""
    start: datetime
    end: datetime

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


class BlockPlacement(BaseModel):
    """New position computed for a flexible block."""

    id: str
    new_start: datetime
    new_end: datetime


class PostponementSuggestion(BaseModel):
    """Suggested date for a block that did not fit (never persisted by the engine)."""

    block: CalendarBlock
    suggested_date: date


class ReorganizeResult:
    """Result of reorganizing a day."""

    def __init__(self, day: date):
        self.day = day
        self.reorganized: List[BlockPlacement] = []
        self.removed: List[CalendarBlock] = []
        self.unchanged: List[CalendarBlock] = []

    @property
    def placed_count(self) -> int:
        return len(self.reorganized)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def message(self) -> str:
        if self.removed:
            return f"{self.placed_count} blocks reorganized, {self.removed_count} did not fit in the day"
        return f"{self.placed_count} blocks reorganized successfully"


def sort_for_reorganization(blocks: List[CalendarBlock]) -> List[CalendarBlock]:
    """Sort by priority (urgent first), then fixed before flexible, then original start time.

    This function is deterministic - same inputs always produce same outputs.
    """
    return sorted(
        blocks,
        key=lambda b: (
            PRIORITY_RANK.get(_value(b.priority), len(PRIORITY_RANK)),
            0 if _is_fixed(b) else 1,
            b.start_time,
        ),
    )


def build_occupied_intervals(
    day: date, fixed_blocks: List[CalendarBlock], config: WorkdayConfig
) -> List[TimeInterval]:
    """Lunch window plus every fixed block span, sorted by start."""
    lunch_start = datetime.combine(day, time(config.lunch_start_hour, 0))
    occupied = [TimeInterval(lunch_start, lunch_start + timedelta(minutes=config.lunch_duration_minutes))]
    for block in fixed_blocks:
        occupied.append(TimeInterval(block.start_time, block.end_time))
    occupied.sort(key=lambda interval: interval.start)
    return occupied


def find_free_slots(
    workday_start: datetime, workday_end: datetime, occupied: List[TimeInterval]
) -> List[TimeInterval]:
    """Complement of the (sorted) occupied intervals inside the workday window."""
    free_slots: List[TimeInterval] = []
    cursor = workday_start
    for interval in occupied:
        if cursor < interval.start:
            free_slots.append(TimeInterval(cursor, min(interval.start, workday_end)))
        if cursor < interval.end:
            cursor = interval.end
        if cursor >= workday_end:
            break
    if cursor < workday_end:
        free_slots.append(TimeInterval(cursor, workday_end))
    return free_slots


def place_first_fit(
    block: CalendarBlock, free_slots: List[TimeInterval], break_minutes: int
) -> Optional[BlockPlacement]:
    """Place a block into the first slot large enough for it plus the break.

    The chosen slot is replaced by index with its trailing remainder, so later
    blocks can still use it before any later slot is tried.
    """
    duration = timedelta(minutes=block.duration_minutes)
    half_break = timedelta(minutes=break_minutes / 2)
    need_minutes = block.duration_minutes + break_minutes

    for i, slot in enumerate(free_slots):
        if slot.minutes < need_minutes:
            continue
        new_start = slot.start + half_break
        new_end = new_start + duration
        free_slots[i] = TimeInterval(new_end + half_break, slot.end)
        return BlockPlacement(id=block.id, new_start=new_start, new_end=new_end)
    return None


def reorganize_day(
    day: date,
    blocks: List[CalendarBlock],
    config: Optional[WorkdayConfig] = None,
) -> ReorganizeResult:
    """Compute a new placement for the day's flexible blocks.

    - Completed blocks pass through untouched
    - Pending / in-progress blocks are sorted by priority, fixed first, then start time
    - Fixed blocks and the lunch window are obstacles
    - Flexible blocks are packed first-fit into the remaining free slots

    Nothing is persisted here; see `apply_reorganization`.

    Re-running on an applied day is stable only when everything fit. A removed
    block keeps its old start time, so a later run can sort it ahead of a block
    that was placed and give it that block's slot.

    Args:
        day: The day being reorganized
        blocks: The day's blocks
        config: Workday configuration (defaults to 08:00-22:00, 15 min break, lunch 12:00 for 60 min)

    Returns:
        ReorganizeResult with placements, removed (unplaced) blocks and unchanged blocks
    """
    if config is None:
        config = WorkdayConfig()
    result = ReorganizeResult(day)

    completed = [b for b in blocks if _value(b.status) == BlockStatus.COMPLETED.value]
    pending = sort_for_reorganization([b for b in blocks if _value(b.status) in ACTIVE_STATUSES])
    fixed = [b for b in pending if _is_fixed(b)]
    flexible = [b for b in pending if not _is_fixed(b)]

    workday_start = datetime.combine(day, time(config.workday_start_hour, 0))
    workday_end = datetime.combine(day, time(0, 0)) + timedelta(hours=config.workday_end_hour)
    occupied = build_occupied_intervals(day, fixed, config)
    free_slots = find_free_slots(workday_start, workday_end, occupied)

    for block in flexible:
        placement = place_first_fit(block, free_slots, config.break_minutes)
        if placement is None:
            result.removed.append(block)
        else:
            result.reorganized.append(placement)

    result.unchanged = fixed + completed

    logger.debug(
        f"Reorganized {day.isoformat()}: placed={result.placed_count} removed={result.removed_count} "
        f"free_slots={len(free_slots)}"
    )
    return result


def apply_reorganization(result: ReorganizeResult, update_fn: PlacementUpdateFn) -> List[str]:
    """Persist placements one at a time, strictly in placement order.

    Updates are never issued concurrently so the day's final state is
    reproducible. There is no rollback: if an update fails, the placements
    already applied stay applied and ReorganizationApplyError reports them.

    Args:
        result: Output of reorganize_day
        update_fn: Callable (block_id, new_start, new_end) -> success

    Returns:
        Ids of the moved blocks, in application order
    """
    applied: List[str] = []
    for placement in result.reorganized:
        try:
            ok = update_fn(placement.id, placement.new_start, placement.new_end)
        except Exception as e:
            logger.error(f"Failed to move block {placement.id}: {type(e).__name__}: {str(e)}")
            raise ReorganizationApplyError(placement.id, applied, cause=e) from e
        if not ok:
            logger.error(f"Failed to move block {placement.id}: store reported failure")
            raise ReorganizationApplyError(placement.id, applied)
        applied.append(placement.id)
    return applied


def suggest_postponement(removed_blocks: List[CalendarBlock], target_date: date) -> List[PostponementSuggestion]:
    """Suggest moving every unplaced block to the day after target_date."""
    suggested = target_date + timedelta(days=1)
    return [PostponementSuggestion(block=block, suggested_date=suggested) for block in removed_blocks]


def _is_fixed(block: CalendarBlock) -> bool:
    return _value(block.demand_type) == DemandType.FIXED.value


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)
