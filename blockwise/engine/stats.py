"""Daily execution statistics for blockwise."""

from datetime import date
from typing import List

from pydantic import BaseModel

from blockwise.models.calendar_block import BlockStatus, CalendarBlock


class DailyStats(BaseModel):
    """How much of a day's plan was executed."""

    day: date
    total: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    cancelled: int = 0
    postponed: int = 0
    planned_minutes: int = 0
    completed_minutes: int = 0
    execution_score: int = 0  # percent of blocks completed


def compute_daily_stats(day: date, blocks: List[CalendarBlock]) -> DailyStats:
    """Summarize the blocks that start on `day`."""
    day_blocks = [b for b in blocks if b.start_time.date() == day]
    by_status = {s.value: 0 for s in BlockStatus}
    for block in day_blocks:
        status = getattr(block.status, "value", block.status)
        by_status[status] = by_status.get(status, 0) + 1

    total = len(day_blocks)
    completed = by_status[BlockStatus.COMPLETED.value]
    return DailyStats(
        day=day,
        total=total,
        completed=completed,
        pending=by_status[BlockStatus.PENDING.value],
        in_progress=by_status[BlockStatus.IN_PROGRESS.value],
        cancelled=by_status[BlockStatus.CANCELLED.value],
        postponed=by_status[BlockStatus.POSTPONED.value],
        planned_minutes=sum(b.duration_minutes for b in day_blocks),
        completed_minutes=sum(
            b.duration_minutes for b in day_blocks if b.status == BlockStatus.COMPLETED.value
        ),
        # Round half up (12.5 -> 13)
        execution_score=int(completed * 100 / total + 0.5) if total else 0,
    )
