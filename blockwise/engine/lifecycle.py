"""Block lifecycle transitions.

Completion metadata (actual_start_time, actual_end_time, completed_at) is
written only here; reorganization and recurrence expansion never touch it.
"""

from datetime import datetime
from typing import Optional

from blockwise.engine.interfaces import BlockStore
from blockwise.models.calendar_block import BlockStatus, CalendarBlock


def start_block(store: BlockStore, block_id: str, now: Optional[datetime] = None) -> Optional[CalendarBlock]:
    """Mark a block in progress and stamp actual_start_time."""
    block = store.find(block_id)
    if block is None:
        return None
    if block.status in (BlockStatus.COMPLETED.value, BlockStatus.IN_PROGRESS.value):
        return block
    now = now or datetime.utcnow()
    return store.update(
        block_id,
        {"status": BlockStatus.IN_PROGRESS.value, "actual_start_time": now, "updated_at": now},
    )


def complete_block(store: BlockStore, block_id: str, now: Optional[datetime] = None) -> Optional[CalendarBlock]:
    """Mark a block completed; completing twice keeps the first completion."""
    block = store.find(block_id)
    if block is None:
        return None
    if block.status == BlockStatus.COMPLETED.value:
        return block
    now = now or datetime.utcnow()
    return store.update(
        block_id,
        {
            "status": BlockStatus.COMPLETED.value,
            "completed_at": now,
            "actual_end_time": now,
            "updated_at": now,
        },
    )
