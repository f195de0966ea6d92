"""CalendarBlock creation factory for blockwise.

Centralizes block creation so new blocks and generated recurrence instances
get consistent ids, timestamps and defaults.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from blockwise.models.calendar_block import (
    CalendarBlock,
    DemandType,
    BlockPriority,
    BlockStatus,
    RecurrenceType,
)
from blockwise.models.constants import DEFAULT_BLOCK_COLOR, DEFAULT_BLOCK_TITLE
from blockwise.models.recurrence import RecurrenceRule


def create_block_defaults() -> Dict[str, Any]:
    """Get default block values as a dictionary."""
    return {
        "title": DEFAULT_BLOCK_TITLE,
        "description": None,
        "color": DEFAULT_BLOCK_COLOR,
        "demand_type": DemandType.FLEXIBLE,
        "priority": BlockPriority.MEDIUM,
        "status": BlockStatus.PENDING,
        "recurrence_type": RecurrenceType.NONE,
        "recurrence_rule": None,
        "recurrence_parent_id": None,
        "actual_start_time": None,
        "actual_end_time": None,
        "completed_at": None,
    }


def create_block_base(
    user_id: str,
    start_time: datetime,
    end_time: datetime,
    title: Optional[str] = None,
    description: Optional[str] = None,
    color: Optional[str] = None,
    demand_type: Optional[DemandType] = None,
    priority: Optional[BlockPriority] = None,
    recurrence_type: Optional[RecurrenceType] = None,
    recurrence_rule: Optional[RecurrenceRule] = None,
    block_id: Optional[str] = None,
) -> CalendarBlock:
    """Create a CalendarBlock with defaults applied.

    Args:
        user_id: Owner of the block
        start_time: Block start
        end_time: Block end (must be after start_time)
        title: Optional title (defaults to DEFAULT_BLOCK_TITLE)
        block_id: Optional explicit id (a new UUID v4 otherwise)

    Returns:
        Validated CalendarBlock
    """
    now = datetime.utcnow()
    values = create_block_defaults()
    values.update(
        {
            "id": block_id or str(uuid.uuid4()),
            "user_id": user_id,
            "start_time": start_time,
            "end_time": end_time,
            "created_at": now,
            "updated_at": now,
        }
    )
    if title and title.strip():
        values["title"] = title.strip()
    if description is not None:
        values["description"] = description
    if color:
        values["color"] = color
    if demand_type is not None:
        values["demand_type"] = demand_type
    if priority is not None:
        values["priority"] = priority
    if recurrence_type is not None:
        values["recurrence_type"] = recurrence_type
    if recurrence_rule is not None:
        values["recurrence_rule"] = recurrence_rule
        if values["recurrence_type"] == RecurrenceType.NONE:
            # A rule without an explicit type takes its type from the rule frequency.
            values["recurrence_type"] = RecurrenceType(_value(recurrence_rule.frequency))
    return CalendarBlock(**values)


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)
