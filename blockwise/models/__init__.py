"""Data models for blockwise."""

from blockwise.models.calendar_block import (
    CalendarBlock,
    DemandType,
    BlockPriority,
    BlockStatus,
    RecurrenceType,
    ACTIVE_STATUSES,
)
from blockwise.models.recurrence import RecurrenceRule, RecurrenceFrequency, Weekday
from blockwise.models.notification import Notification
from blockwise.models.user import User

__all__ = [
    "CalendarBlock",
    "DemandType",
    "BlockPriority",
    "BlockStatus",
    "RecurrenceType",
    "ACTIVE_STATUSES",
    "RecurrenceRule",
    "RecurrenceFrequency",
    "Weekday",
    "Notification",
    "User",
]
