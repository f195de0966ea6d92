"""Recurrence models for blockwise.

A recurrence rule lives on a parent calendar block and is expanded into concrete
follow-up blocks (see `blockwise.recurrence.expand`).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Weekday(str, Enum):
    MO = "mo"
    TU = "tu"
    WE = "we"
    TH = "th"
    FR = "fr"
    SA = "sa"
    SU = "su"


# Python weekday(): Monday=0 ... Sunday=6
WEEKDAYS_BY_INDEX: List[str] = [d.value for d in Weekday]


def weekday_of(d: date) -> str:
    """Return the weekday code (``"mo"``..``"su"``) for a date or datetime."""
    return WEEKDAYS_BY_INDEX[d.weekday()]


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware timestamp to naive UTC; naive values pass through."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RecurrenceRule(BaseModel):
    """How a parent block repeats.

    Notes:
    - `interval` counts days/weeks/months depending on `frequency`.
    - For weekly rules with `days_of_week`, occurrences land on each listed weekday.
    - `until` and `count` bound the expansion; defaults apply when both are absent.
    """

    frequency: RecurrenceFrequency
    interval: int = Field(1, ge=1, description="Every N units (days/weeks/months)")
    days_of_week: Optional[List[Weekday]] = Field(
        None, description="For weekly recurrence: weekdays on which it occurs"
    )
    until: Optional[datetime] = Field(None, description="Stop generating at this timestamp (exclusive)")
    count: Optional[int] = Field(None, ge=1, description="Total occurrences, including the parent")

    @field_validator("until")
    @classmethod
    def _normalize_until(cls, v, info):
        return to_naive_utc(v)

    @field_validator("days_of_week")
    @classmethod
    def _validate_days_of_week(cls, v, info):
        if v is None:
            return None
        # Deduplicate but preserve order
        seen = set()
        out: List[Weekday] = []
        for day in v:
            if day not in seen:
                seen.add(day)
                out.append(day)
        return out

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
