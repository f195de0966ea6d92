"""Expand a parent block's recurrence rule into concrete CalendarBlock instances."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from blockwise.engine.errors import InvalidRecurrenceError, InvalidTimeRangeError
from blockwise.models.calendar_block import BlockStatus, CalendarBlock, RecurrenceType
from blockwise.models.constants import (
    DEFAULT_RECURRENCE_HORIZON_MONTHS,
    DEFAULT_RECURRENCE_MAX_OCCURRENCES,
)
from blockwise.models.recurrence import RecurrenceFrequency, RecurrenceRule, to_naive_utc, weekday_of

logger = logging.getLogger(__name__)


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def validate_parent(parent: CalendarBlock) -> None:
    """Reject parents with an empty or inverted time range."""
    if parent.end_time <= parent.start_time:
        raise InvalidTimeRangeError(
            f"Block {parent.id} has end_time {parent.end_time.isoformat()} "
            f"not after start_time {parent.start_time.isoformat()}"
        )


def validate_rule(rule: Optional[RecurrenceRule]) -> RecurrenceRule:
    if rule is None:
        raise InvalidRecurrenceError("A recurrence rule is required for expansion")
    if rule.interval is None or int(rule.interval) < 1:
        raise InvalidRecurrenceError(f"Recurrence interval must be positive, got {rule.interval}")
    if rule.count is not None and int(rule.count) < 1:
        raise InvalidRecurrenceError(f"Recurrence count must be positive, got {rule.count}")
    return rule


def expansion_limits(parent: CalendarBlock, rule: RecurrenceRule) -> tuple[datetime, int]:
    """Return (limit_date, limit_count) for an expansion run.

    An aware `until` is compared as naive UTC, matching stored block times.
    """
    limit_date = to_naive_utc(rule.until) or (
        parent.start_time + relativedelta(months=DEFAULT_RECURRENCE_HORIZON_MONTHS)
    )
    limit_count = int(rule.count) if rule.count is not None else DEFAULT_RECURRENCE_MAX_OCCURRENCES
    return limit_date, limit_count


def next_occurrence(current: datetime, rule: RecurrenceRule) -> datetime:
    """Advance one occurrence according to the rule's frequency.

    Weekly rules with days_of_week step to the nearest following day whose
    weekday is listed; `interval` is not applied on that path.
    """
    frequency = _value(rule.frequency)
    interval = int(rule.interval)

    if frequency == RecurrenceFrequency.DAILY.value:
        return current + timedelta(days=interval)

    if frequency == RecurrenceFrequency.WEEKLY.value:
        days = {_value(d) for d in (rule.days_of_week or [])}
        if not days:
            return current + timedelta(weeks=interval)
        candidate = current + timedelta(days=1)
        for _ in range(7):
            if weekday_of(candidate) in days:
                return candidate
            candidate = candidate + timedelta(days=1)
        # Unreachable with a non-empty set of valid weekdays.
        raise InvalidRecurrenceError(f"No valid weekday in {sorted(days)}")

    if frequency == RecurrenceFrequency.MONTHLY.value:
        return current + relativedelta(months=interval)

    raise InvalidRecurrenceError(f"Unsupported recurrence frequency: {frequency}")


def expand_recurrence(parent: CalendarBlock, rule: Optional[RecurrenceRule] = None) -> List[CalendarBlock]:
    """Generate the follow-up instances of a recurring parent block.

    The first occurrence is the parent itself and is not emitted. Generation
    stops at whichever comes first: `rule.until` (default: parent start + 3
    months) or `rule.count` total occurrences including the parent (default 90).
    The full list is computed before anything is persisted.

    Args:
        parent: Block that owns the rule
        rule: Recurrence rule (defaults to parent.recurrence_rule)

    Returns:
        New CalendarBlock instances in start-time order, ready for bulk insert

    Raises:
        InvalidTimeRangeError: parent end_time is not after start_time
        InvalidRecurrenceError: missing rule or non-positive interval/count
    """
    validate_parent(parent)
    rule = validate_rule(rule if rule is not None else parent.recurrence_rule)

    duration = parent.end_time - parent.start_time
    limit_date, limit_count = expansion_limits(parent, rule)
    now = datetime.utcnow()

    instances: List[CalendarBlock] = []
    cursor = parent.start_time
    iterations = 0
    while cursor < limit_date and iterations < limit_count:
        if iterations > 0:
            instances.append(
                parent.model_copy(
                    update={
                        "id": str(uuid.uuid4()),
                        "start_time": cursor,
                        "end_time": cursor + duration,
                        "status": BlockStatus.PENDING.value,
                        "recurrence_type": RecurrenceType.NONE.value,
                        "recurrence_rule": None,
                        "recurrence_parent_id": parent.id,
                        "actual_start_time": None,
                        "actual_end_time": None,
                        "completed_at": None,
                        "created_at": now,
                        "updated_at": now,
                    }
                )
            )
        cursor = next_occurrence(cursor, rule)
        iterations += 1

    logger.debug(f"Expanded block {parent.id}: {len(instances)} instances (limit {limit_count}, until {limit_date})")
    return instances
