"""Collaborator interfaces consumed by the scheduling engine.

The SQLAlchemy repositories in `blockwise.database` implement these; tests
substitute in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from blockwise.models.calendar_block import CalendarBlock


class BlockStore(Protocol):
    """Source of truth for calendar blocks."""

    def find(self, block_id: str) -> Optional[CalendarBlock]: ...

    def query_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        statuses: Optional[Sequence[str]] = None,
    ) -> List[CalendarBlock]: ...

    def list_by_parent(self, parent_id: str) -> List[CalendarBlock]: ...

    def insert(self, block: CalendarBlock) -> CalendarBlock: ...

    def insert_many(self, blocks: List[CalendarBlock]) -> List[CalendarBlock]: ...

    def update(self, block_id: str, patch: Dict[str, Any]) -> Optional[CalendarBlock]: ...

    def delete(self, block_id: str) -> bool: ...

    def delete_by_parent(self, parent_id: str) -> int: ...


class NotificationChannel(Protocol):
    """Best-effort, fire-and-forget transient notification."""

    def notify(self, title: str, body: str) -> None: ...


class NotificationRecordStore(Protocol):
    """Durable in-app notification records."""

    def record(self, user_id: str, title: str, message: str, related_block_id: str) -> bool: ...


class ReminderLedger(Protocol):
    """At-most-once bookkeeping for (block, threshold) reminders."""

    def has_sent(self, block_id: str, threshold: int) -> bool: ...

    def mark_sent(self, block_id: str, threshold: int) -> None: ...


# update_fn(block_id, new_start, new_end) -> success
PlacementUpdateFn = Callable[[str, datetime, datetime], bool]
