"""Repository for CalendarBlock database operations.

Implements the engine's BlockStore interface. Every read goes to the database;
nothing is cached between calls.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from blockwise.database.models import CalendarBlockDB, enum_to_value, rule_to_json
from blockwise.engine.errors import InvalidTimeRangeError
from blockwise.models.calendar_block import CalendarBlock

logger = logging.getLogger(__name__)

# Columns a patch may touch (id, user_id and created_at are immutable).
UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "color",
        "start_time",
        "end_time",
        "demand_type",
        "priority",
        "status",
        "recurrence_type",
        "recurrence_rule",
        "recurrence_parent_id",
        "actual_start_time",
        "actual_end_time",
        "completed_at",
        "updated_at",
    }
)
_ENUM_FIELDS = ("demand_type", "priority", "status", "recurrence_type")


class CalendarBlockRepository:
    """Repository for CalendarBlock database operations."""

    def __init__(self, db: Session):
        self.db = db

    def find(self, block_id: str) -> Optional[CalendarBlock]:
        """Get a block by ID."""
        row = self.db.query(CalendarBlockDB).filter(CalendarBlockDB.id == block_id).first()
        return row.to_pydantic() if row else None

    def get(self, user_id: str, block_id: str) -> Optional[CalendarBlock]:
        """Get a block by ID (user-scoped)."""
        row = (
            self.db.query(CalendarBlockDB)
            .filter(CalendarBlockDB.user_id == user_id, CalendarBlockDB.id == block_id)
            .first()
        )
        return row.to_pydantic() if row else None

    def query_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        statuses: Optional[Sequence[str]] = None,
    ) -> List[CalendarBlock]:
        """Get a user's blocks whose start_time falls in [start, end], sorted by start_time."""
        query = self.db.query(CalendarBlockDB).filter(
            CalendarBlockDB.user_id == user_id,
            CalendarBlockDB.start_time >= start,
            CalendarBlockDB.start_time <= end,
        )
        if statuses:
            query = query.filter(CalendarBlockDB.status.in_([enum_to_value(s) for s in statuses]))
        rows = query.order_by(CalendarBlockDB.start_time).all()
        return [row.to_pydantic() for row in rows]

    def list_by_parent(self, parent_id: str) -> List[CalendarBlock]:
        """Get the generated instances of a recurring block, sorted by start_time."""
        rows = (
            self.db.query(CalendarBlockDB)
            .filter(CalendarBlockDB.recurrence_parent_id == parent_id)
            .order_by(CalendarBlockDB.start_time)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def insert(self, block: CalendarBlock) -> CalendarBlock:
        """Create a new block."""
        try:
            row = CalendarBlockDB.from_pydantic(block)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created calendar block {block.id}: {block.title[:50]}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create calendar block {block.id}: {type(e).__name__}: {str(e)}")
            raise

    def insert_many(self, blocks: List[CalendarBlock]) -> List[CalendarBlock]:
        """Create multiple blocks in one transaction."""
        if not blocks:
            return []
        try:
            rows = [CalendarBlockDB.from_pydantic(block) for block in blocks]
            self.db.add_all(rows)
            self.db.commit()
            for row in rows:
                self.db.refresh(row)
            logger.debug(f"Created {len(rows)} calendar blocks")
            return [row.to_pydantic() for row in rows]
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create calendar blocks: {type(e).__name__}: {str(e)}")
            raise

    def update(self, block_id: str, patch: Dict[str, Any]) -> Optional[CalendarBlock]:
        """Apply a partial update.

        Returns:
            The updated block, or None if it does not exist

        Raises:
            ValueError: patch names a field that cannot be updated
            InvalidTimeRangeError: the resulting end_time is not after start_time
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        row = self.db.query(CalendarBlockDB).filter(CalendarBlockDB.id == block_id).first()
        if row is None:
            return None

        new_start = patch.get("start_time", row.start_time)
        new_end = patch.get("end_time", row.end_time)
        if new_end <= new_start:
            raise InvalidTimeRangeError(
                f"Block {block_id}: end_time {new_end.isoformat()} is not after start_time {new_start.isoformat()}"
            )

        try:
            for field, value in patch.items():
                if field in _ENUM_FIELDS and value is not None:
                    value = enum_to_value(value)
                elif field == "recurrence_rule":
                    value = rule_to_json(value)
                setattr(row, field, value)
            if "updated_at" not in patch:
                row.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Updated calendar block {block_id}: {sorted(patch)}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update calendar block {block_id}: {type(e).__name__}: {str(e)}")
            raise

    def move(self, block_id: str, new_start: datetime, new_end: datetime) -> bool:
        """Move a block to a new time span (placement callback for reorganization)."""
        return self.update(block_id, {"start_time": new_start, "end_time": new_end}) is not None

    def delete(self, block_id: str) -> bool:
        """Delete a single block. Instances that reference it are left alone."""
        try:
            deleted_count = self.db.query(CalendarBlockDB).filter(CalendarBlockDB.id == block_id).delete()
            self.db.commit()
            logger.debug(f"Deleted calendar block {block_id}")
            return deleted_count > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete calendar block {block_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete_by_parent(self, parent_id: str) -> int:
        """Delete every instance generated from a recurring block.

        Returns:
            Number of blocks deleted
        """
        try:
            deleted_count = (
                self.db.query(CalendarBlockDB)
                .filter(CalendarBlockDB.recurrence_parent_id == parent_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            logger.debug(f"Deleted {deleted_count} recurrence instances of block {parent_id}")
            return int(deleted_count)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete recurrence instances of block {parent_id}: {type(e).__name__}: {str(e)}")
            raise
