"""Sent-reminder ledger backed by the `sent_reminders` table.

Records which (block, threshold) reminders were already dispatched so each one
fires at most once. Entries older than the retention window are pruned on
every read and write. A broken or unavailable ledger reads as "never sent":
a reminder may repeat, but a tick is never blocked.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from blockwise.database.models import SentReminderDB
from blockwise.models.constants import SENT_REMINDER_RETENTION_HOURS

logger = logging.getLogger(__name__)


class SentReminderLedger:
    """Repository for SentReminder ledger operations."""

    def __init__(self, db: Session, retention_hours: int = SENT_REMINDER_RETENTION_HOURS):
        self.db = db
        self.retention = timedelta(hours=retention_hours)

    def prune(self, now: Optional[datetime] = None) -> int:
        """Delete entries older than the retention window.

        Returns:
            Number of entries deleted
        """
        cutoff = (now or datetime.utcnow()) - self.retention
        deleted_count = (
            self.db.query(SentReminderDB)
            .filter(SentReminderDB.sent_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted_count:
            logger.debug(f"Pruned {deleted_count} sent-reminder entries older than {cutoff.isoformat()}")
        return int(deleted_count)

    def has_sent(self, block_id: str, threshold: int, now: Optional[datetime] = None) -> bool:
        try:
            self.prune(now)
            row = (
                self.db.query(SentReminderDB)
                .filter(SentReminderDB.block_id == block_id, SentReminderDB.threshold_minutes == int(threshold))
                .first()
            )
            return row is not None
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Sent-reminder ledger unreadable, treating as unsent: {type(e).__name__}: {str(e)}")
            return False

    def mark_sent(self, block_id: str, threshold: int, now: Optional[datetime] = None) -> None:
        now = now or datetime.utcnow()
        try:
            self.prune(now)
            self.db.merge(SentReminderDB(block_id=block_id, threshold_minutes=int(threshold), sent_at=now))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                f"Failed to record sent reminder ({block_id}, {threshold}m): {type(e).__name__}: {str(e)}"
            )
