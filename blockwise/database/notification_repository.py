"""Repository for in-app Notification database operations."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from blockwise.database.models import NotificationDB
from blockwise.models.constants import REMINDER_NOTIFICATION_TYPE
from blockwise.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Repository for Notification database operations."""

    def __init__(self, db: Session):
        self.db = db

    def record(self, user_id: str, title: str, message: str, related_block_id: str) -> bool:
        """Persist a calendar reminder notification.

        Failures are logged and reported as False, never raised.
        """
        row = NotificationDB(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=REMINDER_NOTIFICATION_TYPE,
            title=title,
            message=message,
            data={"block_id": related_block_id},
            created_at=datetime.utcnow(),
        )
        try:
            self.db.add(row)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.warning(
                f"Failed to record notification for block {related_block_id}: {type(e).__name__}: {str(e)}"
            )
            return False

    def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        """Get a user's notifications, newest first."""
        query = self.db.query(NotificationDB).filter(NotificationDB.user_id == user_id)
        if unread_only:
            query = query.filter(NotificationDB.read_at.is_(None))
        rows = query.order_by(desc(NotificationDB.created_at)).limit(limit).all()
        return [row.to_pydantic() for row in rows]

    def mark_read(self, user_id: str, notification_id: str) -> Optional[Notification]:
        """Mark a notification read (user-scoped). Already-read notifications keep their read_at."""
        row = (
            self.db.query(NotificationDB)
            .filter(NotificationDB.user_id == user_id, NotificationDB.id == notification_id)
            .first()
        )
        if row is None:
            return None
        if row.read_at is None:
            row.read_at = datetime.utcnow()
            try:
                self.db.commit()
                self.db.refresh(row)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to mark notification {notification_id} read: {type(e).__name__}: {str(e)}")
                raise
        return row.to_pydantic()
