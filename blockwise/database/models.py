"""SQLAlchemy database models for blockwise."""

from datetime import datetime
from typing import Type, TypeVar, Union
import uuid

from sqlalchemy import Column, String, Integer, DateTime, JSON, ForeignKey

from blockwise.database.database import Base
from blockwise.models.calendar_block import BlockPriority, BlockStatus, DemandType, RecurrenceType

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default."""
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockwise.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class CalendarBlockDB(Base):
    """Database model for CalendarBlock."""

    __tablename__ = "calendar_blocks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Presentation payload
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    color = Column(String, nullable=True)

    # Time span (duration is derived, never stored)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)

    # Classification
    demand_type = Column(String, nullable=False, default=DemandType.FLEXIBLE.value)
    priority = Column(String, nullable=False, default=BlockPriority.MEDIUM.value)
    status = Column(String, nullable=False, default=BlockStatus.PENDING.value, index=True)

    # Recurrence. recurrence_parent_id is a lookup key only: no foreign key, no cascade.
    recurrence_type = Column(String, nullable=False, default=RecurrenceType.NONE.value)
    recurrence_rule = Column(JSON, nullable=True)
    recurrence_parent_id = Column(String, nullable=True, index=True)

    # Completion metadata
    actual_start_time = Column(DateTime, nullable=True)
    actual_end_time = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockwise.models.calendar_block import CalendarBlock
        from blockwise.models.recurrence import RecurrenceRule

        rule = RecurrenceRule.model_validate(self.recurrence_rule) if self.recurrence_rule else None
        recurrence_type = RecurrenceType.NONE
        if rule is not None:
            recurrence_type = value_to_enum(self.recurrence_type, RecurrenceType, RecurrenceType.NONE)
            if recurrence_type == RecurrenceType.NONE:
                recurrence_type = RecurrenceType(rule.frequency)
        return CalendarBlock(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            description=self.description,
            color=self.color,
            start_time=self.start_time,
            end_time=self.end_time,
            demand_type=value_to_enum(self.demand_type, DemandType, DemandType.FLEXIBLE),
            priority=value_to_enum(self.priority, BlockPriority, BlockPriority.MEDIUM),
            status=value_to_enum(self.status, BlockStatus, BlockStatus.PENDING),
            recurrence_type=recurrence_type,
            recurrence_rule=rule,
            recurrence_parent_id=self.recurrence_parent_id,
            actual_start_time=self.actual_start_time,
            actual_end_time=self.actual_end_time,
            completed_at=self.completed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, block):
        """Create database model from Pydantic model."""
        return cls(
            id=block.id,
            user_id=block.user_id,
            title=block.title,
            description=block.description,
            color=block.color,
            start_time=block.start_time,
            end_time=block.end_time,
            demand_type=enum_to_value(block.demand_type),
            priority=enum_to_value(block.priority),
            status=enum_to_value(block.status),
            recurrence_type=enum_to_value(block.recurrence_type),
            recurrence_rule=rule_to_json(block.recurrence_rule),
            recurrence_parent_id=block.recurrence_parent_id,
            actual_start_time=block.actual_start_time,
            actual_end_time=block.actual_end_time,
            completed_at=block.completed_at,
            created_at=block.created_at,
            updated_at=block.updated_at,
        )


def rule_to_json(rule):
    """Serialize a RecurrenceRule (or an already-plain dict) for the JSON column."""
    if rule is None:
        return None
    if isinstance(rule, dict):
        return rule
    return rule.model_dump(mode="json", exclude_none=True)


class NotificationDB(Base):
    """Database model for an in-app Notification."""

    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockwise.models.notification import Notification
        return Notification(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            title=self.title,
            message=self.message,
            data=self.data or {},
            read_at=self.read_at,
            created_at=self.created_at,
        )


class SentReminderDB(Base):
    """Ledger row: reminder for (block_id, threshold_minutes) already dispatched.

    Rows outlive their blocks until pruned, so block_id is not a foreign key.
    """

    __tablename__ = "sent_reminders"

    block_id = Column(String, primary_key=True)
    threshold_minutes = Column(Integer, primary_key=True)
    sent_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
