"""CalendarBlock data model for blockwise."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from blockwise.models.constants import DEFAULT_BLOCK_COLOR
from blockwise.models.recurrence import RecurrenceRule


class DemandType(str, Enum):
    """How a block behaves during day reorganization."""
    FIXED = "fixed"  # immovable obstacle
    FLEXIBLE = "flexible"
    MICRO = "micro"  # short flexible demand


class BlockPriority(str, Enum):
    """Block priority (urgent > high > medium > low)."""
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BlockStatus(str, Enum):
    """Block status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


class RecurrenceType(str, Enum):
    """Recurrence type enumeration."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Statuses a block can be worked on (reorganization and reminders only look at these).
ACTIVE_STATUSES = (BlockStatus.PENDING.value, BlockStatus.IN_PROGRESS.value)


class CalendarBlock(BaseModel):
    """CalendarBlock is a scheduled unit of work or obligation."""

    id: str = Field(..., description="Unique block identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this block")
    title: str = Field(..., description="Block title")
    description: Optional[str] = Field(None, description="Block description")
    color: Optional[str] = Field(DEFAULT_BLOCK_COLOR, description="Display color")
    start_time: datetime = Field(..., description="Block start time")
    end_time: datetime = Field(..., description="Block end time")
    demand_type: DemandType = Field(DemandType.FLEXIBLE, description="Fixed blocks never move")
    priority: BlockPriority = Field(BlockPriority.MEDIUM, description="Block priority")
    status: BlockStatus = Field(BlockStatus.PENDING, description="Block status")

    recurrence_type: RecurrenceType = Field(RecurrenceType.NONE, description="Recurrence type")
    recurrence_rule: Optional[RecurrenceRule] = Field(
        None, description="Recurrence rule (present iff recurrence_type != none)"
    )
    recurrence_parent_id: Optional[str] = Field(
        None, description="If generated from a recurrence rule, the id of the block that owns the rule"
    )

    actual_start_time: Optional[datetime] = Field(None, description="When work on the block started")
    actual_end_time: Optional[datetime] = Field(None, description="When work on the block ended")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")

    created_at: datetime = Field(default_factory=datetime.utcnow, description="Block creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Block last update timestamp")

    @computed_field
    @property
    def duration_minutes(self) -> int:
        """Duration derived from start/end (never stored)."""
        return int((self.end_time - self.start_time).total_seconds() // 60)

    @model_validator(mode="after")
    def _validate_block(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.recurrence_type == RecurrenceType.NONE and self.recurrence_rule is not None:
            raise ValueError("recurrence_rule requires a recurrence_type other than 'none'")
        if self.recurrence_type != RecurrenceType.NONE and self.recurrence_rule is None:
            raise ValueError(f"recurrence_type '{self.recurrence_type}' requires a recurrence_rule")
        return self

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
