"""In-app Notification data model for blockwise."""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class Notification(BaseModel):
    """Durable in-app notification (e.g., a calendar reminder)."""

    id: str = Field(..., description="Unique notification identifier")
    user_id: str = Field(..., description="User ID who receives this notification")
    type: str = Field(..., description="Notification type (e.g., 'calendar_reminder')")
    title: str = Field(..., description="Notification title")
    message: str = Field(..., description="Notification body")
    data: Dict[str, Any] = Field(default_factory=dict, description="Related entity references")
    read_at: Optional[datetime] = Field(None, description="When the user read it (null if unread)")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
