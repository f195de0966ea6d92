"""FastAPI web application for blockwise."""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, time
from typing import List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from blockwise.auth.dependencies import get_current_user
from blockwise.database.calendar_block_repository import CalendarBlockRepository
from blockwise.database.database import get_db
from blockwise.database.notification_repository import NotificationRepository
from blockwise.engine import (
    BlockPlacement,
    DailyStats,
    InvalidTimeRangeError,
    PostponementSuggestion,
    ReorganizationApplyError,
    WorkdayConfig,
    apply_reorganization,
    complete_block,
    compute_daily_stats,
    reorganize_day,
    start_block,
    suggest_postponement,
)
from blockwise.models.block_factory import create_block_base
from blockwise.models.calendar_block import BlockPriority, BlockStatus, CalendarBlock, DemandType, RecurrenceType
from blockwise.models.notification import Notification
from blockwise.models.recurrence import RecurrenceRule, to_naive_utc
from blockwise.models.user import User
from blockwise.recurrence.expand import expand_recurrence
from blockwise.recurrence.series import SeriesScope, delete_block_with_scope, update_block_with_scope
from blockwise.reminders.scheduler import ReminderSessionRegistry

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

# Patch fields that may be cleared with an explicit null.
NULLABLE_PATCH_FIELDS = ("description", "color")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.reminder_registry = ReminderSessionRegistry()
    yield
    await app.state.reminder_registry.stop_all()


app = FastAPI(
    title="blockwise API",
    description="Calendar blocks with recurrence, day reorganization and start-time reminders",
    version=API_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(ValueError)
async def validation_error_handler(request: Request, exc: ValueError):
    """InvalidTimeRangeError / InvalidRecurrenceError and other rejected input."""
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.exception_handler(ReorganizationApplyError)
async def reorganization_apply_error_handler(request: Request, exc: ReorganizationApplyError):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": f"Failed to apply reorganization: {str(exc)}",
            "failed_id": exc.failed_id,
            "applied_count": len(exc.applied_ids),
            "applied_ids": exc.applied_ids,
        },
    )


def _day_bounds(day: date):
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def get_reminder_registry(request: Request) -> ReminderSessionRegistry:
    return request.app.state.reminder_registry


# Request models
class BlockCreateRequest(BaseModel):
    """Request model for creating a block."""
    title: Optional[str] = Field(None, description="Block title")
    description: Optional[str] = Field(None, description="Block description")
    color: Optional[str] = Field(None, description="Display color")
    start_time: datetime = Field(..., description="Block start time")
    end_time: datetime = Field(..., description="Block end time")
    demand_type: Optional[DemandType] = Field(None, description="fixed, flexible or micro")
    priority: Optional[BlockPriority] = Field(None, description="Block priority")
    recurrence_type: Optional[RecurrenceType] = Field(None, description="Recurrence type")
    recurrence_rule: Optional[RecurrenceRule] = Field(None, description="Recurrence rule")

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, v, info):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def _validate_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    class Config:
        use_enum_values = True


class BlockUpdateRequest(BaseModel):
    """Request model for updating a block (all fields optional)."""
    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    demand_type: Optional[DemandType] = None
    priority: Optional[BlockPriority] = None
    status: Optional[BlockStatus] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, v, info):
        return to_naive_utc(v)

    class Config:
        use_enum_values = True


# Response models
class BlockResponse(BaseModel):
    block: CalendarBlock


class BlockCreateResponse(BaseModel):
    block: CalendarBlock
    instances_created: int = 0


class BlockListResponse(BaseModel):
    blocks: List[CalendarBlock]
    count: int


class DeleteResponse(BaseModel):
    deleted_count: int


class ReorganizeResponse(BaseModel):
    """Response for a day reorganization (placements already applied)."""
    day: date
    reorganized: List[BlockPlacement]
    removed: List[CalendarBlock]
    unchanged_count: int
    applied_ids: List[str]
    message: str
    postponement_suggestions: List[PostponementSuggestion] = Field(default_factory=list)


class ReminderSessionResponse(BaseModel):
    user_id: str
    running: bool


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    count: int


class NotificationResponse(BaseModel):
    notification: Notification


def _get_owned_block(repo: CalendarBlockRepository, user: User, block_id: str) -> CalendarBlock:
    block = repo.get(user.id, block_id)
    if block is None:
        raise HTTPException(status_code=404, detail=f"Block {block_id} not found")
    return block


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": API_VERSION}


@app.post("/blocks", response_model=BlockCreateResponse, status_code=201)
def create_block(
    request: BlockCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a block; a recurrence rule also materializes its instances."""
    block = create_block_base(
        user_id=current_user.id,
        start_time=request.start_time,
        end_time=request.end_time,
        title=request.title,
        description=request.description,
        color=request.color,
        demand_type=request.demand_type,
        priority=request.priority,
        recurrence_type=request.recurrence_type,
        recurrence_rule=request.recurrence_rule,
    )
    # Expand before writing anything so an invalid rule leaves no parent behind.
    instances = expand_recurrence(block) if block.recurrence_rule is not None else []

    repo = CalendarBlockRepository(db)
    created = repo.insert(block)
    repo.insert_many(instances)
    logger.info(f"Created block {created.id} for user {current_user.id} with {len(instances)} recurrence instances")
    return BlockCreateResponse(block=created, instances_created=len(instances))


@app.get("/blocks", response_model=BlockListResponse)
def list_blocks(
    start: datetime = Query(..., description="Range start (inclusive)"),
    end: datetime = Query(..., description="Range end (inclusive)"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the user's blocks starting within [start, end]."""
    start, end = to_naive_utc(start), to_naive_utc(end)
    if end < start:
        raise InvalidTimeRangeError("end must not be before start")
    blocks = CalendarBlockRepository(db).query_range(current_user.id, start, end)
    return BlockListResponse(blocks=blocks, count=len(blocks))


@app.get("/blocks/{block_id}", response_model=BlockResponse)
def get_block(
    block_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = CalendarBlockRepository(db)
    return BlockResponse(block=_get_owned_block(repo, current_user, block_id))


@app.patch("/blocks/{block_id}", response_model=BlockResponse)
def update_block(
    block_id: str,
    request: BlockUpdateRequest,
    scope: SeriesScope = Query(SeriesScope.THIS),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update a block; scope=all also updates the rest of its recurring series."""
    repo = CalendarBlockRepository(db)
    block = _get_owned_block(repo, current_user, block_id)
    patch = {
        k: v
        for k, v in request.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_PATCH_FIELDS
    }
    # Lifecycle transitions own the start and completion timestamps.
    new_status = patch.pop("status", None)
    updated = block
    if patch:
        updated = update_block_with_scope(repo, block, patch, scope)
        if updated is None:
            raise HTTPException(status_code=404, detail=f"Block {block_id} not found")
    if new_status == BlockStatus.COMPLETED.value:
        updated = complete_block(repo, block.id)
    elif new_status == BlockStatus.IN_PROGRESS.value:
        updated = start_block(repo, block.id)
    elif new_status is not None:
        updated = repo.update(block.id, {"status": new_status})
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Block {block_id} not found")
    return BlockResponse(block=updated)


@app.delete("/blocks/{block_id}", response_model=DeleteResponse)
def delete_block(
    block_id: str,
    scope: SeriesScope = Query(SeriesScope.THIS),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a block; scope=all deletes its whole recurring series."""
    repo = CalendarBlockRepository(db)
    block = _get_owned_block(repo, current_user, block_id)
    deleted_count = delete_block_with_scope(repo, block, scope)
    logger.info(f"Deleted {deleted_count} blocks (scope={SeriesScope(scope).value}) for user {current_user.id}")
    return DeleteResponse(deleted_count=deleted_count)


@app.post("/blocks/{block_id}/start", response_model=BlockResponse)
def start_block_endpoint(
    block_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = CalendarBlockRepository(db)
    _get_owned_block(repo, current_user, block_id)
    return BlockResponse(block=start_block(repo, block_id))


@app.post("/blocks/{block_id}/complete", response_model=BlockResponse)
def complete_block_endpoint(
    block_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = CalendarBlockRepository(db)
    _get_owned_block(repo, current_user, block_id)
    return BlockResponse(block=complete_block(repo, block_id))


@app.post("/days/{day}/reorganize", response_model=ReorganizeResponse)
def reorganize_day_endpoint(
    day: date,
    config: Optional[WorkdayConfig] = Body(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Repack the day's flexible blocks and persist the new placements."""
    repo = CalendarBlockRepository(db)
    day_start, day_end = _day_bounds(day)
    blocks = repo.query_range(current_user.id, day_start, day_end)

    result = reorganize_day(day, blocks, config)
    applied_ids = apply_reorganization(result, repo.move)
    logger.info(f"Reorganized {day.isoformat()} for user {current_user.id}: {result.message}")

    return ReorganizeResponse(
        day=day,
        reorganized=result.reorganized,
        removed=result.removed,
        unchanged_count=len(result.unchanged),
        applied_ids=applied_ids,
        message=result.message,
        postponement_suggestions=suggest_postponement(result.removed, day),
    )


@app.get("/days/{day}/stats", response_model=DailyStats)
def day_stats(
    day: date,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    day_start, day_end = _day_bounds(day)
    blocks = CalendarBlockRepository(db).query_range(current_user.id, day_start, day_end)
    return compute_daily_stats(day, blocks)


@app.post("/reminders/session", response_model=ReminderSessionResponse)
async def start_reminder_session(
    current_user: User = Depends(get_current_user),
    registry: ReminderSessionRegistry = Depends(get_reminder_registry),
):
    """Start the caller's reminder loop (no-op if it is already running)."""
    scheduler = registry.start(current_user.id)
    return ReminderSessionResponse(user_id=current_user.id, running=scheduler.running)


@app.delete("/reminders/session", response_model=ReminderSessionResponse)
async def stop_reminder_session(
    current_user: User = Depends(get_current_user),
    registry: ReminderSessionRegistry = Depends(get_reminder_registry),
):
    await registry.stop(current_user.id)
    return ReminderSessionResponse(user_id=current_user.id, running=False)


@app.get("/notifications", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notifications = NotificationRepository(db).list_for_user(current_user.id, unread_only=unread_only, limit=limit)
    return NotificationListResponse(notifications=notifications, count=len(notifications))


@app.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = NotificationRepository(db).mark_read(current_user.id, notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return NotificationResponse(notification=notification)
