"""Calendar reminder scheduler for blockwise.

A per-user background loop checks the user's upcoming blocks every few seconds
and sends a reminder when a block is 30, 15 or 1 minute(s) away. Each
(block, threshold) reminder is sent at most once, tracked by the sent-reminder
ledger. Delivery is best-effort: channel and in-app record failures are logged
and never fail the tick.

The loop is owned by a ReminderSessionRegistry (held by the application), is
started when a user session begins and stopped when it ends. Stopping lets an
in-flight tick finish.
"""

import asyncio
import logging
import os
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from blockwise.database.calendar_block_repository import CalendarBlockRepository
from blockwise.database.database import session_scope
from blockwise.database.notification_repository import NotificationRepository
from blockwise.database.sent_reminder_repository import SentReminderLedger
from blockwise.engine.interfaces import BlockStore, NotificationChannel, NotificationRecordStore, ReminderLedger
from blockwise.models.calendar_block import ACTIVE_STATUSES, CalendarBlock
from blockwise.models.constants import (
    REMINDER_CHECK_INTERVAL_SECONDS,
    REMINDER_LOOKAHEAD_MINUTES,
    REMINDER_THRESHOLDS_MINUTES,
)
from blockwise.reminders.channels import build_notification_channel
from blockwise.reminders.messages import format_reminder

load_dotenv()

logger = logging.getLogger(__name__)

CHECK_INTERVAL_SECONDS = float(os.getenv("REMINDER_CHECK_INTERVAL_SEC", str(REMINDER_CHECK_INTERVAL_SECONDS)))


def minutes_until(start_time: datetime, now: datetime) -> int:
    """Whole minutes from now until start_time (rounded down)."""
    return int((start_time - now).total_seconds() // 60)


def due_thresholds(minutes: int, thresholds: Sequence[int] = REMINDER_THRESHOLDS_MINUTES) -> List[int]:
    """Thresholds whose one-minute window contains `minutes` (threshold - 1 <= minutes <= threshold)."""
    return [t for t in thresholds if t - 1 <= minutes <= t]


def _dispatch(
    user_id: str,
    block: CalendarBlock,
    threshold: int,
    channel: NotificationChannel,
    records: NotificationRecordStore,
) -> None:
    message = format_reminder(threshold, block.title)
    try:
        channel.notify(message.title, message.body)
    except Exception as e:
        logger.warning(f"Failed to send {threshold}m reminder for block {block.id}: {type(e).__name__}: {str(e)}")
    try:
        if not records.record(user_id, message.title, message.body, block.id):
            logger.warning(f"Failed to record {threshold}m reminder for block {block.id}")
    except Exception as e:
        logger.warning(f"Failed to record {threshold}m reminder for block {block.id}: {type(e).__name__}: {str(e)}")


def check_upcoming_blocks(
    user_id: str,
    store: BlockStore,
    channel: NotificationChannel,
    records: NotificationRecordStore,
    ledger: ReminderLedger,
    now: Optional[datetime] = None,
    thresholds: Sequence[int] = REMINDER_THRESHOLDS_MINUTES,
) -> int:
    """Run one reminder check for a user.

    Args:
        user_id: Session owner
        store: Block store (queried fresh on every call)
        channel: Transient notification channel
        records: Durable in-app notification store
        ledger: Sent-reminder ledger
        now: Current time (defaults to utcnow)
        thresholds: Reminder lead times in minutes

    Returns:
        Number of reminders dispatched
    """
    now = now or datetime.utcnow()
    horizon = now + timedelta(minutes=REMINDER_LOOKAHEAD_MINUTES)
    try:
        blocks = store.query_range(user_id, now, horizon, statuses=ACTIVE_STATUSES)
    except Exception as e:
        logger.warning(f"Reminder check failed for user {user_id}: {type(e).__name__}: {str(e)}")
        return 0

    dispatched = 0
    for block in blocks:
        for threshold in due_thresholds(minutes_until(block.start_time, now), thresholds):
            if ledger.has_sent(block.id, threshold):
                continue
            _dispatch(user_id, block, threshold, channel, records)
            ledger.mark_sent(block.id, threshold)
            dispatched += 1
            logger.info(f"Sent {threshold}m reminder for block {block.id} to user {user_id}")
    return dispatched


class ReminderScheduler:
    """Cancellable background reminder loop for one user session."""

    def __init__(
        self,
        user_id: str,
        session_factory: Optional[Callable[[], Session]] = None,
        channel: Optional[NotificationChannel] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.user_id = user_id
        self.session_factory = session_factory
        self.channel = channel or build_notification_channel()
        self.interval_seconds = interval_seconds if interval_seconds is not None else CHECK_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self, now: Optional[datetime] = None) -> int:
        """One reminder check against a fresh database session."""
        with session_scope(self.session_factory) as db:
            return check_upcoming_blocks(
                self.user_id,
                CalendarBlockRepository(db),
                self.channel,
                NotificationRepository(db),
                SentReminderLedger(db),
                now=now,
            )

    def start(self) -> "ReminderScheduler":
        """Start the loop on the running event loop (no-op if already running)."""
        if self.running:
            return self
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=f"calendar-reminders-{self.user_id}")
        logger.info(f"Reminder scheduler started for user {self.user_id} (interval={self.interval_seconds}s)")
        return self

    async def stop(self) -> None:
        """Stop the loop; an in-flight tick is allowed to finish."""
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Reminder scheduler stopped for user {self.user_id}")

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.to_thread(self.tick)
            except Exception as exc:
                logger.error(f"Reminder tick error for user {self.user_id}: {exc}", exc_info=True)

            # Wait for the interval OR for a stop request.
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass


def start_reminder_scheduler(user_id: str, **kwargs) -> ReminderScheduler:
    """Create and start a reminder loop; returns the handle used to stop it."""
    return ReminderScheduler(user_id, **kwargs).start()


async def stop_reminder_scheduler(handle: ReminderScheduler) -> None:
    await handle.stop()


class ReminderSessionRegistry:
    """Tracks one reminder loop per active user session."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        channel: Optional[NotificationChannel] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.channel = channel
        self.interval_seconds = interval_seconds
        self._schedulers: Dict[str, ReminderScheduler] = {}

    def get(self, user_id: str) -> Optional[ReminderScheduler]:
        scheduler = self._schedulers.get(user_id)
        return scheduler if scheduler is not None and scheduler.running else None

    def start(self, user_id: str) -> ReminderScheduler:
        """Start the user's loop, reusing it if it is already running."""
        existing = self.get(user_id)
        if existing is not None:
            return existing
        scheduler = start_reminder_scheduler(
            user_id,
            session_factory=self.session_factory,
            channel=self.channel,
            interval_seconds=self.interval_seconds,
        )
        self._schedulers[user_id] = scheduler
        return scheduler

    async def stop(self, user_id: str) -> bool:
        scheduler = self._schedulers.pop(user_id, None)
        if scheduler is None:
            return False
        await stop_reminder_scheduler(scheduler)
        return True

    async def stop_all(self) -> None:
        for user_id in list(self._schedulers):
            await self.stop(user_id)
