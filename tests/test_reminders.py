"""Tests for the reminder scheduler."""

import asyncio
import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

from blockwise.models.calendar_block import BlockStatus
from blockwise.reminders.messages import format_reminder
from blockwise.reminders.scheduler import (
    ReminderScheduler,
    ReminderSessionRegistry,
    check_upcoming_blocks,
    due_thresholds,
    minutes_until,
    start_reminder_scheduler,
    stop_reminder_scheduler,
)


NOW = datetime(2024, 1, 15, 8, 30)


class InMemoryLedger:
    """Ledger fake keyed by (block_id, threshold)."""

    def __init__(self):
        self.sent = set()

    def has_sent(self, block_id, threshold):
        return (block_id, threshold) in self.sent

    def mark_sent(self, block_id, threshold):
        self.sent.add((block_id, threshold))


class TestDueThresholds:

    @pytest.mark.parametrize(
        "minutes,expected",
        [
            (31, []),
            (30, [30]),
            (29, [30]),
            (28, []),
            (15, [15]),
            (14, [15]),
            (2, []),
            (1, [1]),
            (0, [1]),
        ],
    )
    def test_windows(self, minutes, expected):
        assert due_thresholds(minutes) == expected

    def test_minutes_until_rounds_down(self):
        assert minutes_until(NOW + timedelta(minutes=29, seconds=59), NOW) == 29
        assert minutes_until(NOW + timedelta(minutes=30), NOW) == 30


class TestCheckUpcomingBlocks:
    """Test a single reminder tick."""

    def test_thirty_minute_reminder_fires_once(self, make_block, block_repository, notification_repository,
                                               reminder_ledger, test_user_id):
        block = block_repository.insert(make_block(NOW + timedelta(minutes=30), title="Standup"))
        channel = MagicMock()

        first = check_upcoming_blocks(
            test_user_id, block_repository, channel, notification_repository, reminder_ledger, now=NOW
        )
        second = check_upcoming_blocks(
            test_user_id, block_repository, channel, notification_repository, reminder_ledger,
            now=NOW + timedelta(minutes=1),
        )

        assert first == 1
        assert second == 0
        expected = format_reminder(30, "Standup")
        channel.notify.assert_called_once_with(expected.title, expected.body)

        notifications = notification_repository.list_for_user(test_user_id)
        assert len(notifications) == 1
        assert notifications[0].type == "calendar_reminder"
        assert notifications[0].data == {"block_id": block.id}

    def test_each_threshold_fires_in_turn(self, make_block, test_user_id):
        block = make_block(NOW + timedelta(minutes=30))
        store = MagicMock()
        store.query_range.return_value = [block]
        channel, records, ledger = MagicMock(), MagicMock(), InMemoryLedger()

        fired = []
        for offset in range(0, 31):
            if check_upcoming_blocks(test_user_id, store, channel, records, ledger,
                                     now=NOW + timedelta(minutes=offset)):
                fired.append(offset)

        assert fired == [0, 15, 29]
        assert ledger.sent == {(block.id, 30), (block.id, 15), (block.id, 1)}

    def test_only_active_blocks_in_window_are_queried(self, make_block, block_repository, test_user_id):
        block_repository.insert(make_block(NOW + timedelta(minutes=15), status=BlockStatus.COMPLETED))
        block_repository.insert(make_block(NOW + timedelta(minutes=15), status=BlockStatus.CANCELLED))
        block_repository.insert(make_block(NOW + timedelta(minutes=40)))
        block_repository.insert(make_block(NOW - timedelta(minutes=5)))
        in_progress = block_repository.insert(
            make_block(NOW + timedelta(minutes=15), status=BlockStatus.IN_PROGRESS)
        )
        channel, records, ledger = MagicMock(), MagicMock(), InMemoryLedger()

        dispatched = check_upcoming_blocks(test_user_id, block_repository, channel, records, ledger, now=NOW)

        assert dispatched == 1
        assert ledger.sent == {(in_progress.id, 15)}

    def test_query_covers_lookahead_window(self, make_block, test_user_id):
        store = MagicMock()
        store.query_range.return_value = []

        check_upcoming_blocks(test_user_id, store, MagicMock(), MagicMock(), InMemoryLedger(), now=NOW)

        args = store.query_range.call_args
        assert args.args[0] == test_user_id
        assert args.args[1] == NOW
        assert args.args[2] == NOW + timedelta(minutes=35)

    def test_channel_failure_is_swallowed(self, make_block, test_user_id):
        block = make_block(NOW + timedelta(minutes=1))
        store = MagicMock()
        store.query_range.return_value = [block]
        channel = MagicMock()
        channel.notify.side_effect = RuntimeError("push service down")
        records, ledger = MagicMock(), InMemoryLedger()

        dispatched = check_upcoming_blocks(test_user_id, store, channel, records, ledger, now=NOW)

        assert dispatched == 1
        records.record.assert_called_once()
        assert ledger.has_sent(block.id, 1)

    def test_record_failure_is_swallowed(self, make_block, test_user_id):
        block = make_block(NOW + timedelta(minutes=15))
        store = MagicMock()
        store.query_range.return_value = [block]
        records = MagicMock()
        records.record.side_effect = RuntimeError("db locked")
        ledger = InMemoryLedger()

        assert check_upcoming_blocks(test_user_id, store, MagicMock(), records, ledger, now=NOW) == 1
        assert ledger.has_sent(block.id, 15)

    def test_store_failure_ends_tick(self, test_user_id):
        store = MagicMock()
        store.query_range.side_effect = RuntimeError("connection refused")
        channel = MagicMock()

        assert check_upcoming_blocks(test_user_id, store, channel, MagicMock(), InMemoryLedger(), now=NOW) == 0
        channel.notify.assert_not_called()


class TestReminderMessages:

    def test_copy_differs_per_threshold(self):
        messages = {t: format_reminder(t, "Review") for t in (30, 15, 1)}

        assert len({m.title for m in messages.values()}) == 3
        assert all('"Review"' in m.body for m in messages.values())
        assert "about to start" in messages[1].body


class TestReminderScheduler:
    """Test the background loop lifecycle."""

    def test_tick_uses_fresh_session(self, make_block, block_repository, session_factory, test_user_id):
        block_repository.insert(make_block(NOW + timedelta(minutes=15)))
        channel = MagicMock()
        scheduler = ReminderScheduler(test_user_id, session_factory=session_factory, channel=channel)

        assert scheduler.tick(now=NOW) == 1
        assert scheduler.tick(now=NOW) == 0
        channel.notify.assert_called_once()

    def test_start_and_stop(self, test_user_id):
        ticks = []

        async def scenario():
            with patch.object(ReminderScheduler, "tick", side_effect=lambda: ticks.append(1) or 0):
                handle = start_reminder_scheduler(test_user_id, channel=MagicMock(), interval_seconds=0.01)
                assert handle.running
                await asyncio.sleep(0.1)
                await stop_reminder_scheduler(handle)
                return handle

        handle = asyncio.run(scenario())

        assert not handle.running
        assert len(ticks) >= 1

    def test_tick_errors_do_not_stop_loop(self, test_user_id):
        ticks = []

        def failing_tick():
            ticks.append(1)
            raise RuntimeError("boom")

        async def scenario():
            with patch.object(ReminderScheduler, "tick", side_effect=failing_tick):
                handle = start_reminder_scheduler(test_user_id, channel=MagicMock(), interval_seconds=0.01)
                await asyncio.sleep(0.1)
                still_running = handle.running
                await handle.stop()
                return still_running

        assert asyncio.run(scenario()) is True
        assert len(ticks) >= 2

    def test_stop_without_start_is_noop(self, test_user_id):
        scheduler = ReminderScheduler(test_user_id, channel=MagicMock())

        asyncio.run(scheduler.stop())

        assert not scheduler.running


class TestReminderSessionRegistry:

    def test_one_loop_per_user(self, test_user_id):
        async def scenario():
            registry = ReminderSessionRegistry(channel=MagicMock(), interval_seconds=60)
            with patch.object(ReminderScheduler, "tick", return_value=0):
                first = registry.start(test_user_id)
                second = registry.start(test_user_id)
                other = registry.start("other-user")
                same = first is second
                await registry.stop_all()
            return same, first, other, registry

        same, first, other, registry = asyncio.run(scenario())

        assert same
        assert not first.running
        assert not other.running
        assert registry.get(test_user_id) is None

    def test_stop_unknown_user(self):
        registry = ReminderSessionRegistry(channel=MagicMock())

        assert asyncio.run(registry.stop("nobody")) is False
