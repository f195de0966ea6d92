"""Tests for block lifecycle transitions and daily stats."""

from datetime import date, datetime, timedelta

from blockwise.engine.lifecycle import complete_block, start_block
from blockwise.engine.stats import compute_daily_stats
from blockwise.models.block_factory import create_block_base
from blockwise.models.calendar_block import BlockStatus, RecurrenceType
from blockwise.models.recurrence import RecurrenceRule


class TestLifecycle:

    def test_start_block(self, block_repository, sample_block):
        block_repository.insert(sample_block)
        now = datetime(2024, 1, 15, 9, 2)

        started = start_block(block_repository, sample_block.id, now=now)

        assert started.status == BlockStatus.IN_PROGRESS.value
        assert started.actual_start_time == now
        assert started.completed_at is None

    def test_complete_block(self, block_repository, sample_block):
        block_repository.insert(sample_block)
        now = datetime(2024, 1, 15, 10, 5)

        completed = complete_block(block_repository, sample_block.id, now=now)

        assert completed.status == BlockStatus.COMPLETED.value
        assert completed.completed_at == now
        assert completed.actual_end_time == now

    def test_complete_twice_keeps_first_completion(self, block_repository, sample_block):
        block_repository.insert(sample_block)
        first = datetime(2024, 1, 15, 10, 0)

        complete_block(block_repository, sample_block.id, now=first)
        again = complete_block(block_repository, sample_block.id, now=first + timedelta(hours=1))

        assert again.completed_at == first

    def test_start_completed_block_is_noop(self, block_repository, sample_block):
        block_repository.insert(sample_block)
        complete_block(block_repository, sample_block.id)

        result = start_block(block_repository, sample_block.id)

        assert result.status == BlockStatus.COMPLETED.value
        assert result.actual_start_time is None

    def test_missing_block(self, block_repository):
        assert start_block(block_repository, "nonexistent-id") is None
        assert complete_block(block_repository, "nonexistent-id") is None


class TestDailyStats:

    def test_counts_and_score(self, make_block):
        day = date(2024, 1, 15)
        base = datetime(2024, 1, 15, 9, 0)
        blocks = [
            make_block(base, minutes=60, status=BlockStatus.COMPLETED),
            make_block(base, minutes=30, status=BlockStatus.COMPLETED),
            make_block(base, minutes=45, status=BlockStatus.PENDING),
            make_block(base, minutes=15, status=BlockStatus.CANCELLED),
            make_block(base, minutes=60, status=BlockStatus.IN_PROGRESS),
            make_block(base, minutes=60, status=BlockStatus.POSTPONED),
            make_block(base, minutes=60, status=BlockStatus.PENDING),
            make_block(base, minutes=60, status=BlockStatus.PENDING),
            # Next day, excluded
            make_block(base + timedelta(days=1), status=BlockStatus.COMPLETED),
        ]

        stats = compute_daily_stats(day, blocks)

        assert stats.total == 8
        assert stats.completed == 2
        assert stats.pending == 3
        assert stats.in_progress == 1
        assert stats.cancelled == 1
        assert stats.postponed == 1
        assert stats.planned_minutes == 390
        assert stats.completed_minutes == 90
        # 2 / 8 = 25%
        assert stats.execution_score == 25

    def test_score_rounds_half_up(self, make_block):
        base = datetime(2024, 1, 15, 9, 0)
        blocks = [make_block(base, status=BlockStatus.COMPLETED)] + [make_block(base) for _ in range(7)]

        assert compute_daily_stats(date(2024, 1, 15), blocks).execution_score == 13

    def test_empty_day(self):
        stats = compute_daily_stats(date(2024, 1, 15), [])

        assert stats.total == 0
        assert stats.execution_score == 0


class TestBlockFactory:

    def test_defaults(self, test_user_id):
        start = datetime(2024, 1, 15, 9, 0)

        block = create_block_base(test_user_id, start, start + timedelta(minutes=45), title="  Focus  ")

        assert block.title == "Focus"
        assert block.status == BlockStatus.PENDING.value
        assert block.demand_type == "flexible"
        assert block.priority == "medium"
        assert block.recurrence_type == RecurrenceType.NONE.value
        assert block.duration_minutes == 45

    def test_blank_title_gets_default(self, test_user_id):
        start = datetime(2024, 1, 15, 9, 0)

        assert create_block_base(test_user_id, start, start + timedelta(hours=1), title="  ").title == "New block"

    def test_rule_sets_recurrence_type(self, test_user_id):
        start = datetime(2024, 1, 15, 9, 0)

        block = create_block_base(
            test_user_id, start, start + timedelta(hours=1), recurrence_rule=RecurrenceRule(frequency="monthly")
        )

        assert block.recurrence_type == "monthly"
