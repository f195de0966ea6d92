"""Tests for recurring-series delete and update scopes."""

import pytest
from datetime import timedelta

from blockwise.models.calendar_block import CalendarBlock, RecurrenceType
from blockwise.models.recurrence import RecurrenceRule
from blockwise.recurrence.expand import expand_recurrence
from blockwise.recurrence.series import SeriesScope, delete_block_with_scope, update_block_with_scope


@pytest.fixture
def series(block_repository, sample_block_base):
    """A daily series of 4 stored blocks: (root, [instances])."""
    rule = RecurrenceRule(frequency="daily", count=4)
    root = CalendarBlock(
        **{**sample_block_base, "recurrence_type": RecurrenceType.DAILY, "recurrence_rule": rule}
    )
    root = block_repository.insert(root)
    instances = block_repository.insert_many(expand_recurrence(root))
    return root, instances


class TestDeleteWithScope:

    def test_this_deletes_only_addressed_instance(self, block_repository, series):
        root, instances = series

        deleted = delete_block_with_scope(block_repository, instances[1], SeriesScope.THIS)

        assert deleted == 1
        assert block_repository.find(instances[1].id) is None
        assert len(block_repository.list_by_parent(root.id)) == 2
        assert block_repository.find(root.id) is not None

    def test_all_from_instance_deletes_series(self, block_repository, series):
        root, instances = series

        deleted = delete_block_with_scope(block_repository, instances[0], "all")

        assert deleted == 4
        assert block_repository.find(root.id) is None
        assert block_repository.list_by_parent(root.id) == []

    def test_all_from_root_deletes_series(self, block_repository, series):
        root, _ = series

        assert delete_block_with_scope(block_repository, root, SeriesScope.ALL) == 4

    def test_this_on_root_orphans_instances(self, block_repository, series):
        root, instances = series

        delete_block_with_scope(block_repository, root, SeriesScope.THIS)

        remaining = block_repository.list_by_parent(root.id)
        assert [b.id for b in remaining] == [i.id for i in instances]

    def test_all_on_single_block(self, block_repository, make_block, sample_block):
        single = block_repository.insert(sample_block)
        other = block_repository.insert(make_block(sample_block.start_time + timedelta(hours=2)))

        assert delete_block_with_scope(block_repository, single, SeriesScope.ALL) == 1
        assert block_repository.find(other.id) is not None


class TestUpdateWithScope:

    def test_this_updates_one_block(self, block_repository, series):
        root, instances = series

        updated = update_block_with_scope(block_repository, instances[0], {"title": "Moved"}, SeriesScope.THIS)

        assert updated.title == "Moved"
        assert block_repository.find(instances[1].id).title == root.title
        assert block_repository.find(root.id).title == root.title

    def test_all_propagates_shared_fields_only(self, block_repository, series):
        root, instances = series
        new_start = instances[1].start_time + timedelta(hours=2)

        update_block_with_scope(
            block_repository,
            instances[1],
            {"title": "Deep work", "priority": "high", "start_time": new_start, "end_time": new_start + timedelta(hours=1)},
            SeriesScope.ALL,
        )

        for block_id in [root.id] + [i.id for i in instances]:
            stored = block_repository.find(block_id)
            assert stored.title == "Deep work"
            assert stored.priority == "high"
        assert block_repository.find(instances[1].id).start_time == new_start
        assert block_repository.find(instances[0].id).start_time == instances[0].start_time
        assert block_repository.find(root.id).start_time == root.start_time

    def test_missing_block_returns_none(self, block_repository, sample_block):
        assert update_block_with_scope(block_repository, sample_block, {"title": "x"}, SeriesScope.ALL) is None
