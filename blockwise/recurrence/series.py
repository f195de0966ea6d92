"""Operations that address a whole recurring series.

A series is a root block (the one carrying the recurrence rule) plus every
block whose `recurrence_parent_id` is the root id. The link is a plain lookup
key: deleting one member never deletes the others unless scope="all" is asked for.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from blockwise.engine.interfaces import BlockStore
from blockwise.models.calendar_block import CalendarBlock

logger = logging.getLogger(__name__)


class SeriesScope(str, Enum):
    THIS = "this"
    ALL = "all"


# Fields that may be copied across a series; times stay per-instance.
SERIES_SHARED_FIELDS = ("title", "description", "color", "priority", "demand_type")


def series_root_id(block: CalendarBlock) -> str:
    return block.recurrence_parent_id or block.id


def is_recurring(block: CalendarBlock) -> bool:
    return bool(block.recurrence_parent_id) or (block.recurrence_rule is not None)


def delete_block_with_scope(store: BlockStore, block: CalendarBlock, scope: SeriesScope = SeriesScope.THIS) -> int:
    """Delete a block, or its whole series when scope is ALL.

    Returns:
        Number of blocks deleted
    """
    if SeriesScope(scope) == SeriesScope.THIS or not is_recurring(block):
        return 1 if store.delete(block.id) else 0

    root_id = series_root_id(block)
    deleted = store.delete_by_parent(root_id)
    if store.delete(root_id):
        deleted += 1
    logger.debug(f"Deleted series {root_id}: {deleted} blocks")
    return deleted


def update_block_with_scope(
    store: BlockStore,
    block: CalendarBlock,
    patch: Dict[str, Any],
    scope: SeriesScope = SeriesScope.THIS,
) -> Optional[CalendarBlock]:
    """Update a block; with scope ALL, also copy shared fields to the rest of the series.

    Args:
        store: Block store
        block: The block the user addressed
        patch: Field updates
        scope: THIS or ALL

    Returns:
        The updated addressed block, or None if it no longer exists
    """
    updated = store.update(block.id, patch)
    if updated is None or SeriesScope(scope) == SeriesScope.THIS or not is_recurring(block):
        return updated

    shared = {k: v for k, v in patch.items() if k in SERIES_SHARED_FIELDS}
    if not shared:
        return updated
    shared["updated_at"] = datetime.utcnow()

    root_id = series_root_id(block)
    targets = [m.id for m in store.list_by_parent(root_id) if m.id != block.id]
    if root_id != block.id:
        targets.insert(0, root_id)
    for member_id in targets:
        store.update(member_id, shared)
    logger.debug(f"Propagated {sorted(shared)} to {len(targets)} blocks in series {root_id}")
    return updated
