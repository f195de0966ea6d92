"""Engine exceptions for blockwise."""

from typing import List, Optional


class InvalidTimeRangeError(ValueError):
    """A block's end_time is not after its start_time."""


class InvalidRecurrenceError(ValueError):
    """A recurrence rule cannot be expanded (missing rule, non-positive interval/count)."""


class ReorganizationApplyError(RuntimeError):
    """Applying reorganized placements failed part-way.

    Placements applied before the failure are NOT rolled back; `applied_ids`
    lists them in application order.
    """

    def __init__(self, failed_id: str, applied_ids: List[str], cause: Optional[BaseException] = None):
        self.failed_id = failed_id
        self.applied_ids = list(applied_ids)
        self.cause = cause
        detail = f": {type(cause).__name__}: {cause}" if cause is not None else ""
        super().__init__(
            f"Failed to move block {failed_id} after {len(self.applied_ids)} applied placement(s){detail}"
        )
