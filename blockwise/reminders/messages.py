"""Reminder copy for each threshold."""

from typing import NamedTuple


class ReminderMessage(NamedTuple):
    title: str
    body: str


def format_reminder(threshold_minutes: int, block_title: str) -> ReminderMessage:
    """Threshold-specific reminder text (30, 15 and 1 minute copy differ)."""
    if threshold_minutes == 30:
        return ReminderMessage(
            title="📅 Starts in 30 minutes",
            body=f'"{block_title}" starts in 30 minutes. Get ready!',
        )
    if threshold_minutes == 15:
        return ReminderMessage(
            title="⏰ Starts in 15 minutes",
            body=f'"{block_title}" starts in 15 minutes!',
        )
    if threshold_minutes == 1:
        return ReminderMessage(
            title="🔔 Starts in 1 minute!",
            body=f'"{block_title}" is about to start!',
        )
    return ReminderMessage(
        title=f"Starts in {threshold_minutes} minutes",
        body=f'"{block_title}" starts in {threshold_minutes} minutes.',
    )
