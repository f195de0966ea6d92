"""Constants for blockwise.

This module centralizes all magic numbers and default values used by the scheduling engine.
"""


# Workday defaults (reorganization)
DEFAULT_WORKDAY_START_HOUR = 8
DEFAULT_WORKDAY_END_HOUR = 22
DEFAULT_BREAK_MINUTES = 15
DEFAULT_LUNCH_START_HOUR = 12
DEFAULT_LUNCH_DURATION_MINUTES = 60

# Recurrence expansion bounds
DEFAULT_RECURRENCE_HORIZON_MONTHS = 3
DEFAULT_RECURRENCE_MAX_OCCURRENCES = 90

# Reminders
REMINDER_THRESHOLDS_MINUTES = (30, 15, 1)
REMINDER_LOOKAHEAD_MINUTES = 35
REMINDER_CHECK_INTERVAL_SECONDS = 30
SENT_REMINDER_RETENTION_HOURS = 24
REMINDER_NOTIFICATION_TYPE = "calendar_reminder"

# Presentation
DEFAULT_BLOCK_COLOR = "#6366f1"
DEFAULT_BLOCK_TITLE = "New block"
