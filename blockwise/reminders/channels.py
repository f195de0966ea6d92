"""Notification channels for calendar reminders.

Channels are best-effort: the reminder scheduler logs and swallows any error
they raise.
"""

import logging
import os
from typing import Optional

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class LoggingNotificationChannel:
    """Default channel: writes reminders to the application log."""

    def notify(self, title: str, body: str) -> None:
        logger.info(f"Reminder: {title} - {body}")


class WebhookNotificationChannel:
    """Posts reminders as JSON to a webhook (e.g., a push relay)."""

    def __init__(self, url: Optional[str] = None, timeout_sec: Optional[float] = None):
        """Initialize webhook channel.

        Args:
            url: Webhook URL. If None, reads from REMINDER_WEBHOOK_URL env var.
            timeout_sec: Request timeout. If None, reads REMINDER_WEBHOOK_TIMEOUT_SEC (default 5).
        """
        self.url = url or os.getenv("REMINDER_WEBHOOK_URL")
        if not self.url:
            raise ValueError("Webhook URL is required. Set REMINDER_WEBHOOK_URL env var.")
        self.timeout_sec = timeout_sec or float(os.getenv("REMINDER_WEBHOOK_TIMEOUT_SEC", "5"))

    def notify(self, title: str, body: str) -> None:
        """POST the reminder.

        Raises:
            requests.RequestException: If the webhook call fails
        """
        response = requests.post(self.url, json={"title": title, "body": body}, timeout=self.timeout_sec)
        response.raise_for_status()


def build_notification_channel():
    """Webhook channel when REMINDER_WEBHOOK_URL is set, logging channel otherwise."""
    if os.getenv("REMINDER_WEBHOOK_URL"):
        return WebhookNotificationChannel()
    return LoggingNotificationChannel()
