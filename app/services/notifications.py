"""User-facing notifications."""

import logging

logger = logging.getLogger(__name__)


class Notifier:
    """Delivers a notification to the user; the default only logs it."""

    def notify(self, title: str, message: str) -> None:
        logger.info(f"Notification: {title} - {message}")
