"""Desktop notifications sent when a stage ends."""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class Notifier:
    """Send desktop notifications."""

    def __init__(self, enabled: bool = True, app_name: str = "To Concentrate"):
        """Initialize notifier.

        Args:
            enabled: Whether notifications are enabled
            app_name: Application name shown by the notification server
        """
        self.enabled = enabled
        self.app_name = app_name
        self._notifier = self._init_notifier()

    def _init_notifier(self) -> Any:
        """Initialize platform-specific notifier.

        Returns:
            Notification handler or None if not available
        """
        if not self.enabled:
            return None

        try:
            from plyer import notification  # type: ignore[import-not-found]

            return notification  # type: ignore[no-any-return]
        except ImportError:
            logger.warning("plyer is not installed, desktop notifications disabled")
            return None

    def notify(self, summary: str, body: Optional[str] = None, timeout: int = 10) -> None:
        """Send a desktop notification.

        Args:
            summary: Notification title
            body: Optional notification text
            timeout: Display duration in seconds
        """
        if not self.enabled or not self._notifier:
            logger.debug(f"Notification suppressed: {summary}")
            return

        self._notifier.notify(  # type: ignore[attr-defined]
            title=summary,
            message=body or "",
            app_name=self.app_name,
            timeout=timeout,
        )
        logger.info(f"Notification sent: {summary}")
