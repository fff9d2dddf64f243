"""
Pushover Notification Client for sitesync.

Sends push notifications for ingestion events the site owner should know
about without watching logs:
- Content files rejected during ingestion (bad frontmatter, slug conflicts, ...)
- Notifications that failed signature verification
- Content fetches that gave up after retrying
- Error-level log messages (via PushoverLoggingHandler)

Fully accepted notifications are not announced; there is nothing to act on.

Pushover Configuration:
    Configure via config.yml:
    - pushover.enabled: Set to true to enable notifications
    - pushover.app_token_file: Path to Docker secret for app token
    - pushover.user_key_file: Path to Docker secret for user key

Usage:
    >>> from config import load_config
    >>> notifier = PushoverNotifier.from_config(load_config())
    >>> notifier.notify_unauthenticated("203.0.113.7")

API Reference:
    Pushover API: https://pushover.net/api
"""
import os
import logging
import time
from typing import Any, Dict, List, Optional
import requests


logger = logging.getLogger(__name__)


class PushoverNotifier:
    """Client for sending push notifications via Pushover service.

    Attributes:
        app_token: Pushover application API token
        user_key: Pushover user/group key
        enabled: Whether notifications are enabled (both credentials must be set)
    """

    PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"

    # Pushover field length limits
    MAX_TITLE_LENGTH = 250
    MAX_MESSAGE_LENGTH = 1024

    # Rejected files listed individually before the message is summarized
    MAX_LISTED_REJECTIONS = 5

    def __init__(self, app_token: Optional[str] = None, user_key: Optional[str] = None,
                 config_enabled: bool = True):
        """Initialize Pushover notifier with credentials.

        Args:
            app_token: Pushover application API token. Falls back to the
                      PUSHOVER_APP_TOKEN environment variable.
            user_key: Pushover user/group key. Falls back to the
                     PUSHOVER_USER_KEY environment variable.
            config_enabled: Whether Pushover is enabled in config.yml (default: True)
        """
        self.app_token = app_token or os.environ.get("PUSHOVER_APP_TOKEN")
        self.user_key = user_key or os.environ.get("PUSHOVER_USER_KEY")
        self.enabled = (config_enabled and
                        self.app_token is not None and
                        self.user_key is not None)

        if not config_enabled:
            logger.info("Pushover notifications disabled via config.yml")
        elif not self.enabled:
            logger.warning("Pushover notifications disabled: missing credentials")
        else:
            logger.info("Pushover notifications enabled")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PushoverNotifier":
        """Create PushoverNotifier from configuration dictionary.

        Reads credentials from the Docker secret files named in config.yml.
        """
        from config import read_secret_file

        pushover_config = config.get("pushover", {})
        if not pushover_config.get("enabled", False):
            return cls(config_enabled=False)

        app_token_file = pushover_config.get("app_token_file", "/run/secrets/pushover_app_token")
        user_key_file = pushover_config.get("user_key_file", "/run/secrets/pushover_user_key")

        return cls(
            app_token=read_secret_file(app_token_file),
            user_key=read_secret_file(user_key_file),
            config_enabled=True,
        )

    def _send_notification(
        self,
        title: str,
        message: str,
        priority: int = 0
    ) -> bool:
        """Send a push notification via Pushover API.

        Args:
            title: Notification title (truncated to 250 characters)
            message: Notification message (truncated to 1024 characters)
            priority: Priority level (-2 to 2), 0 is normal, 1 bypasses quiet hours

        Returns:
            True if notification sent successfully, False otherwise. Never raises.
        """
        if not self.enabled:
            logger.debug(f"Pushover notification skipped (disabled): {title} - {message}")
            return False

        try:
            payload = {
                "token": self.app_token,
                "user": self.user_key,
                "title": title[:self.MAX_TITLE_LENGTH],
                "message": message[:self.MAX_MESSAGE_LENGTH],
                "priority": priority,
            }

            response = requests.post(self.PUSHOVER_API_URL, data=payload, timeout=10)
            response.raise_for_status()

            logger.info(f"Pushover notification sent: {title}")
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Pushover notification: {e}")
            return False

    def notify_rejections(self, repository: str, commit: str, rejections: List[Dict[str, Any]],
                          accepted: int = 0) -> bool:
        """Send notification listing content files rejected in one notification.

        Args:
            repository: "owner/name" of the content repository
            commit: Head commit of the notification
            rejections: Outcome dicts (path, reason, violations) of rejected files
            accepted: Number of files accepted alongside the rejections

        Returns:
            True if notification sent, False if disabled, failed, or nothing to report
        """
        if not rejections:
            return False

        lines = []
        for outcome in rejections[:self.MAX_LISTED_REJECTIONS]:
            lines.append(f"• {outcome.get('path')}: {outcome.get('reason')}")
        remaining = len(rejections) - self.MAX_LISTED_REJECTIONS
        if remaining > 0:
            lines.append(f"…and {remaining} more")

        title = f"⚠️ {len(rejections)} file(s) rejected"
        message = (
            f"{repository}@{commit[:12]} ({accepted} accepted)\n" + "\n".join(lines)
        )
        return self._send_notification(title=title, message=message, priority=1)

    def notify_unauthenticated(self, remote_addr: Optional[str]) -> bool:
        """Send notification when a notification fails signature verification."""
        title = "🔒 Unauthenticated Webhook"
        message = f"Rejected a notification with an invalid signature from {remote_addr or 'unknown address'}"
        return self._send_notification(title=title, message=message, priority=0)

    def notify_fetch_failure(self, repository: str, commit: str, details: str) -> bool:
        """Send notification when changed files could not be fetched."""
        title = "🌐 Content Fetch Failed"
        message = f"{repository}@{commit[:12]} was not ingested; the sender should retry.\n{details}"
        return self._send_notification(title=title, message=message, priority=0)

    def notify_log_error(self, logger_name: str, message: str, level: str = "ERROR") -> bool:
        """Send notification for error-level log messages."""
        title = f"🚨 sitesync {level}"
        full_message = f"[{logger_name}]\n{message}"
        return self._send_notification(title=title, message=full_message, priority=1)


class PushoverLoggingHandler(logging.Handler):
    """Logging handler that forwards ERROR and CRITICAL records to Pushover.

    Rate limited so an error storm produces one notification per window.

    Example:
        >>> handler = PushoverLoggingHandler(notifier, rate_limit_seconds=30)
        >>> logging.getLogger().addHandler(handler)
    """

    def __init__(self, notifier: PushoverNotifier, rate_limit_seconds: int = 60):
        super().__init__()
        self.notifier = notifier
        self.rate_limit_seconds = rate_limit_seconds
        self._last_notification_time: float = 0.0
        self.setLevel(logging.ERROR)

    def emit(self, record: logging.LogRecord) -> None:
        if not self.notifier.enabled:
            return

        current_time = time.time()
        if current_time - self._last_notification_time < self.rate_limit_seconds:
            return

        try:
            message = self.format(record)
            success = self.notifier.notify_log_error(
                logger_name=record.name,
                message=message,
                level=record.levelname
            )
            if success:
                self._last_notification_time = current_time
        except Exception:
            # Notification failures must never break logging
            self.handleError(record)
