"""Platform notification surfaces. Optional collaborators of the reminder scheduler: the in-app banner stream
works without any of them."""

import logging
from abc import ABC, abstractmethod
from logging.handlers import RotatingFileHandler
from pathlib import Path

from passwatch.notifications.config import NotificationConfig

logger = logging.getLogger(__name__)


class NotificationSurface(ABC):
    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask the platform for permission to display notifications. True if granted."""
        raise NotImplementedError

    @abstractmethod
    async def show(self, title: str, body: str) -> None:
        """Display a notification. Fire-and-forget."""
        raise NotImplementedError


class LogNotificationSurface(NotificationSurface):
    """Writes notifications to a rotating log file, one line per notification."""

    def __init__(self, config: NotificationConfig = None):
        if config is None:
            config = NotificationConfig()
        self.config: NotificationConfig = config
        self.log_path = Path(config.root_log_dir).expanduser() / config.log_file
        self._logger = None

    def _get_logger(self) -> logging.Logger:
        if self._logger is None:
            # Ensure directory exists
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

            notification_logger = logging.getLogger(f"{__name__}.{self.log_path}")
            notification_logger.setLevel(logging.INFO)

            handler = RotatingFileHandler(
                filename=self.log_path, maxBytes=self.config.max_log_size, backupCount=self.config.backup_count
            )
            handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
            notification_logger.addHandler(handler)

            # Avoid propagating notifications to the console
            notification_logger.propagate = False
            self._logger = notification_logger
        return self._logger

    async def request_permission(self) -> bool:
        try:
            self._get_logger()
        except OSError as e:
            logger.warning(f"Notification log {self.log_path} unavailable: {e}")
            return False
        return True

    async def show(self, title: str, body: str) -> None:
        self._get_logger().info(f"{title}: {body}")
