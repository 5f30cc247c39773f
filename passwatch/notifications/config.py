from passwatch.base.config import Config


class NotificationConfig(Config):
    name = "Notifications"
    log_file: str = "notifications.log"
