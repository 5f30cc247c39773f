from datetime import timedelta

from passwatch.base.config import Config


class SchedulerConfig(Config):
    name = "NotificationScheduler"
    LEAD_TIME = timedelta(minutes=5)  # reminder fires this long before pass start
    AUTO_DISMISS = timedelta(minutes=10)  # fired reminders clear themselves after this long
    EVENT_QUEUE_SIZE = 100  # oldest undelivered event is dropped once this many are waiting

    TITLE = "Satellite Pass Alert"
    BODY = "A satellite pass will begin in {lead_minutes} minutes! Maximum elevation: {max_elevation}°"
