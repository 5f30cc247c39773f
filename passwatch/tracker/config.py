from passwatch.astrodynamics.config import PassSearchConfig
from passwatch.base.config import ObserverConfig


class TrackerConfig(ObserverConfig):
    name = "PassTracker"
    TLE_FILE = "~/passwatch/tle.txt"
    DAYS_AHEAD = PassSearchConfig.DAYS_AHEAD
    PLATFORM_NOTIFICATIONS = True
