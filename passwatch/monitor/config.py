from passwatch.astrodynamics.config import OrbitSamplerConfig


class MonitorConfig(OrbitSamplerConfig):
    name = "VisibilityMonitor"
    REFRESH_INTERVAL = 5  # (seconds) between current-position recomputes
