class Config:
    name: str = "BaseService"
    root_log_dir: str = "~/passwatch/log/"
    max_log_size: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 3


class ObserverConfig(Config):
    # Fallback observer when no location is supplied
    LATITUDE = 41.702
    LONGITUDE = -76.014
    ALTITUDE = 0.0  # (km)

    # Display timezone for formatted pass times
    TIMEZONE = "UTC"
