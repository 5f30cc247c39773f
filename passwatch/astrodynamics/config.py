from passwatch.base.config import Config
from passwatch.core.constants import VISIBILITY_THRESHOLD_DEG


class AstrodynamicsConfig(Config):
    name = "Astrodynamics"

    # Constraints
    MIN_ELEVATION = VISIBILITY_THRESHOLD_DEG  # (degrees), strictly exceeded to be visible


class OrbitSamplerConfig(AstrodynamicsConfig):
    name = "OrbitSampler"
    HORIZON_MINUTES = 90
    STEP_MINUTES = 5


class PassSearchConfig(AstrodynamicsConfig):
    name = "PassSearch"
    STEP_SECONDS = 60
    WINDOW_HOURS = 24  # max span of a single find_next_pass scan
    DAYS_AHEAD = 3
