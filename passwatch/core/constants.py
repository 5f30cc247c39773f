
# Spherical Earth model
EARTH_RADIUS_KM = 6371.0

# Altitude assumed when a propagated position omits it
NOMINAL_ALTITUDE_KM = 420.0

# Elevation a satellite must strictly exceed to count as visible
VISIBILITY_THRESHOLD_DEG = 5.0

CARDINAL_DIRECTIONS = [
    "North",
    "North-Northeast",
    "Northeast",
    "East-Northeast",
    "East",
    "East-Southeast",
    "Southeast",
    "South-Southeast",
    "South",
    "South-Southwest",
    "Southwest",
    "West-Southwest",
    "West",
    "West-Northwest",
    "Northwest",
    "North-Northwest",
]

SIMPLE_DIRECTIONS = ["north", "northeast", "east", "southeast", "south", "southwest", "west", "northwest"]

# (lower bound in degrees, description), ascending
ELEVATION_BANDS = [
    (0, "On the horizon"),
    (5, "Minimum visibility height"),
    (30, "About 1/3 up the sky"),
    (60, "About 2/3 up the sky"),
    (75, "Very high in the sky"),
    (90, "Directly overhead!"),
]

# (minimum max-elevation in degrees, label), descending
PASS_QUALITY_LEVELS = [
    (60, "excellent"),
    (30, "good"),
    (15, "fair"),
    (0, "poor"),
]
