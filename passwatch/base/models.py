"""Value types shared by the geometry, search, monitor and scheduler components.

All of them are immutable: a recompute replaces an instance wholesale rather than patching it.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterator, Optional

from passwatch.common.utils import cardinal_direction, simple_direction
from passwatch.core.constants import NOMINAL_ALTITUDE_KM, PASS_QUALITY_LEVELS


def normalize_longitude(longitude_deg: float) -> float:
    """Wrap a longitude into (-180, 180]."""
    if not math.isfinite(longitude_deg):
        return longitude_deg
    wrapped = ((longitude_deg + 180.0) % 360.0) - 180.0
    return 180.0 if wrapped == -180.0 else wrapped


def _check_latitude(latitude_deg: float) -> None:
    if math.isfinite(latitude_deg) and not -90.0 <= latitude_deg <= 90.0:
        raise ValueError(f"Latitude {latitude_deg} outside [-90, 90]")


@dataclass(frozen=True)
class GeodeticPosition:
    latitude_deg: float
    longitude_deg: float
    altitude_km: Optional[float] = None

    def __post_init__(self):
        _check_latitude(self.latitude_deg)
        object.__setattr__(self, "longitude_deg", normalize_longitude(self.longitude_deg))
        if self.altitude_km is None:
            object.__setattr__(self, "altitude_km", NOMINAL_ALTITUDE_KM)
        elif math.isfinite(self.altitude_km) and self.altitude_km < 0:
            raise ValueError(f"Altitude {self.altitude_km} km is negative")

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.latitude_deg, self.longitude_deg, self.altitude_km))

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude_deg": self.latitude_deg,
            "longitude_deg": self.longitude_deg,
            "altitude_km": self.altitude_km,
        }


@dataclass(frozen=True)
class ObserverPosition:
    """Ground observer. The geometry model places the observer at sea level; `reported_altitude_km` is kept
    for display only."""

    latitude_deg: float
    longitude_deg: float
    reported_altitude_km: float = 0.0

    def __post_init__(self):
        _check_latitude(self.latitude_deg)
        object.__setattr__(self, "longitude_deg", normalize_longitude(self.longitude_deg))

    @property
    def altitude_km(self) -> float:
        return 0.0

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.latitude_deg) and math.isfinite(self.longitude_deg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude_deg": self.latitude_deg,
            "longitude_deg": self.longitude_deg,
            "altitude_km": self.reported_altitude_km,
        }


@dataclass(frozen=True)
class PropagatedState:
    timestamp: datetime
    position: GeodeticPosition


@dataclass(frozen=True)
class VisibilityReading:
    elevation_deg: float
    azimuth_deg: float
    slant_range_km: float
    is_visible: bool

    @property
    def compass_label(self) -> str:
        return cardinal_direction(self.azimuth_deg)

    @property
    def simple_direction(self) -> str:
        return simple_direction(self.azimuth_deg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "elevation_deg": round(self.elevation_deg, 2),
            "azimuth_deg": round(self.azimuth_deg, 2),
            "slant_range_km": round(self.slant_range_km, 2),
            "is_visible": self.is_visible,
            "compass_label": self.compass_label,
        }


# Reading used whenever no trustworthy geometry exists (failed propagation, non-finite input)
NOT_VISIBLE = VisibilityReading(elevation_deg=-90.0, azimuth_deg=0.0, slant_range_km=math.inf, is_visible=False)


@dataclass(frozen=True)
class OrbitPoint:
    time: datetime
    latitude_deg: float
    longitude_deg: float


@dataclass(frozen=True)
class OrbitPath:
    reference_time: Optional[datetime] = None
    points: tuple[OrbitPoint, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[OrbitPoint]:
        return iter(self.points)

    def latlngs(self) -> list[list[float]]:
        """[[lat, lon], ...] as consumed by map polylines."""
        return [[p.latitude_deg, p.longitude_deg] for p in self.points]

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference_time": self.reference_time,
            "points": [
                {"time": p.time, "latitude_deg": p.latitude_deg, "longitude_deg": p.longitude_deg} for p in self.points
            ],
        }


@dataclass(frozen=True)
class PassWindow:
    start_time: datetime
    end_time: datetime
    max_elevation_deg: int
    duration_minutes: int
    compass_label: str
    peak_elevation_deg: float = field(default=0.0, compare=False)
    direction: str = field(default="", compare=False)

    @property
    def id(self) -> int:
        """Start time in epoch milliseconds; stable across pass list regeneration."""
        return int(round(self.start_time.timestamp() * 1000))

    @property
    def quality(self) -> str:
        for min_elevation, label in PASS_QUALITY_LEVELS:
            if self.max_elevation_deg >= min_elevation:
                return label
        return PASS_QUALITY_LEVELS[-1][1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "max_elevation_deg": self.max_elevation_deg,
            "duration_minutes": self.duration_minutes,
            "compass_label": self.compass_label,
            "direction": self.direction,
            "quality": self.quality,
        }


class ReminderState(Enum):
    UNARMED = "unarmed"
    ARMED = "armed"
    FIRED = "fired"


class ReminderEventType(Enum):
    FIRE = "fire"
    DISMISS = "dismiss"


@dataclass(frozen=True)
class ReminderEvent:
    kind: ReminderEventType
    pass_id: int
    pass_window: PassWindow
    title: str
    body: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "pass_id": self.pass_id,
            "pass": self.pass_window.to_dict(),
            "title": self.title,
            "body": self.body,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class MonitorSnapshot:
    timestamp: datetime
    position: Optional[GeodeticPosition]
    reading: VisibilityReading
    orbit_path: OrbitPath

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "position": self.position.to_dict() if self.position is not None else None,
            "reading": self.reading.to_dict(),
            "orbit_path": self.orbit_path.latlngs(),
        }
