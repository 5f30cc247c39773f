"""Propagator collaborator: TLE parsing and SGP4 propagation to geodetic positions, backed by skyfield."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import numpy as np
from skyfield.api import EarthSatellite, load, wgs84

from passwatch.base.errors import InvalidElements, PropagationFailure
from passwatch.base.models import GeodeticPosition, PropagatedState

logger = logging.getLogger(__name__)

TLE_LINE_LENGTH = 69


@dataclass(frozen=True)
class OrbitalElements:
    """Parsed two-line element set. Consumers treat it as opaque and hand it back to a Propagator."""

    name: str
    line1: str
    line2: str
    satellite: EarthSatellite

    @property
    def satnum(self) -> int:
        return int(self.line1[2:7])


def tle_checksum(line: str) -> int:
    """Modulo-10 checksum over the first 68 columns: digits count their value, minus signs count 1."""
    total = 0
    for char in line[: TLE_LINE_LENGTH - 1]:
        if char.isdigit():
            total += int(char)
        elif char == "-":
            total += 1
    return total % 10


def _validate_line(line: str, number: int) -> None:
    if not line.startswith(f"{number} "):
        raise InvalidElements(f"Line {number} must start with '{number} ': {line!r}")
    if len(line) < TLE_LINE_LENGTH:
        raise InvalidElements(f"Line {number} has {len(line)} columns, expected {TLE_LINE_LENGTH}")
    if not line[TLE_LINE_LENGTH - 1].isdigit() or int(line[TLE_LINE_LENGTH - 1]) != tle_checksum(line):
        raise InvalidElements(f"Line {number} checksum mismatch")


def parse_tle(line1: str, line2: str, name: Optional[str] = None) -> OrbitalElements:
    """Parse and validate a two-line element set.

    Args:
        line1: TLE line 1
        line2: TLE line 2
        name: satellite name, defaults to the catalog number

    Returns: OrbitalElements

    Raises:
        InvalidElements: if the lines are malformed or rejected by the SGP4 parser
    """
    line1 = (line1 or "").strip()
    line2 = (line2 or "").strip()
    _validate_line(line1, 1)
    _validate_line(line2, 2)
    if line1[2:7] != line2[2:7]:
        raise InvalidElements(f"Catalog numbers differ between lines: {line1[2:7]} != {line2[2:7]}")

    name = name.strip() if name else line1[2:7].strip()
    try:
        satellite = EarthSatellite(line1, line2, name)
    except ValueError as e:
        raise InvalidElements(f"SGP4 rejected TLE for {name}: {e}") from e
    logger.info(f"Parsed orbital elements for {name} (epoch {satellite.epoch.utc_iso()})")
    return OrbitalElements(name=name, line1=line1, line2=line2, satellite=satellite)


def parse_tle_text(text: str) -> OrbitalElements:
    """Parse a TLE in either 2-line or 3-line (name, line1, line2) form."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) == 2:
        return parse_tle(lines[0], lines[1])
    if len(lines) == 3:
        return parse_tle(lines[1], lines[2], name=lines[0])
    raise InvalidElements(f"Expected 2 or 3 non-empty lines, got {len(lines)}")


def load_tle_file(path: Union[str, Path]) -> OrbitalElements:
    path = Path(path).expanduser()
    try:
        text = path.read_text()
    except OSError as e:
        raise InvalidElements(f"Could not read TLE file {path}: {e}") from e
    return parse_tle_text(text)


class Propagator(ABC):
    """Stateless position source: callable repeatedly for arbitrary past or future instants."""

    @abstractmethod
    def propagate(self, elements: OrbitalElements, instant: datetime) -> GeodeticPosition:
        """Return the sub-satellite point and altitude at `instant`, raising PropagationFailure if none exists."""
        raise NotImplementedError

    def state_at(self, elements: OrbitalElements, instant: datetime) -> PropagatedState:
        return PropagatedState(timestamp=instant, position=self.propagate(elements, instant))


class SkyfieldPropagator(Propagator):
    def __init__(self):
        self._timescale = load.timescale()

    def propagate(self, elements: OrbitalElements, instant: datetime) -> GeodeticPosition:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        try:
            time_scale = self._timescale.from_datetime(instant)
            geocentric = elements.satellite.at(time_scale)
        except Exception as e:
            raise PropagationFailure(f"Failed to propagate {elements.name} at {instant}: {e}") from e

        if np.isnan(geocentric.position.km).any():
            message = getattr(geocentric, "message", None) or "no position"
            raise PropagationFailure(f"Failed to propagate {elements.name} at {instant}: {message}")

        lat, lon = wgs84.latlon_of(geocentric)
        height_km = float(wgs84.height_of(geocentric).km)
        try:
            return GeodeticPosition(float(lat.degrees), float(lon.degrees), height_km)
        except ValueError as e:
            raise PropagationFailure(f"Implausible position for {elements.name} at {instant}: {e}") from e
