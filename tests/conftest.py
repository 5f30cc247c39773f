from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from passwatch.astrodynamics.propagator import Propagator
from passwatch.base.errors import PropagationFailure
from passwatch.base.models import GeodeticPosition, ObserverPosition

T0 = datetime(2024, 3, 12, 0, 0, tzinfo=timezone.utc)

ISS_TLE_LINE1 = "1 25544U 98067A   24072.45833333  .00020674  00000-0  37224-3 0  9997"
ISS_TLE_LINE2 = "2 25544  51.6404  55.9163 0001727  26.6688  64.1273 15.49970316443799"


class MeridianPropagator(Propagator):
    """Sweeps the sub-satellite point north along the prime meridian at 2 deg/min, from -60 deg latitude,
    restarting every 60 minutes. Seen from (0, 0) at 420 km each sweep is a pass from minute 23 (lat -14)
    to minute 38 (lat 16, just below 5 deg), peaking overhead at minute 30."""

    def __init__(self, t0: datetime = T0, fail_minutes=(), altitude_km: float = 420.0):
        self.t0 = t0
        self.fail_minutes = set(fail_minutes)
        self.altitude_km = altitude_km
        self.calls = []

    def minutes(self, instant: datetime) -> float:
        return (instant - self.t0).total_seconds() / 60

    def propagate(self, elements, instant: datetime) -> GeodeticPosition:
        self.calls.append(instant)
        minutes = self.minutes(instant)
        if round(minutes) in self.fail_minutes:
            raise PropagationFailure(f"no position at minute {minutes}")
        latitude = -60.0 + 2.0 * (minutes % 60)
        return GeodeticPosition(latitude, 0.0, self.altitude_km)


class FixedPropagator(Propagator):
    def __init__(self, position: GeodeticPosition):
        self.position = position

    def propagate(self, elements, instant: datetime) -> GeodeticPosition:
        return self.position


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def equator_observer():
    return ObserverPosition(0.0, 0.0)


@pytest.fixture
def fake_elements():
    return SimpleNamespace(name="FAKESAT")


@pytest.fixture
def meridian_propagator():
    return MeridianPropagator()


@pytest.fixture
def make_meridian_propagator():
    return MeridianPropagator


@pytest.fixture
def iss_tle():
    return ISS_TLE_LINE1, ISS_TLE_LINE2


@pytest.fixture
def make_fixed_propagator():
    return FixedPropagator
