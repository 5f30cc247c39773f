"""Forward search for visibility windows (passes).

A linear scan at fixed resolution: each `find_next_pass` call covers at most one search window (24 h by
default) and the outer loop restarts one step after the end of every pass found, so passes come out
non-overlapping and in increasing start time.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta
from typing import Iterator, Optional

from passwatch.astrodynamics.config import PassSearchConfig
from passwatch.astrodynamics.geometry import coarse_direction, elevation_azimuth
from passwatch.astrodynamics.propagator import OrbitalElements, Propagator
from passwatch.base.errors import PropagationFailure
from passwatch.base.models import NOT_VISIBLE, GeodeticPosition, ObserverPosition, PassWindow, VisibilityReading

logger = logging.getLogger(__name__)


def _reading_at(
    propagator: Propagator, elements: OrbitalElements, observer: ObserverPosition, time: datetime
) -> tuple[Optional[GeodeticPosition], VisibilityReading]:
    try:
        position = propagator.propagate(elements, time)
    except PropagationFailure as e:
        logger.debug(f"Treating {time} as not visible: {e}")
        return None, NOT_VISIBLE
    return position, elevation_azimuth(observer, position)


def find_next_pass(
    propagator: Propagator,
    elements: OrbitalElements,
    observer: ObserverPosition,
    search_from: datetime,
    config: PassSearchConfig = PassSearchConfig,
) -> Optional[PassWindow]:
    """Find the first pass that both starts and ends within one search window of `search_from`

    A pass opens at the first step whose elevation is strictly above MIN_ELEVATION and closes at the
    first later step at or below it. A failed propagation counts as a step below the threshold.

    Returns: PassWindow, or None if no complete pass fits in the window
    """
    step = timedelta(seconds=config.STEP_SECONDS)
    window_end = search_from + timedelta(hours=config.WINDOW_HOURS)

    time = search_from
    pass_start = None
    compass_label = ""
    direction = ""
    peak_elevation = -90.0
    while time < window_end:
        position, reading = _reading_at(propagator, elements, observer, time)
        if reading.elevation_deg > config.MIN_ELEVATION:
            if pass_start is None:
                pass_start = time
                compass_label = reading.compass_label
                direction = coarse_direction(observer, position)
            peak_elevation = max(peak_elevation, reading.elevation_deg)
        elif pass_start is not None:
            duration = (time - pass_start).total_seconds() / 60
            return PassWindow(
                start_time=pass_start,
                end_time=time,
                max_elevation_deg=int(math.floor(peak_elevation + 0.5)),
                duration_minutes=int(round(duration)),
                compass_label=compass_label,
                peak_elevation_deg=peak_elevation,
                direction=direction,
            )
        time += step

    return None


def iter_passes(
    propagator: Propagator,
    elements: OrbitalElements,
    observer: ObserverPosition,
    search_from: datetime,
    days_ahead: float = PassSearchConfig.DAYS_AHEAD,
    config: PassSearchConfig = PassSearchConfig,
) -> Iterator[PassWindow]:
    """Yield passes ending before `search_from + days_ahead`, stopping at the first search window without one."""
    horizon = search_from + timedelta(days=days_ahead)
    step = timedelta(seconds=config.STEP_SECONDS)
    cursor = search_from
    while cursor < horizon:
        next_pass = find_next_pass(propagator, elements, observer, cursor, config)
        if next_pass is None or next_pass.end_time >= horizon:
            break
        yield next_pass
        cursor = next_pass.end_time + step


def find_passes(
    propagator: Propagator,
    elements: OrbitalElements,
    observer: ObserverPosition,
    search_from: datetime,
    days_ahead: float = PassSearchConfig.DAYS_AHEAD,
    config: PassSearchConfig = PassSearchConfig,
) -> list[PassWindow]:
    passes = list(iter_passes(propagator, elements, observer, search_from, days_ahead, config))
    logger.info(f"Found {len(passes)} passes over the next {days_ahead} days")
    return passes


async def find_passes_async(
    propagator: Propagator,
    elements: OrbitalElements,
    observer: ObserverPosition,
    search_from: datetime,
    days_ahead: float = PassSearchConfig.DAYS_AHEAD,
    config: PassSearchConfig = PassSearchConfig,
) -> list[PassWindow]:
    """Same result as find_passes, yielding to the event loop between search windows."""
    passes = []
    for next_pass in iter_passes(propagator, elements, observer, search_from, days_ahead, config):
        passes.append(next_pass)
        await asyncio.sleep(0)
    logger.info(f"Found {len(passes)} passes over the next {days_ahead} days")
    return passes
