import logging
from datetime import datetime, timedelta

from passwatch.astrodynamics.config import OrbitSamplerConfig
from passwatch.astrodynamics.propagator import OrbitalElements, Propagator
from passwatch.base.errors import PropagationFailure
from passwatch.base.models import OrbitPath, OrbitPoint

logger = logging.getLogger(__name__)


def sample(
    propagator: Propagator,
    elements: OrbitalElements,
    reference_time: datetime,
    horizon_minutes: float = OrbitSamplerConfig.HORIZON_MINUTES,
    step_minutes: float = OrbitSamplerConfig.STEP_MINUTES,
) -> OrbitPath:
    """Sample the ground track from `reference_time` over the next `horizon_minutes`

    Args:
        propagator: position source
        elements: orbital elements handed to the propagator
        reference_time: first sample instant
        horizon_minutes: look-ahead span, exclusive
        step_minutes: spacing between samples

    Returns:
        OrbitPath with one point per offset k * step_minutes < horizon_minutes that propagated
    """
    if step_minutes <= 0 or horizon_minutes <= 0:
        raise ValueError(f"Invalid sampling window: horizon={horizon_minutes}, step={step_minutes}")

    points = []
    failures = 0
    k = 0
    while k * step_minutes < horizon_minutes:
        offset = k * step_minutes
        k += 1
        t = reference_time + timedelta(minutes=offset)
        try:
            state = propagator.state_at(elements, t)
        except PropagationFailure as e:
            failures += 1
            logger.debug(f"Dropping orbit sample at {t}: {e}")
            continue
        points.append(
            OrbitPoint(
                time=state.timestamp,
                latitude_deg=state.position.latitude_deg,
                longitude_deg=state.position.longitude_deg,
            )
        )

    if failures:
        logger.warning(f"Orbit path for {elements.name}: {failures} of {failures + len(points)} samples failed")
    return OrbitPath(reference_time=reference_time, points=tuple(points))
