"""Current-state monitor: what the satellite looks like from the observer right now, plus its upcoming ground track."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from passwatch.astrodynamics import orbit_sampler
from passwatch.astrodynamics.geometry import elevation_azimuth
from passwatch.astrodynamics.propagator import OrbitalElements, Propagator
from passwatch.base.errors import PropagationFailure
from passwatch.base.models import NOT_VISIBLE, MonitorSnapshot, ObserverPosition, OrbitPath
from passwatch.common.utils import wait_until_first_completed
from passwatch.monitor.config import MonitorConfig

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[MonitorSnapshot], None]


class VisibilityMonitor:
    def __init__(
        self,
        propagator: Propagator,
        observer: ObserverPosition,
        elements: Optional[OrbitalElements] = None,
        config: MonitorConfig = None,
        clock: Callable[[], datetime] = None,
    ):
        if config is None:
            config = MonitorConfig()
        self.config: MonitorConfig = config
        self.propagator: Propagator = propagator
        self.observer: ObserverPosition = observer
        self.elements: Optional[OrbitalElements] = elements
        self._clock = clock if clock is not None else lambda: datetime.now(timezone.utc)

        self._snapshot: Optional[MonitorSnapshot] = None
        self.listeners: list[SnapshotListener] = []
        self.refresh_requested = asyncio.Event()
        self.is_running = False

    @property
    def snapshot(self) -> Optional[MonitorSnapshot]:
        """Latest published snapshot. Replaced as a whole on every refresh."""
        return self._snapshot

    async def set_elements(self, elements: OrbitalElements) -> Optional[MonitorSnapshot]:
        self.elements = elements
        return await self.refresh()

    async def set_observer(self, observer: ObserverPosition) -> Optional[MonitorSnapshot]:
        self.observer = observer
        return await self.refresh()

    def request_refresh(self) -> None:
        """Wake the run loop ahead of its next tick."""
        self.refresh_requested.set()

    async def refresh(self, now: Optional[datetime] = None) -> Optional[MonitorSnapshot]:
        """Recompute the reading and orbit path for `now` and publish them as one snapshot.

        A failed propagation publishes NOT_VISIBLE with the previous orbit path left as it was.
        """
        if self.elements is None:
            logger.warning("No orbital elements loaded, skipping refresh")
            return self._snapshot
        if now is None:
            now = self._clock()

        try:
            position = self.propagator.propagate(self.elements, now)
        except PropagationFailure as e:
            logger.warning(f"No position this tick: {e}")
            previous_path = self._snapshot.orbit_path if self._snapshot is not None else OrbitPath()
            snapshot = MonitorSnapshot(timestamp=now, position=None, reading=NOT_VISIBLE, orbit_path=previous_path)
        else:
            reading = elevation_azimuth(self.observer, position)
            orbit_path = orbit_sampler.sample(
                self.propagator,
                self.elements,
                now,
                horizon_minutes=self.config.HORIZON_MINUTES,
                step_minutes=self.config.STEP_MINUTES,
            )
            snapshot = MonitorSnapshot(timestamp=now, position=position, reading=reading, orbit_path=orbit_path)

        self._snapshot = snapshot
        for listener in self.listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Snapshot listener {listener} failed: {e}")
        return snapshot

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Refresh every REFRESH_INTERVAL seconds until `shutdown_event` is set."""
        logger.info(f"Starting visibility monitor, refresh interval {self.config.REFRESH_INTERVAL}s")
        self.is_running = True
        try:
            while not shutdown_event.is_set():
                await self.refresh()
                self.refresh_requested.clear()
                await wait_until_first_completed(
                    [shutdown_event, self.refresh_requested], [asyncio.sleep(self.config.REFRESH_INTERVAL)]
                )
        finally:
            self.is_running = False
            logger.info("Visibility monitor stopped.")
