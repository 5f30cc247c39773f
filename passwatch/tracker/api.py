import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from passwatch.astrodynamics.config import PassSearchConfig
from passwatch.astrodynamics.geometry import elevation_band
from passwatch.astrodynamics.pass_search import find_passes_async
from passwatch.astrodynamics.propagator import OrbitalElements, Propagator, SkyfieldPropagator, parse_tle_text
from passwatch.base.models import ObserverPosition, PassWindow
from passwatch.monitor.api import VisibilityMonitor
from passwatch.notifications.api import LogNotificationSurface
from passwatch.scheduler.api import NotificationScheduler
from passwatch.tracker.config import TrackerConfig

logger = logging.getLogger(__name__)


class PassTracker:
    """Feeds one propagator into the visibility monitor and the pass search, and keeps the reminder scheduler
    reconciled with the latest pass list."""

    def __init__(
        self,
        config: TrackerConfig = None,
        propagator: Propagator = None,
        monitor: VisibilityMonitor = None,
        scheduler: NotificationScheduler = None,
        shutdown_event: asyncio.Event = None,
        clock: Callable[[], datetime] = None,
    ):
        if config is None:
            config = TrackerConfig()
        self.config: TrackerConfig = config
        self._clock = clock if clock is not None else lambda: datetime.now(timezone.utc)
        self.propagator: Propagator = propagator if propagator is not None else SkyfieldPropagator()
        self.observer = ObserverPosition(config.LATITUDE, config.LONGITUDE, config.ALTITUDE)
        self.elements: Optional[OrbitalElements] = None
        self.passes: list[PassWindow] = []
        self.search_config = PassSearchConfig()

        if monitor is None:
            monitor = VisibilityMonitor(self.propagator, self.observer, clock=self._clock)
        if scheduler is None:
            surface = LogNotificationSurface() if config.PLATFORM_NOTIFICATIONS else None
            scheduler = NotificationScheduler(surface=surface, clock=self._clock)
        self.monitor: VisibilityMonitor = monitor
        self.scheduler: NotificationScheduler = scheduler
        self.shutdown_event: asyncio.Event = shutdown_event if shutdown_event is not None else asyncio.Event()

        # Serializes pass recomputation together with reconciliation of the reminder timers
        self._lock = asyncio.Lock()

    async def start(self):
        logger.info("Starting PassTracker.")
        await self.scheduler.request_permission()
        if self.elements is not None:
            await self.monitor.refresh()
            await self.recompute_passes()

    async def stop(self):
        logger.info("Stopping PassTracker.")
        self.shutdown_event.set()
        await self.scheduler.stop()

    async def run(self):
        """Drive the monitor refresh loop until shutdown."""
        await self.monitor.run(self.shutdown_event)

    async def load_tle(self, text: str) -> OrbitalElements:
        """Parse and adopt new orbital elements. InvalidElements propagates and leaves current state untouched."""
        elements = parse_tle_text(text)
        await self.set_elements(elements)
        return elements

    async def set_elements(self, elements: OrbitalElements) -> list[PassWindow]:
        logger.info(f"Tracking {elements.name}")
        self.elements = elements
        await self.monitor.set_elements(elements)
        return await self.recompute_passes()

    async def set_observer(self, observer: ObserverPosition) -> list[PassWindow]:
        logger.info(f"Observer moved to ({observer.latitude_deg:.3f}, {observer.longitude_deg:.3f})")
        self.observer = observer
        await self.monitor.set_observer(observer)
        return await self.recompute_passes()

    async def recompute_passes(self, now: Optional[datetime] = None) -> list[PassWindow]:
        """Search for passes and hand the new list to the scheduler as one unit."""
        if self.elements is None:
            logger.warning("No orbital elements loaded, skipping pass search")
            return self.passes

        async with self._lock:
            elements, observer = self.elements, self.observer
            if now is None:
                now = self._clock()
            passes = await find_passes_async(
                self.propagator, elements, observer, now, self.config.DAYS_AHEAD, self.search_config
            )
            if elements is not self.elements or observer is not self.observer:
                logger.info("Inputs changed during pass search, discarding stale result")
                return self.passes

            # No suspension point between publishing the list and re-arming against it
            self.passes = passes
            await self.scheduler.reconcile(passes)
        return passes

    async def arm(self, pass_id: int) -> bool:
        return await self.scheduler.arm(pass_id)

    async def disarm(self, pass_id: int) -> bool:
        return await self.scheduler.disarm(pass_id)

    async def dismiss(self, pass_id: int) -> bool:
        return await self.scheduler.dismiss(pass_id)

    def next_pass(self, now: Optional[datetime] = None) -> Optional[PassWindow]:
        if now is None:
            now = self._clock()
        for pass_window in self.passes:
            if pass_window.start_time > now:
                return pass_window
        return None

    async def status(self) -> dict:
        snapshot = self.monitor.snapshot
        current = None
        if snapshot is not None:
            current = snapshot.to_dict()
            current["sky_position"] = elevation_band(snapshot.reading.elevation_deg)[1]
        return {
            "satellite": self.elements.name if self.elements is not None else None,
            "observer": self.observer.to_dict(),
            "current": current,
            "pass_count": len(self.passes),
            "next_pass": self.next_pass(),
            "reminders": await self.scheduler.status(),
        }
