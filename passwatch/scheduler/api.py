"""Reminder scheduling for predicted passes.

Per pass id the reminder moves UNARMED -> ARMED -> FIRED -> UNARMED (on dismissal). Timers are asyncio tasks
owned by the scheduler and keyed by pass id, so they survive regeneration of the pass list. `arm`, `disarm`,
`dismiss` and `reconcile` never suspend, which makes each of them atomic on the event loop: a cancelled timer
task is guaranteed not to resume into its fire step.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from passwatch.base.errors import SchedulingConflict
from passwatch.base.models import PassWindow, ReminderEvent, ReminderEventType, ReminderState
from passwatch.common.utils import utc_to_local
from passwatch.notifications.api import NotificationSurface
from passwatch.scheduler.config import SchedulerConfig

logger = logging.getLogger(__name__)


class NotificationScheduler:
    def __init__(
        self,
        config: SchedulerConfig = None,
        surface: Optional[NotificationSurface] = None,
        clock: Callable[[], datetime] = None,
    ):
        if config is None:
            config = SchedulerConfig()
        self.config: SchedulerConfig = config
        self.surface: Optional[NotificationSurface] = surface
        self._clock = clock if clock is not None else lambda: datetime.now(timezone.utc)
        self._permission_granted: Optional[bool] = None

        self.passes: dict[int, PassWindow] = {}
        self._states: dict[int, ReminderState] = {}
        self._timers: dict[int, asyncio.Task] = {}
        self._dismiss_timers: dict[int, asyncio.Task] = {}

        # In-app banners: currently displayed reminders, and the event stream consumers read from
        self.active_reminders: dict[int, ReminderEvent] = {}
        self.events: asyncio.Queue = asyncio.Queue(maxsize=config.EVENT_QUEUE_SIZE)

    def state(self, pass_id: int) -> ReminderState:
        return self._states.get(pass_id, ReminderState.UNARMED)

    @property
    def armed_ids(self) -> list[int]:
        return sorted(pass_id for pass_id, state in self._states.items() if state is ReminderState.ARMED)

    async def arm(self, pass_id: int) -> bool:
        """Schedule a reminder LEAD_TIME before the pass starts. Re-arming replaces the pending timer.

        Returns: False (and leaves state untouched) if the pass is unknown, already started or already fired
        """
        try:
            pass_window = self._validate_arm(pass_id)
        except SchedulingConflict as e:
            logger.warning(f"Scheduling conflict: {e}")
            return False
        self._schedule(pass_window)
        return True

    async def disarm(self, pass_id: int) -> bool:
        """Cancel a pending reminder. No-op unless the pass is armed."""
        task = self._timers.pop(pass_id, None)
        if task is None:
            return False
        task.cancel()
        self._states.pop(pass_id, None)
        logger.info(f"Disarmed reminder for pass {pass_id}")
        return True

    async def dismiss(self, pass_id: int) -> bool:
        """Clear a fired reminder before its auto-dismiss timer does."""
        if self.state(pass_id) is not ReminderState.FIRED:
            return False
        task = self._dismiss_timers.pop(pass_id, None)
        if task is not None:
            task.cancel()
        self._clear_reminder(pass_id)
        return True

    async def reconcile(self, new_passes: list[PassWindow]) -> None:
        """Adopt a recomputed pass list.

        Every pending reminder timer is cancelled. Armed ids missing from `new_passes` are dropped; the rest are
        re-armed against the new list with the same rule as `arm`.
        """
        previously_armed = self.armed_ids
        for task in self._timers.values():
            task.cancel()
        self._timers.clear()
        for pass_id in previously_armed:
            self._states.pop(pass_id, None)

        self.passes = {pass_window.id: pass_window for pass_window in new_passes}

        rearmed = 0
        for pass_id in previously_armed:
            if pass_id not in self.passes:
                logger.info(f"Pass {pass_id} no longer predicted, dropping its reminder")
                continue
            try:
                self._schedule(self._validate_arm(pass_id))
                rearmed += 1
            except SchedulingConflict as e:
                logger.info(f"Not re-arming: {e}")
        logger.info(f"Reconciled {len(self.passes)} passes, re-armed {rearmed} of {len(previously_armed)} reminders")

    async def request_permission(self) -> bool:
        """Best-effort request for platform notifications. Denial or failure leaves only the in-app banner."""
        if self.surface is None:
            return False
        if self._permission_granted is None:
            try:
                self._permission_granted = bool(await self.surface.request_permission())
            except Exception as e:
                logger.warning(f"Notification permission request failed: {e}")
                self._permission_granted = False
            logger.info(f"Platform notifications {'granted' if self._permission_granted else 'unavailable'}")
        return self._permission_granted

    async def stop(self) -> None:
        """Cancel every reminder and auto-dismiss timer."""
        for task in list(self._timers.values()) + list(self._dismiss_timers.values()):
            task.cancel()
        self._timers.clear()
        self._dismiss_timers.clear()
        logger.info("Notification scheduler stopped.")

    async def status(self) -> dict:
        return {
            "pass_count": len(self.passes),
            "armed": self.armed_ids,
            "active_reminders": sorted(self.active_reminders),
        }

    def _validate_arm(self, pass_id: int) -> PassWindow:
        pass_window = self.passes.get(pass_id)
        if pass_window is None:
            raise SchedulingConflict(pass_id, "not in the current pass list")
        if pass_window.start_time <= self._clock():
            raise SchedulingConflict(pass_id, "pass has already started")
        if self.state(pass_id) is ReminderState.FIRED:
            raise SchedulingConflict(pass_id, "reminder already fired")
        return pass_window

    def _schedule(self, pass_window: PassWindow) -> None:
        pass_id = pass_window.id
        existing = self._timers.pop(pass_id, None)
        if existing is not None:
            existing.cancel()

        fire_at = pass_window.start_time - self.config.LEAD_TIME
        delay = (fire_at - self._clock()).total_seconds()
        self._timers[pass_id] = asyncio.create_task(self._fire_after(pass_window, delay))
        self._states[pass_id] = ReminderState.ARMED
        logger.info(f"Armed reminder for pass {pass_id} at {utc_to_local(fire_at).isoformat()} (in {max(delay, 0):.0f}s)")

    async def _fire_after(self, pass_window: PassWindow, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)

        pass_id = pass_window.id
        self._timers.pop(pass_id, None)
        self._states[pass_id] = ReminderState.FIRED
        event = self._make_event(ReminderEventType.FIRE, pass_window)
        self.active_reminders[pass_id] = event
        self._publish(event)
        self._dismiss_timers[pass_id] = asyncio.create_task(self._auto_dismiss(pass_id))
        logger.info(f"Reminder fired for pass {pass_id}")

        if await self.request_permission():
            try:
                await self.surface.show(event.title, event.body)
            except Exception as e:
                logger.warning(f"Platform notification failed for pass {pass_id}: {e}")

    async def _auto_dismiss(self, pass_id: int) -> None:
        await asyncio.sleep(self.config.AUTO_DISMISS.total_seconds())
        self._dismiss_timers.pop(pass_id, None)
        logger.info(f"Auto-dismissing reminder for pass {pass_id}")
        self._clear_reminder(pass_id)

    def _clear_reminder(self, pass_id: int) -> None:
        self._states.pop(pass_id, None)
        event = self.active_reminders.pop(pass_id, None)
        if event is not None:
            self._publish(self._make_event(ReminderEventType.DISMISS, event.pass_window))

    def _publish(self, event: ReminderEvent) -> None:
        """Queue an event for consumers, dropping the oldest waiting one when the queue is full."""
        if self.events.full():
            dropped = self.events.get_nowait()
            logger.warning(f"Event queue full, dropping {dropped.kind.value} event for pass {dropped.pass_id}")
        self.events.put_nowait(event)

    def _make_event(self, kind: ReminderEventType, pass_window: PassWindow) -> ReminderEvent:
        body = self.config.BODY.format(
            lead_minutes=int(self.config.LEAD_TIME.total_seconds() // 60),
            max_elevation=pass_window.max_elevation_deg,
        )
        return ReminderEvent(
            kind=kind,
            pass_id=pass_window.id,
            pass_window=pass_window,
            title=self.config.TITLE,
            body=body,
            timestamp=self._clock(),
        )
