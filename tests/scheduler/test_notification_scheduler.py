import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from passwatch.base.errors import SchedulingConflict
from passwatch.base.models import PassWindow, ReminderEventType, ReminderState
from passwatch.notifications.api import NotificationSurface
from passwatch.scheduler.api import NotificationScheduler
from passwatch.scheduler.config import SchedulerConfig

NOW = datetime(2024, 3, 12, 12, 0, tzinfo=timezone.utc)
LEAD = SchedulerConfig.LEAD_TIME


class FastDismissConfig(SchedulerConfig):
    AUTO_DISMISS = timedelta(milliseconds=100)


class RecordingSurface(NotificationSurface):
    def __init__(self, granted=True, fail_permission=False, fail_show=False):
        self.granted = granted
        self.fail_permission = fail_permission
        self.fail_show = fail_show
        self.permission_requests = 0
        self.shown = []

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        if self.fail_permission:
            raise RuntimeError("platform unavailable")
        return self.granted

    async def show(self, title: str, body: str) -> None:
        if self.fail_show:
            raise RuntimeError("display failed")
        self.shown.append((title, body))


def make_pass(start: datetime, max_elevation: int = 45) -> PassWindow:
    return PassWindow(
        start_time=start,
        end_time=start + timedelta(minutes=10),
        max_elevation_deg=max_elevation,
        duration_minutes=10,
        compass_label="North",
    )


def soon_pass(seconds: float = 0.05, max_elevation: int = 45) -> PassWindow:
    """Pass whose reminder is due `seconds` after NOW."""
    return make_pass(NOW + LEAD + timedelta(seconds=seconds), max_elevation)


def later_pass(hours: int = 2) -> PassWindow:
    return make_pass(NOW + timedelta(hours=hours))


def make_scheduler(passes=(), config=None, surface=None) -> NotificationScheduler:
    scheduler = NotificationScheduler(config=config, surface=surface, clock=lambda: NOW)
    scheduler.passes = {p.id: p for p in passes}
    return scheduler


def drain(queue: asyncio.Queue) -> list:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


@pytest.mark.asyncio
async def test_arm_unknown_pass_is_rejected():
    scheduler = make_scheduler()
    assert await scheduler.arm(12345) is False
    assert scheduler.state(12345) is ReminderState.UNARMED


@pytest.mark.asyncio
async def test_arm_then_fire():
    pass_window = soon_pass(max_elevation=67)
    scheduler = make_scheduler([pass_window])

    assert await scheduler.arm(pass_window.id) is True
    assert scheduler.state(pass_window.id) is ReminderState.ARMED
    assert scheduler.armed_ids == [pass_window.id]

    await asyncio.sleep(0.15)
    assert scheduler.state(pass_window.id) is ReminderState.FIRED
    assert pass_window.id in scheduler.active_reminders

    events = drain(scheduler.events)
    assert len(events) == 1
    event = events[0]
    assert event.kind is ReminderEventType.FIRE
    assert event.pass_id == pass_window.id
    assert event.title == "Satellite Pass Alert"
    assert event.body == "A satellite pass will begin in 5 minutes! Maximum elevation: 67°"
    await scheduler.stop()


@pytest.mark.asyncio
async def test_disarm_before_fire_prevents_reminder():
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window])

    await scheduler.arm(pass_window.id)
    assert await scheduler.disarm(pass_window.id) is True
    assert scheduler.state(pass_window.id) is ReminderState.UNARMED

    await asyncio.sleep(0.15)
    assert scheduler.state(pass_window.id) is ReminderState.UNARMED
    assert scheduler.events.empty()


@pytest.mark.asyncio
async def test_disarm_unarmed_is_noop():
    pass_window = later_pass()
    scheduler = make_scheduler([pass_window])
    assert await scheduler.disarm(pass_window.id) is False


@pytest.mark.asyncio
async def test_arm_started_pass_is_rejected():
    started = make_pass(NOW - timedelta(minutes=1))
    starting_now = make_pass(NOW)
    scheduler = make_scheduler([started, starting_now])

    assert await scheduler.arm(started.id) is False
    assert await scheduler.arm(starting_now.id) is False
    assert scheduler.armed_ids == []


@pytest.mark.asyncio
async def test_arm_inside_lead_time_fires_immediately():
    pass_window = make_pass(NOW + timedelta(minutes=1))
    scheduler = make_scheduler([pass_window])

    assert await scheduler.arm(pass_window.id) is True
    await asyncio.sleep(0.01)
    assert scheduler.state(pass_window.id) is ReminderState.FIRED
    await scheduler.stop()


@pytest.mark.asyncio
async def test_rearm_replaces_pending_timer():
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window])

    await scheduler.arm(pass_window.id)
    await scheduler.arm(pass_window.id)
    await asyncio.sleep(0.15)

    assert len(drain(scheduler.events)) == 1
    await scheduler.stop()


@pytest.mark.asyncio
async def test_fired_pass_cannot_be_rearmed():
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window])
    await scheduler.arm(pass_window.id)
    await asyncio.sleep(0.15)

    assert await scheduler.arm(pass_window.id) is False
    assert scheduler.state(pass_window.id) is ReminderState.FIRED
    await scheduler.stop()


@pytest.mark.asyncio
async def test_dismiss_fired_reminder():
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window])
    await scheduler.arm(pass_window.id)
    await asyncio.sleep(0.15)
    drain(scheduler.events)

    assert await scheduler.dismiss(pass_window.id) is True
    assert scheduler.state(pass_window.id) is ReminderState.UNARMED
    assert scheduler.active_reminders == {}
    events = drain(scheduler.events)
    assert [e.kind for e in events] == [ReminderEventType.DISMISS]
    assert await scheduler.dismiss(pass_window.id) is False


@pytest.mark.asyncio
async def test_dismiss_requires_fired_state():
    pass_window = later_pass()
    scheduler = make_scheduler([pass_window])
    assert await scheduler.dismiss(pass_window.id) is False
    await scheduler.arm(pass_window.id)
    assert await scheduler.dismiss(pass_window.id) is False
    assert scheduler.state(pass_window.id) is ReminderState.ARMED
    await scheduler.stop()


@pytest.mark.asyncio
async def test_fired_reminder_auto_dismisses():
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window], config=FastDismissConfig())
    await scheduler.arm(pass_window.id)

    await asyncio.sleep(0.3)
    assert scheduler.state(pass_window.id) is ReminderState.UNARMED
    assert scheduler.active_reminders == {}
    assert [e.kind for e in drain(scheduler.events)] == [ReminderEventType.FIRE, ReminderEventType.DISMISS]


@pytest.mark.asyncio
async def test_reconcile_keeps_reminders_for_surviving_passes():
    kept, dropped = soon_pass(), later_pass()
    scheduler = make_scheduler([kept, dropped])
    await scheduler.arm(kept.id)
    await scheduler.arm(dropped.id)

    await scheduler.reconcile([kept, later_pass(hours=3)])

    assert scheduler.armed_ids == [kept.id]
    assert scheduler.state(dropped.id) is ReminderState.UNARMED
    await asyncio.sleep(0.15)
    assert [e.pass_id for e in drain(scheduler.events)] == [kept.id]
    await scheduler.stop()


@pytest.mark.asyncio
async def test_reconcile_drops_reminder_when_start_time_moves():
    original = soon_pass()
    scheduler = make_scheduler([original])
    await scheduler.arm(original.id)

    shifted = make_pass(original.start_time + timedelta(minutes=1))
    await scheduler.reconcile([shifted])

    assert scheduler.armed_ids == []
    await asyncio.sleep(0.15)
    assert scheduler.events.empty()


@pytest.mark.asyncio
async def test_reconcile_with_empty_list_cancels_pending_reminders():
    pending = [soon_pass(0.05), soon_pass(0.08), later_pass()]
    scheduler = make_scheduler(pending)
    for p in pending:
        await scheduler.arm(p.id)

    await scheduler.reconcile([])

    assert scheduler.armed_ids == []
    assert scheduler.passes == {}
    await asyncio.sleep(0.15)
    assert scheduler.events.empty()
    assert all(scheduler.state(p.id) is ReminderState.UNARMED for p in pending)


@pytest.mark.asyncio
async def test_reconcile_leaves_fired_reminders_alone():
    fired = soon_pass()
    scheduler = make_scheduler([fired])
    await scheduler.arm(fired.id)
    await asyncio.sleep(0.15)

    await scheduler.reconcile([])
    assert scheduler.state(fired.id) is ReminderState.FIRED
    assert fired.id in scheduler.active_reminders
    assert scheduler.passes == {}
    await scheduler.stop()


@pytest.mark.asyncio
async def test_reconcile_with_identical_list_preserves_armed_set():
    passes = [later_pass(1), later_pass(2), later_pass(3)]
    scheduler = make_scheduler(passes)
    await scheduler.arm(passes[0].id)
    await scheduler.arm(passes[2].id)

    await scheduler.reconcile(list(passes))
    assert scheduler.armed_ids == sorted([passes[0].id, passes[2].id])
    await scheduler.stop()


@pytest.mark.asyncio
async def test_platform_notification_shown_when_permitted():
    surface = RecordingSurface()
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window], surface=surface)
    assert await scheduler.request_permission() is True

    await scheduler.arm(pass_window.id)
    await asyncio.sleep(0.15)

    assert surface.shown == [("Satellite Pass Alert", scheduler.active_reminders[pass_window.id].body)]
    assert surface.permission_requests == 1
    await scheduler.stop()


@pytest.mark.parametrize(
    "surface",
    [
        None,
        RecordingSurface(granted=False),
        RecordingSurface(fail_permission=True),
        RecordingSurface(fail_show=True),
    ],
)
@pytest.mark.asyncio
async def test_in_app_reminder_survives_platform_problems(surface):
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window], surface=surface)
    await scheduler.arm(pass_window.id)
    await asyncio.sleep(0.15)

    assert scheduler.state(pass_window.id) is ReminderState.FIRED
    assert [e.kind for e in drain(scheduler.events)] == [ReminderEventType.FIRE]
    if surface is not None:
        assert surface.shown == []
    await scheduler.stop()


class TinyQueueConfig(SchedulerConfig):
    EVENT_QUEUE_SIZE = 2


@pytest.mark.asyncio
async def test_full_event_queue_drops_oldest_event(caplog):
    passes = [soon_pass(0.05), soon_pass(0.06), soon_pass(0.07)]
    scheduler = make_scheduler(passes, config=TinyQueueConfig())
    for p in passes:
        await scheduler.arm(p.id)

    with caplog.at_level(logging.WARNING, logger="passwatch"):
        await asyncio.sleep(0.15)

    assert all(scheduler.state(p.id) is ReminderState.FIRED for p in passes)
    assert [e.pass_id for e in drain(scheduler.events)] == [passes[1].id, passes[2].id]
    assert f"dropping fire event for pass {passes[0].id}" in caplog.text
    await scheduler.stop()


@pytest.mark.asyncio
async def test_stop_cancels_pending_reminders():
    pass_window = soon_pass()
    scheduler = make_scheduler([pass_window])
    await scheduler.arm(pass_window.id)
    await scheduler.stop()

    await asyncio.sleep(0.15)
    assert scheduler.events.empty()


@pytest.mark.asyncio
async def test_status():
    passes = [later_pass(1), later_pass(2)]
    scheduler = make_scheduler(passes)
    await scheduler.arm(passes[1].id)

    assert await scheduler.status() == {"pass_count": 2, "armed": [passes[1].id], "active_reminders": []}
    await scheduler.stop()


def test_scheduling_conflict_message():
    error = SchedulingConflict(42, "pass has already started")
    assert str(error) == "Cannot arm pass 42: pass has already started"
    assert error.pass_id == 42
