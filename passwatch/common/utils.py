import json
import math
import asyncio
import numpy as np
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import pytz

from passwatch.core.constants import CARDINAL_DIRECTIONS, SIMPLE_DIRECTIONS


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            # Convert NumPy arrays to lists
            return obj.tolist()
        elif isinstance(obj, np.generic):
            return obj.item()
        elif isinstance(obj, datetime):
            # Format datetime objects as strings
            return obj.isoformat()
        elif isinstance(obj, Enum):
            return obj.value
        elif hasattr(obj, "to_dict"):
            return obj.to_dict()
        # Let the base class default method raise the TypeError
        return json.JSONEncoder.default(self, obj)


def utc_to_local(utc_dt: datetime, tz: str = "UTC") -> datetime:
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=pytz.UTC)
    return utc_dt.astimezone(pytz.timezone(tz))


def local_to_utc(local_dt: datetime, tz: str = "UTC") -> datetime:
    if local_dt.tzinfo is None:
        local_dt = pytz.timezone(tz).localize(local_dt)
    return local_dt.astimezone(pytz.UTC)


async def wait_until_first_completed(events: list[asyncio.Event], coroutines: list = None):
    """Wait until the first event or coroutine in the list is completed and return the completed task."""
    if coroutines is None:
        coroutines = []
    event_tasks = [asyncio.create_task(event.wait()) for event in events]
    coroutine_tasks = [asyncio.create_task(coro) for coro in coroutines]
    done, pending = await asyncio.wait(event_tasks + coroutine_tasks, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    return done.pop()


def _normalize_azimuth(azimuth: Optional[float]) -> Optional[float]:
    if azimuth is None or not math.isfinite(azimuth):
        return None
    return (azimuth + 360) % 360


def cardinal_direction(azimuth: Optional[float]) -> str:
    """16-point compass name of an azimuth (0 = North, clockwise), "up" when unknown."""
    normalized = _normalize_azimuth(azimuth)
    if normalized is None:
        return "up"
    index = int(math.floor(normalized / 22.5 + 0.5)) % 16
    return CARDINAL_DIRECTIONS[index]


def simple_direction(azimuth: Optional[float]) -> str:
    """8-point compass name, sectors 45 degrees wide centred on each direction."""
    normalized = _normalize_azimuth(azimuth)
    if normalized is None:
        return "up"
    index = int((normalized + 22.5) // 45) % 8
    return SIMPLE_DIRECTIONS[index]


def format_pass_time(time: datetime, tz: str = "UTC") -> str:
    return utc_to_local(time, tz).strftime("%H:%M")


def time_until(future: datetime, now: Optional[datetime] = None) -> str:
    """Human readable countdown, e.g. "in 2h 5m" or "in 7 minutes".

    Instants that are not in the future read "now" or "started 5 minutes ago".
    """
    if now is None:
        now = datetime.now(timezone.utc)
    diff_s = (future - now).total_seconds()
    hours, minutes = divmod(int(abs(diff_s) // 60), 60)
    if diff_s <= 0:
        if hours > 0:
            return f"started {hours}h {minutes}m ago"
        if minutes > 0:
            return f"started {minutes} minutes ago"
        return "now"
    if hours > 0:
        return f"in {hours}h {minutes}m"
    return f"in {minutes} minutes"
