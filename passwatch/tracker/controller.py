import asyncio
import json
import logging
import signal
from logging.handlers import RotatingFileHandler
from pathlib import Path

from passwatch.base.config import Config
from passwatch.base.errors import InvalidElements, PasswatchError
from passwatch.base.models import ReminderEventType
from passwatch.common.utils import CustomJSONEncoder
from passwatch.tracker.api import PassTracker
from passwatch.tracker.config import TrackerConfig

logger = logging.getLogger(__name__)


def setup_file_logging(config: Config) -> Path:
    """Attach a rotating file handler for the package logger under `config.root_log_dir`."""
    log_path = Path(config.root_log_dir).expanduser() / f"{config.name.lower()}.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(filename=log_path, maxBytes=config.max_log_size, backupCount=config.backup_count)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logging.getLogger("passwatch").addHandler(handler)
    return log_path


async def consume_reminders(tracker: PassTracker, print_events: bool = True) -> None:
    """Stand-in presentation layer: print reminder events as they arrive."""
    while not tracker.shutdown_event.is_set():
        event = await tracker.scheduler.events.get()
        if event.kind is ReminderEventType.FIRE:
            logger.info(f"{event.title}: {event.body}")
        if print_events:
            print(json.dumps(event, cls=CustomJSONEncoder))


class PassTrackerController:
    def __init__(self, config: TrackerConfig = None, shutdown_event: asyncio.Event = None, arm_all: bool = False):
        if config is None:
            config = TrackerConfig()
        self.config = config
        self.tracker = PassTracker(config, shutdown_event=shutdown_event)
        self.arm_all = arm_all

    async def start(self):
        tle_path = Path(self.config.TLE_FILE).expanduser()
        try:
            tle_text = tle_path.read_text()
        except OSError as e:
            raise InvalidElements(f"Could not read TLE file {tle_path}: {e}") from e
        await self.tracker.start()
        await self.tracker.load_tle(tle_text)
        if self.arm_all:
            for pass_window in self.tracker.passes:
                await self.tracker.arm(pass_window.id)

    async def stop(self):
        await self.tracker.stop()

    async def run(self, print_snapshots: bool = False):
        if print_snapshots:
            self.tracker.monitor.listeners.append(lambda s: print(json.dumps(s, cls=CustomJSONEncoder)))
        consumer = asyncio.create_task(consume_reminders(self.tracker))
        try:
            await self.tracker.run()
        finally:
            consumer.cancel()


shutdown_event = asyncio.Event()


def signal_handler():
    shutdown_event.set()


async def main(config: TrackerConfig = None, arm_all: bool = False, print_snapshots: bool = False):
    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()
    for signame in ("SIGINT", "SIGTERM"):
        loop.add_signal_handler(getattr(signal, signame), signal_handler)

    if config is None:
        config = TrackerConfig()
    log_path = setup_file_logging(config)
    logger.info(f"Logging to {log_path}")

    # Application setup
    controller = PassTrackerController(config, shutdown_event=shutdown_event, arm_all=arm_all)

    try:
        await controller.start()
        await controller.run(print_snapshots=print_snapshots)

    except PasswatchError:
        raise

    except Exception as e:
        logger.error(f"An unexpected error occurred: {e}")

    finally:
        await controller.stop()


if __name__ == "__main__":
    asyncio.run(main())
