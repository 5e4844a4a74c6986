"""Example: drive the client-side core without Flask.

Starts an AppContext against the configured MySQL store, logs today as an
office day and prints this month's target progress.
"""

import asyncio
import importlib

from config import get_settings_module

from src.office_tracker.office_tracker.attendance.stats import target_progress
from src.office_tracker.office_tracker.common.datetime_utils import local_date_string, now_local
from src.office_tracker.office_tracker.common.geo import Coordinates
from src.office_tracker.office_tracker.common.logging_utils import setup_logger
from src.office_tracker.office_tracker.context import AppContext, generate_user_id
from src.office_tracker.office_tracker.core.enums import AttendanceStatus
from src.office_tracker.office_tracker.notifications.center import LocalNotificationCenter


class FixedLocation:
    def __init__(self, position: Coordinates):
        self._position = position

    async def current_position(self) -> Coordinates:
        return self._position


async def run() -> None:
    settings = importlib.import_module(get_settings_module())
    setup_logger("src.office_tracker.office_tracker", settings.LOG_LEVEL)

    ctx = AppContext.from_settings(
        settings,
        user_id=generate_user_id("example-device"),
        client_id="example-device",
        locator=FixedLocation(Coordinates(-33.8688, 151.2093)),
        center=LocalNotificationCenter(),
    )
    async with ctx:
        today = now_local()
        await ctx.store.mark(local_date_string(today), AttendanceStatus.OFFICE)
        holidays = ctx.holidays.get(ctx.profiles.profile.country, today.year)
        progress = target_progress(
            ctx.store.attendance(), ctx.store.planned(), holidays.keys(), ctx.profiles.settings, today.date()
        )
        print(f"{progress.office_days}/{progress.adjusted_target} office days ({progress.percentage}%)")


if __name__ == "__main__":
    asyncio.run(run())
