"""FastAPI application and runtime wiring."""

import asyncio
import sys
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import FastAPI

from punchclock.adapters.browser.contexts import PlaywrightContexts, launch_browser
from punchclock.adapters.notify.notifier import DiscordWebhookNotifier, build_notifier
from punchclock.adapters.storage.json_store import JsonStorage
from punchclock.adapters.timers.asyncio_timers import AsyncioTimers
from punchclock.adapters.web import attendance_routes
from punchclock.adapters.web.attendance_routes import attendance_router
from punchclock.config import AppConfig
from punchclock.domain.errors import PersistenceFailure
from punchclock.domain.log_store import OutcomeLog
from punchclock.domain.manual_trigger import NOTIFICATION_TITLE, ManualTrigger
from punchclock.domain.models import Intent
from punchclock.domain.schedule import ScheduleManager, make_clock


def _log(msg: str):
    print(msg, file=sys.stderr)


app = FastAPI(title="Punchclock")
app.include_router(attendance_router)


@dataclass
class Runtime:
    playwright: Any
    browser_context: Any
    contexts: PlaywrightContexts
    timers: AsyncioTimers
    notifier: Any
    manager: ScheduleManager
    manual: ManualTrigger
    background_log: OutcomeLog
    start_task: Optional[asyncio.Task] = None


runtime: Optional[Runtime] = None


async def build_runtime(config: AppConfig) -> Runtime:
    try:
        storage = JsonStorage(config.storage_dir)
    except PersistenceFailure as e:
        _log(f"Storage unavailable ({e}), falling back to ./memory")
        storage = JsonStorage("memory")
    background_log = OutcomeLog(config.logs.background_capacity, storage=storage, key="logs")
    interactive_log = OutcomeLog(config.logs.interactive_capacity)
    notifier = build_notifier(config.discord_webhook_url)

    playwright, browser_context = await launch_browser(config.browser.profile_dir, config.browser.headless)
    contexts = PlaywrightContexts(browser_context, receiver_pattern=config.target.url_pattern)

    clock = make_clock(config.schedule.timezone)
    timers = AsyncioTimers(clock=clock)
    manager = ScheduleManager(
        storage,
        timers,
        contexts,
        notifier,
        background_log,
        target_url=config.target.url,
        url_pattern=config.target.url_pattern,
        default_times={
            Intent.CHECK_IN: config.schedule.default_checkin_time,
            Intent.CHECK_OUT: config.schedule.default_checkout_time,
        },
        grace_seconds=config.schedule.load_grace_seconds,
        tz_name=config.schedule.timezone,
        clock=clock,
    )
    manual = ManualTrigger(
        contexts,
        notifier,
        interactive_log,
        site_marker=config.target.site_marker,
        site_name=config.target.site_name,
    )
    return Runtime(
        playwright=playwright,
        browser_context=browser_context,
        contexts=contexts,
        timers=timers,
        notifier=notifier,
        manager=manager,
        manual=manual,
        background_log=background_log,
    )


@app.on_event("startup")
async def startup_event():
    """Launch the browser, wire the routes, start the scheduler."""
    global runtime
    config = AppConfig.from_env()
    print("Punchclock starting")
    print(f"Target: {config.target.url} ({config.target.url_pattern})")

    runtime = await build_runtime(config)
    attendance_routes.bind(runtime.manual, runtime.manager, runtime.background_log)

    if runtime.manager.install():
        await runtime.notifier.show(
            NOTIFICATION_TITLE,
            f"Installed! Open http://localhost:{config.port}/docs to get started.",
        )

    # Catch-up firings wait on page loads; don't hold up startup for them.
    runtime.start_task = asyncio.create_task(runtime.manager.start())
    print("Ready!")


@app.on_event("shutdown")
async def shutdown_event():
    global runtime
    if runtime is None:
        return
    if runtime.start_task and not runtime.start_task.done():
        runtime.start_task.cancel()
    await runtime.timers.close()
    if isinstance(runtime.notifier, DiscordWebhookNotifier):
        await runtime.notifier.close()
    await runtime.browser_context.close()
    await runtime.playwright.stop()
    runtime = None
