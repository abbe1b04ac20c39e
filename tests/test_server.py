"""Tests for runtime wiring — browser launch is patched out."""

import tempfile
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from punchclock.adapters.notify.notifier import StderrNotifier
from punchclock.adapters.web import attendance_routes, server
from punchclock.config import AppConfig, LogConfig


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def browser():
    playwright = MagicMock()
    playwright.stop = AsyncMock()
    context = MagicMock()
    context.pages = []
    context.close = AsyncMock()
    return playwright, context


class TestBuildRuntime:
    @pytest.mark.asyncio
    async def test_wires_components(self, tmp_dir, browser):
        config = AppConfig(storage_dir=tmp_dir, logs=LogConfig(interactive_capacity=4, background_capacity=7))
        with patch("punchclock.adapters.web.server.launch_browser", AsyncMock(return_value=browser)):
            runtime = await server.build_runtime(config)
        assert isinstance(runtime.notifier, StderrNotifier)
        assert runtime.manual.log.capacity == 4
        assert runtime.background_log.capacity == 7
        assert [s.time_of_day for s in runtime.manager.list_schedules()] == ["09:00", "17:30"]
        await runtime.timers.close()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self, tmp_dir, browser, capsys):
        playwright, context = browser
        config = AppConfig(storage_dir=tmp_dir)
        with patch("punchclock.adapters.web.server.launch_browser", AsyncMock(return_value=browser)), \
                patch("punchclock.adapters.web.server.AppConfig.from_env", return_value=config), \
                patch.object(attendance_routes, "manual_trigger", None), \
                patch.object(attendance_routes, "schedule_manager", None), \
                patch.object(attendance_routes, "background_log", None):
            await server.startup_event()
            assert attendance_routes.schedule_manager is server.runtime.manager
            await server.runtime.start_task
            assert "Installed!" in capsys.readouterr().err
            await server.shutdown_event()
        assert server.runtime is None
        context.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_without_startup(self):
        await server.shutdown_event()
