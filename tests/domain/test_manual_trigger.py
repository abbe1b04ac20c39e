"""Tests for ManualTrigger."""

import pytest

from punchclock.domain.executor import ActionExecutor
from punchclock.domain.log_store import OutcomeLog
from punchclock.domain.manual_trigger import NOTIFICATION_TITLE, ManualTrigger
from punchclock.domain.models import Intent, OutcomeKind
from punchclock.ports.outbound import Delivery, DeliveryStatus

from tests.fakes import FakeContexts, FakeElement, FakeNotifier, FakePage, no_sleep


@pytest.fixture
def contexts():
    return FakeContexts(executor=ActionExecutor(sleep=no_sleep))


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def trigger(contexts, notifier):
    return ManualTrigger(contexts, notifier, OutcomeLog(10), site_marker="people.zoho.com")


class TestPerform:
    @pytest.mark.asyncio
    async def test_success(self, trigger, contexts, notifier):
        contexts.add(FakePage(selectors={'[data-action="checkin"]': [FakeElement("Check In")]}), active=True)
        result = await trigger.perform(Intent.CHECK_IN)
        assert result == {"success": True, "method": "selector"}
        assert notifier.shown == [(NOTIFICATION_TITLE, "checkin completed successfully")]
        kinds = [e.kind for e in trigger.log.entries()]
        assert kinds == [OutcomeKind.SUCCESS, OutcomeKind.INFO]

    @pytest.mark.asyncio
    async def test_not_found(self, trigger, contexts):
        contexts.add(FakePage(), active=True)
        result = await trigger.perform(Intent.CHECK_OUT)
        assert result == {"success": False, "error": "Could not find checkout button on this page"}
        assert trigger.log.entries()[0].kind is OutcomeKind.FAILURE

    @pytest.mark.asyncio
    async def test_wrong_site(self, trigger, contexts):
        contexts.add(FakePage(url="https://mail.example.com"), active=True)
        result = await trigger.perform(Intent.CHECK_IN)
        assert result == {"success": False, "error": "Please navigate to Zoho People first"}
        assert contexts.sent == []

    @pytest.mark.asyncio
    async def test_no_active_page(self, trigger):
        result = await trigger.perform(Intent.CHECK_IN)
        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_background_site_page_is_not_used(self, trigger, contexts):
        contexts.add(FakePage(url="https://mail.example.com"), active=True)
        contexts.add(FakePage(selectors={'[data-action="checkin"]': [FakeElement("Check In")]}))
        result = await trigger.perform(Intent.CHECK_IN)
        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_delivery_failure_reported(self, trigger, contexts, notifier):
        contexts.add(FakePage(), active=True)
        contexts.forced = Delivery(DeliveryStatus.CONTEXT_LOST)
        result = await trigger.perform(Intent.CHECK_IN)
        assert result == {"success": False, "error": "The page was closed before a response was received."}
        assert notifier.shown[0][1].startswith("checkin failed")

    @pytest.mark.asyncio
    async def test_log_is_capped(self, trigger, contexts):
        contexts.add(FakePage(), active=True)
        for _ in range(8):
            await trigger.perform(Intent.CHECK_IN)
        assert len(trigger.log) == 10


class TestStatus:
    @pytest.mark.asyncio
    async def test_connected(self, trigger, contexts):
        contexts.add(FakePage(url="https://people.zoho.com/hr"), active=True)
        assert await trigger.status() == {
            "connected": True,
            "message": "Connected to Zoho People",
            "url": "https://people.zoho.com/hr",
        }

    @pytest.mark.asyncio
    async def test_elsewhere(self, trigger, contexts):
        contexts.add(FakePage(url="https://example.com"), active=True)
        assert await trigger.status() == {"connected": False, "message": "Navigate to Zoho People"}

    @pytest.mark.asyncio
    async def test_browser_gone(self, trigger, contexts, monkeypatch):
        async def closed(**kwargs):
            raise RuntimeError("Browser has been closed")

        monkeypatch.setattr(contexts, "query", closed)
        assert await trigger.status() == {"connected": False, "message": "Browser not reachable"}
