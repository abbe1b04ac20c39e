"""Tests for PageAgent — the in-page receiver."""

import pytest

from punchclock.domain.detection import ATTENDANCE_ATTRIBUTE_SELECTOR, text_xpath
from punchclock.domain.executor import ActionExecutor
from punchclock.domain.messaging import PERFORM_ATTENDANCE
from punchclock.domain.models import Intent
from punchclock.domain.page_agent import DETECTED_ATTRIBUTE, SCAN_SELECTOR, PageAgent

from tests.fakes import FakeElement, FakePage, no_sleep


def make_agent(page):
    return PageAgent(page, executor=ActionExecutor(sleep=no_sleep))


def envelope(intent="checkin", cid="c0ffee00"):
    return {"action": PERFORM_ATTENDANCE, "type": intent, "correlationId": cid}


class TestHandle:
    @pytest.mark.asyncio
    async def test_selector_success(self):
        button = FakeElement("Check In")
        page = FakePage(selectors={'[data-action="checkin"]': [button]})
        resp = await make_agent(page).handle(envelope())
        assert resp == {"success": True, "method": "selector", "correlationId": "c0ffee00"}
        assert "click" in button.calls
        assert page.loaded == 1

    @pytest.mark.asyncio
    async def test_checkout_not_found(self):
        resp = await make_agent(FakePage()).handle(envelope("checkout"))
        assert resp["success"] is False
        assert resp["error"] == "Could not find checkout button on this page"
        assert resp["kind"] == "NotFound"

    @pytest.mark.asyncio
    async def test_unrelated_message_ignored(self):
        assert await make_agent(FakePage()).handle({"action": "ping"}) is None

    @pytest.mark.asyncio
    async def test_unknown_intent_reported(self):
        resp = await make_agent(FakePage()).handle(envelope("lunch"))
        assert resp["success"] is False
        assert "Unknown intent" in resp["error"]

    @pytest.mark.asyncio
    async def test_hook_called(self):
        page = FakePage(functions={"checkIn"})
        resp = await make_agent(page).handle(envelope())
        assert resp["method"] == "api"
        assert page.called == ["checkIn"]

    @pytest.mark.asyncio
    async def test_failing_hook_falls_through_to_next_hook(self):
        page = FakePage(functions={"checkIn", "punchIn"}, failing_functions={"checkIn"})
        resp = await make_agent(page).handle(envelope())
        assert resp == {"success": True, "method": "api", "correlationId": "c0ffee00"}
        assert page.called == ["punchIn"]

    @pytest.mark.asyncio
    async def test_failing_hooks_fall_through_to_attendance_element(self):
        tagged = FakeElement("")
        page = FakePage(
            selectors={ATTENDANCE_ATTRIBUTE_SELECTOR: [tagged]},
            functions={"checkIn", "markAttendance"},
            failing_functions={"checkIn", "markAttendance"},
        )
        resp = await make_agent(page).handle(envelope())
        assert resp["success"] is True
        assert resp["method"] == "api"
        assert page.called == []
        assert "click" in tagged.calls

    @pytest.mark.asyncio
    async def test_every_hook_failing_is_not_found(self):
        page = FakePage(functions={"checkIn"}, failing_functions={"checkIn"})
        resp = await make_agent(page).handle(envelope())
        assert resp["success"] is False
        assert resp["kind"] == "NotFound"
        assert resp["error"] == "Could not find checkin button on this page"

    @pytest.mark.asyncio
    async def test_click_failure_reported(self):
        button = FakeElement("Check Out", fail_on="click")
        page = FakePage(xpaths={text_xpath("Check Out"): button})
        resp = await make_agent(page).handle(envelope("checkout"))
        assert resp["success"] is False
        assert resp["kind"] == "ActivationFailure"


class TestPerform:
    @pytest.mark.asyncio
    async def test_returns_response_object(self):
        page = FakePage(xpaths={text_xpath("Start Work"): FakeElement("Start Work")})
        resp = await make_agent(page).perform(Intent.CHECK_IN)
        assert resp.success is True
        assert resp.method == "text"


class TestScan:
    @pytest.mark.asyncio
    async def test_tags_candidates_once(self):
        punch = FakeElement("Punch In")
        other = FakeElement("Help")
        page = FakePage(selectors={SCAN_SELECTOR: [punch, other]})
        agent = make_agent(page)
        assert await agent.scan() == ["punch in"]
        assert punch.attrs[DETECTED_ATTRIBUTE] == "detected"
        assert DETECTED_ATTRIBUTE not in other.attrs
        assert await agent.scan() == []
