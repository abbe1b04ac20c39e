"""Page agent — the receiver that runs detection + activation inside a page."""

import sys
from typing import Any, Dict, List, Optional

from punchclock.domain.detection import HookStrategy, Located, StrategyChain
from punchclock.domain.errors import ActivationFailure, NotFound
from punchclock.domain.executor import ActionExecutor
from punchclock.domain.messaging import PERFORM_ATTENDANCE, AttendanceRequest, AttendanceResponse
from punchclock.domain.models import Intent
from punchclock.ports.outbound import PagePort


def _log(msg: str):
    print(msg, file=sys.stderr)


SCAN_SELECTOR = 'button, input[type="button"], input[type="submit"], a'
SCAN_KEYWORDS = ("check", "punch", "attendance")
DETECTED_ATTRIBUTE = "data-attendance-bot"


class PageAgent:
    """Answers performAttendance requests for one page."""

    def __init__(
        self,
        page: PagePort,
        chain: Optional[StrategyChain] = None,
        executor: Optional[ActionExecutor] = None,
    ):
        self._page = page
        self._chain = chain or StrategyChain()
        self._executor = executor or ActionExecutor()

    async def handle(self, envelope: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return a response dict, or None for messages this agent ignores."""
        if envelope.get("action") != PERFORM_ATTENDANCE:
            return None
        correlation_id = envelope.get("correlationId")
        try:
            request = AttendanceRequest.from_dict(envelope)
        except ValueError as e:
            return AttendanceResponse.failed(ActivationFailure(str(e)), correlation_id).to_dict()
        return (await self.perform(request.intent, correlation_id)).to_dict()

    async def perform(self, intent: Intent, correlation_id: Optional[str] = None) -> AttendanceResponse:
        _log(f"[agent] attempting {intent.value}...")
        try:
            await self._page.wait_for_load()
            located = await self._chain.locate(self._page, intent)
            if located.hook is not None:
                located = await self._call_hooks(intent, located)
            else:
                await self._executor.activate(self._page, located.element)
        except (NotFound, ActivationFailure) as e:
            _log(f"[agent] {intent.value} failed: {e}")
            return AttendanceResponse.failed(e, correlation_id)
        except Exception as e:
            _log(f"[agent] {intent.value} failed unexpectedly: {e}")
            return AttendanceResponse.failed(ActivationFailure(str(e)), correlation_id)

        _log(f"[agent] {intent.value} successful via {located.result.method}")
        return AttendanceResponse.ok(located.result.method, correlation_id)

    async def _call_hooks(self, intent: Intent, located: Located) -> Located:
        """Try each page hook in turn, then the tagged attendance element."""
        hooks = self._chain.strategy(HookStrategy.name)
        if not isinstance(hooks, HookStrategy):
            await self._executor.call_hook(self._page, located.hook)
            return located

        async for candidate in hooks.candidates(self._page, intent):
            if candidate.hook is None:
                await self._executor.activate(self._page, candidate.element)
                return candidate
            try:
                await self._executor.call_hook(self._page, candidate.hook)
                return candidate
            except ActivationFailure as e:
                _log(f"[agent] {e}")
        raise NotFound(intent)

    async def scan(self) -> List[str]:
        """Tag likely attendance controls once each; return the newly found texts."""
        found: List[str] = []
        for element in await self._page.query_all(SCAN_SELECTOR):
            text = (await element.text() or await element.value() or await element.attribute("title") or "").lower()
            if not any(k in text for k in SCAN_KEYWORDS):
                continue
            if await element.attribute(DETECTED_ATTRIBUTE):
                continue
            await element.set_attribute(DETECTED_ATTRIBUTE, "detected")
            _log(f"[agent] detected potential attendance button: {text.strip()}")
            found.append(text.strip())
        return found
