"""Manual trigger — "check in now" / "check out now", independent of the scheduler."""

import sys
from typing import Any, Dict, Optional

from punchclock.domain.log_store import OutcomeLog
from punchclock.domain.messaging import request_attendance
from punchclock.domain.models import Intent, OutcomeKind, OutcomeLogEntry, PageContext
from punchclock.ports.outbound import ContextPort, NotificationPort


def _log(msg: str):
    print(msg, file=sys.stderr)


NOTIFICATION_TITLE = "🕐 Attendance Helper"


class ManualTrigger:
    """Sends a request straight into the active page and records the outcome."""

    def __init__(
        self,
        contexts: ContextPort,
        notifier: NotificationPort,
        log: OutcomeLog,
        *,
        site_marker: str,
        site_name: str = "Zoho People",
    ):
        self._contexts = contexts
        self._notifier = notifier
        self._log = log
        self._site_marker = site_marker
        self._site_name = site_name

    @property
    def log(self) -> OutcomeLog:
        return self._log

    async def perform(self, intent: Intent) -> Dict[str, Any]:
        """Return ``{"success": True, "method": ...}`` or ``{"success": False, "error": ...}``."""
        self._record(OutcomeKind.INFO, f"Attempting {intent.value}...", intent)
        try:
            context = await self._active_site_context()
            if context is None:
                raise RuntimeError(f"Please navigate to {self._site_name} first")
            response = await request_attendance(self._contexts, context, intent)
        except Exception as e:
            self._record(OutcomeKind.FAILURE, f"{intent.value} failed: {e}", intent)
            await self._notify(f"{intent.value} failed: {e}")
            return {"success": False, "error": str(e)}

        self._record(OutcomeKind.SUCCESS, f"{intent.value} successful!", intent)
        await self._notify(f"{intent.value} completed successfully")
        return {"success": True, "method": response.method}

    async def status(self) -> Dict[str, Any]:
        try:
            context = await self._active_site_context()
        except Exception as e:
            _log(f"[ManualTrigger] status check failed: {e}")
            return {"connected": False, "message": "Browser not reachable"}
        if context is None:
            return {"connected": False, "message": f"Navigate to {self._site_name}"}
        return {"connected": True, "message": f"Connected to {self._site_name}", "url": context.url}

    async def _active_site_context(self) -> Optional[PageContext]:
        active = await self._contexts.query(active=True)
        if not active:
            return None
        context = active[0]
        if self._site_marker not in (context.url or ""):
            return None
        return context

    async def _notify(self, body: str) -> None:
        try:
            await self._notifier.show(NOTIFICATION_TITLE, body)
        except Exception as e:
            _log(f"[ManualTrigger] notification failed: {e}")

    def _record(self, kind: OutcomeKind, message: str, intent: Intent) -> None:
        _log(f"[ManualTrigger] {message}")
        self._log.append(OutcomeLogEntry.now(kind, message, intent))
