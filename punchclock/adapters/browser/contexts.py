"""Playwright context adapter — implements ContextPort.

Every open tab of one persistent browser context is a page context. Tabs whose
URL matches the receiver pattern host a PageAgent (the in-page receiver);
messages to any other tab have no receiver.
"""

import asyncio
import sys
import uuid
from fnmatch import fnmatch
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from punchclock.adapters.browser.playwright_page import PlaywrightPage
from punchclock.domain.errors import DeliveryFailure
from punchclock.domain.models import PageContext
from punchclock.domain.page_agent import PageAgent
from punchclock.ports.outbound import Delivery, DeliveryStatus, PagePort


def _log(msg: str):
    print(msg, file=sys.stderr)


AgentFactory = Callable[[PagePort], PageAgent]


async def launch_browser(profile_dir: str, headless: bool = False) -> Tuple[Playwright, BrowserContext]:
    """Start Chromium with a persistent profile so the site login survives restarts."""
    playwright = await async_playwright().start()
    try:
        context = await playwright.chromium.launch_persistent_context(profile_dir, headless=headless)
    except BaseException:
        await playwright.stop()
        raise
    return playwright, context


class PlaywrightContexts:
    def __init__(
        self,
        browser_context: BrowserContext,
        receiver_pattern: str,
        agent_factory: Optional[AgentFactory] = None,
    ):
        self._browser_context = browser_context
        self._receiver_pattern = receiver_pattern
        self._agent_factory = agent_factory or (lambda page: PageAgent(page))
        self._pages: Dict[str, Page] = {}
        self._active_id: Optional[str] = None
        self._scan_tasks: Set[asyncio.Task] = set()
        for page in browser_context.pages:
            self._track(page)
        browser_context.on("page", self._track)

    # ── ContextPort ──────────────────────────────────────────

    async def query(self, url_pattern: Optional[str] = None, active: Optional[bool] = None) -> List[PageContext]:
        out: List[PageContext] = []
        for page_id, page in list(self._pages.items()):
            if page.is_closed():
                continue
            ctx = PageContext(id=page_id, url=page.url, active=page_id == self._active_id)
            if url_pattern is not None and not fnmatch(ctx.url, url_pattern):
                continue
            if active is not None and ctx.active != active:
                continue
            out.append(ctx)
        return out

    async def create(self, url: str, active: bool = False) -> PageContext:
        previous_active = self._active_id
        page = await self._browser_context.new_page()
        page_id = self._track(page)
        if active:
            await page.bring_to_front()
            self._active_id = page_id
        else:
            self._active_id = previous_active
        await page.goto(url, wait_until="commit")
        return PageContext(id=page_id, url=page.url, active=active)

    async def wait_for_load(self, context: PageContext) -> None:
        page = self._pages.get(context.id)
        if page is None:
            raise DeliveryFailure(DeliveryFailure.CONTEXT_LOST, f"Page {context.id} is gone")
        await page.wait_for_load_state("load")

    async def send_message(self, context: PageContext, envelope: Dict[str, Any]) -> Delivery:
        page = self._pages.get(context.id)
        if page is None or page.is_closed():
            return Delivery(DeliveryStatus.NO_RECEIVER, detail="Could not establish connection. Receiving end does not exist.")
        if not fnmatch(page.url, self._receiver_pattern):
            return Delivery(DeliveryStatus.NO_RECEIVER, detail=f"No attendance agent on {page.url}")

        agent = self._agent_factory(PlaywrightPage(page))
        loop = asyncio.get_running_loop()
        closed = loop.create_future()

        def _on_close(_page):
            if not closed.done():
                closed.set_result(None)

        page.on("close", _on_close)
        handler = loop.create_task(agent.handle(envelope))
        try:
            done, _ = await asyncio.wait({handler, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            page.remove_listener("close", _on_close)
            if not closed.done():
                closed.cancel()

        if handler not in done or page.is_closed():
            handler.cancel()
            return Delivery(DeliveryStatus.CONTEXT_LOST, detail="The page was closed before a response was received.")
        response = handler.result()
        if response is None:
            return Delivery(DeliveryStatus.NO_RECEIVER, detail="The message port closed before a response was received.")
        return Delivery(DeliveryStatus.DELIVERED, response=response)

    # ── extras ───────────────────────────────────────────────

    async def activate(self, context: PageContext) -> None:
        page = self._pages.get(context.id)
        if page is not None:
            await page.bring_to_front()
            self._active_id = context.id

    # ── internals ────────────────────────────────────────────

    def _track(self, page: Page) -> str:
        for page_id, known in self._pages.items():
            if known is page:
                return page_id
        page_id = uuid.uuid4().hex[:8]
        self._pages[page_id] = page
        # Tabs opened from outside (user, popups) take focus.
        self._active_id = page_id
        page.on("close", lambda _p: self._forget(page_id))
        page.on("load", lambda p: self._schedule_scan(p))
        return page_id

    def _forget(self, page_id: str) -> None:
        self._pages.pop(page_id, None)
        if self._active_id == page_id:
            self._active_id = next(reversed(self._pages), None) if self._pages else None

    def _schedule_scan(self, page: Page) -> None:
        if not fnmatch(page.url, self._receiver_pattern):
            return
        task = asyncio.get_running_loop().create_task(self._scan(page))
        self._scan_tasks.add(task)
        task.add_done_callback(self._scan_tasks.discard)

    async def _scan(self, page: Page) -> None:
        try:
            await self._agent_factory(PlaywrightPage(page)).scan()
        except PlaywrightError as e:
            _log(f"[contexts] scan failed on {page.url}: {e}")
