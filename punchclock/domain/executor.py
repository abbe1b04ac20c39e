"""Action executor — robust activation of a located control."""

import asyncio
import sys
from typing import Awaitable, Callable

from punchclock.domain.errors import ActivationFailure
from punchclock.ports.outbound import ElementPort, PagePort


def _log(msg: str):
    print(msg, file=sys.stderr)


MARKER_STYLE = "outline: 3px solid #4ade80; background-color: rgba(74, 222, 128, 0.2);"
POINTER_EVENTS = ("mousedown", "mouseup", "click")

Sleep = Callable[[float], Awaitable[None]]


class ActionExecutor:
    """Scroll, mark, click, replay pointer events, submit the enclosing form.

    Success means only that the sequence ran without error; nothing on the
    site side is verified.
    """

    def __init__(
        self,
        settle_seconds: float = 0.5,
        marker_seconds: float = 1.0,
        navigation_seconds: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ):
        self._settle_seconds = settle_seconds
        self._marker_seconds = marker_seconds
        self._navigation_seconds = navigation_seconds
        self._sleep = sleep

    async def activate(self, page: PagePort, element: ElementPort) -> None:
        try:
            await element.scroll_into_view()
            await self._sleep(self._settle_seconds)

            original_style = await element.inline_style()
            await element.set_inline_style(original_style + MARKER_STYLE)
            try:
                url_before = page.url
                await element.focus()
                await element.click()
                for event_type in POINTER_EVENTS:
                    await element.dispatch(event_type)

                if await element.in_form():
                    # Navigation started by the click commits asynchronously.
                    await self._sleep(self._navigation_seconds)
                    if page.url == url_before:
                        _log("[executor] no navigation after click, submitting enclosing form")
                        await element.submit_form()

                await self._sleep(self._marker_seconds)
            finally:
                await self._restore(element, original_style)
        except ActivationFailure:
            raise
        except Exception as e:
            raise ActivationFailure(f"Activation failed: {e}") from e

    async def call_hook(self, page: PagePort, function_name: str) -> None:
        try:
            await page.call_function(function_name)
        except Exception as e:
            raise ActivationFailure(f"Failed to call {function_name}: {e}") from e

    @staticmethod
    async def _restore(element: ElementPort, css_text: str) -> None:
        try:
            await element.set_inline_style(css_text)
        except Exception as e:
            # Page may have navigated away after the click.
            _log(f"[executor] could not restore style: {e}")
