"""Playwright page/element adapters — implement PagePort and ElementPort."""

from typing import List, Optional

from playwright.async_api import ElementHandle, Page


class PlaywrightElement:
    """ElementPort over a Playwright ElementHandle."""

    def __init__(self, handle: ElementHandle):
        self._handle = handle

    async def text(self) -> str:
        return await self._handle.text_content() or ""

    async def value(self) -> str:
        return await self._handle.evaluate("e => (typeof e.value === 'string') ? e.value : ''")

    async def attribute(self, name: str) -> Optional[str]:
        return await self._handle.get_attribute(name)

    async def set_attribute(self, name: str, value: str) -> None:
        await self._handle.evaluate("(e, [n, v]) => e.setAttribute(n, v)", [name, value])

    async def style(self, prop: str) -> str:
        return await self._handle.evaluate("(e, p) => getComputedStyle(e).getPropertyValue(p)", prop)

    async def is_disabled(self) -> bool:
        return await self._handle.evaluate("e => !!e.disabled")

    async def query_all(self, selector: str) -> List["PlaywrightElement"]:
        return [PlaywrightElement(h) for h in await self._handle.query_selector_all(selector)]

    async def scroll_into_view(self) -> None:
        await self._handle.evaluate("e => e.scrollIntoView({behavior: 'smooth', block: 'center'})")

    async def inline_style(self) -> str:
        return await self._handle.evaluate("e => e.style.cssText")

    async def set_inline_style(self, css_text: str) -> None:
        await self._handle.evaluate("(e, css) => { e.style.cssText = css; }", css_text)

    async def focus(self) -> None:
        await self._handle.focus()

    async def click(self) -> None:
        # HTMLElement.click(): no actionability waits, same as a script click.
        await self._handle.evaluate("e => e.click()")

    async def dispatch(self, event_type: str) -> None:
        await self._handle.dispatch_event(event_type, {"bubbles": True})

    async def in_form(self) -> bool:
        return await self._handle.evaluate("e => !!e.closest('form')")

    async def submit_form(self) -> None:
        await self._handle.evaluate("e => { const f = e.closest('form'); if (f) f.submit(); }")


class PlaywrightPage:
    """PagePort over a Playwright Page."""

    def __init__(self, page: Page):
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def query_all(self, selector: str) -> List[PlaywrightElement]:
        return [PlaywrightElement(h) for h in await self._page.query_selector_all(selector)]

    async def query_first(self, selector: str) -> Optional[PlaywrightElement]:
        handle = await self._page.query_selector(selector)
        return PlaywrightElement(handle) if handle else None

    async def query_xpath(self, xpath: str) -> Optional[PlaywrightElement]:
        handle = await self._page.query_selector(f"xpath={xpath}")
        return PlaywrightElement(handle) if handle else None

    async def has_function(self, name: str) -> bool:
        return await self._page.evaluate("n => typeof window[n] === 'function'", name)

    async def call_function(self, name: str) -> None:
        await self._page.evaluate("async n => { await window[n](); }", name)

    async def wait_for_load(self) -> None:
        await self._page.wait_for_load_state("load")
