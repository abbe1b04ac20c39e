"""Detection strategy chain — locate the attendance control for an intent.

Five self-contained strategies run strictly in order; the first one that
locates a clickable control wins and nothing after it runs. When all of
them fail the chain raises ``NotFound``.

Strategies only *locate*. Activating what was found is the executor's job
(see ``punchclock.domain.executor``).
"""

import sys
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional, Protocol, Sequence, Tuple

from punchclock.domain.errors import NotFound
from punchclock.domain.models import DetectionResult, Intent
from punchclock.ports.outbound import ElementPort, PagePort


def _log(msg: str):
    print(msg, file=sys.stderr)


# Known attendance control selectors (Zoho People first, then generic).
ATTENDANCE_SELECTORS: Tuple[str, ...] = (
    '[data-action="checkin"]',
    '[data-action="checkout"]',
    'button[title*="Check In"]',
    'button[title*="Check Out"]',
    'button[title*="Punch In"]',
    'button[title*="Punch Out"]',
    ".attendance-btn",
    ".checkin-btn",
    ".checkout-btn",
    ".punch-btn",
    'input[value*="Check In"]',
    'input[value*="Check Out"]',
    'input[value*="Punch In"]',
    'input[value*="Punch Out"]',
    'button:has-text("Check In")',
    'button:has-text("Check Out")',
    'button:has-text("Punch In")',
    'button:has-text("Punch Out")',
    'a:has-text("Check In")',
    'a:has-text("Check Out")',
    ".zpd-attendance button",
    ".attendance-widget button",
    ".attendance-panel button",
    "#attendance button",
    ".quick-actions button",
)

SELECTOR_KEYWORDS: Dict[Intent, Tuple[str, ...]] = {
    Intent.CHECK_IN: ("check in", "checkin", "punch in", "punchin", "start work", "clock in"),
    Intent.CHECK_OUT: ("check out", "checkout", "punch out", "punchout", "end work", "clock out"),
}

CANONICAL_LABELS: Dict[Intent, Tuple[str, ...]] = {
    Intent.CHECK_IN: ("Check In", "Punch In", "Clock In", "Start Work"),
    Intent.CHECK_OUT: ("Check Out", "Punch Out", "Clock Out", "End Work"),
}

ARIA_LABELS: Dict[Intent, Tuple[str, ...]] = {
    Intent.CHECK_IN: ("check in", "punch in", "clock in"),
    Intent.CHECK_OUT: ("check out", "punch out", "clock out"),
}

FORM_CONTEXT_KEYWORDS: Tuple[str, ...] = ("attendance", "check", "punch", "clock")

FORM_DIRECTION_WORDS: Dict[Intent, Tuple[str, ...]] = {
    Intent.CHECK_IN: ("in", "start"),
    Intent.CHECK_OUT: ("out", "end"),
}

FORM_BUTTON_SELECTOR = 'button, input[type="submit"], input[type="button"]'

HOOK_FUNCTIONS: Tuple[str, ...] = (
    "checkIn",
    "checkOut",
    "punchIn",
    "punchOut",
    "markAttendance",
    "recordAttendance",
    "submitAttendance",
)

ATTENDANCE_ATTRIBUTE_SELECTOR = '[class*="attendance"], [id*="attendance"]'


@dataclass
class Located:
    """A located control: either an element or a page-level hook function."""

    result: DetectionResult
    element: Optional[ElementPort] = None
    hook: Optional[str] = None


async def is_clickable(element: Optional[ElementPort]) -> bool:
    """Laid out, visible, opaque and enabled."""
    if element is None:
        return False
    if await element.style("display") == "none":
        return False
    if await element.style("visibility") == "hidden":
        return False
    if _is_zero_opacity(await element.style("opacity")):
        return False
    return not await element.is_disabled()


def _is_zero_opacity(raw: str) -> bool:
    try:
        return float(raw) == 0
    except (TypeError, ValueError):
        return False


async def _first_text(element: ElementPort, *, with_title: bool = True) -> str:
    """textContent, else value, else title — first non-empty wins."""
    text = await element.text()
    if text:
        return text
    value = await element.value()
    if value:
        return value
    if with_title:
        return await element.attribute("title") or ""
    return ""


def _xpath_literal(text: str) -> str:
    if '"' not in text:
        return f'"{text}"'
    if "'" not in text:
        return f"'{text}'"
    parts = text.split('"')
    return "concat(" + ", '\"', ".join(f'"{p}"' for p in parts) + ")"


def text_xpath(label: str) -> str:
    """Buttons and links containing label, or inputs whose value is label."""
    lit = _xpath_literal(label)
    return (
        f"//button[contains(text(), {lit})]"
        f" | //input[@value={lit}]"
        f" | //a[contains(text(), {lit})]"
    )


def aria_selector(label: str) -> str:
    return f'[aria-label*="{label}" i], [aria-labelledby*="{label}" i]'


class Strategy(Protocol):
    """One heuristic for locating a control. Returns None when it finds nothing."""

    name: str

    async def locate(self, page: PagePort, intent: Intent) -> Optional[Located]: ...


class SelectorStrategy:
    """Fixed selector list, filtered by intent keyword and clickability."""

    name = "selector"

    def __init__(self, selectors: Sequence[str] = ATTENDANCE_SELECTORS):
        self._selectors = tuple(selectors)

    async def locate(self, page: PagePort, intent: Intent) -> Optional[Located]:
        keywords = SELECTOR_KEYWORDS[intent]
        for selector in self._selectors:
            for element in await page.query_all(selector):
                text = (await _first_text(element)).lower()
                if any(k in text for k in keywords) and await is_clickable(element):
                    return Located(DetectionResult(True, self.name, {"selector": selector}), element=element)
        return None


class TextStrategy:
    """Structural search over buttons, inputs and links for canonical labels."""

    name = "text"

    async def locate(self, page: PagePort, intent: Intent) -> Optional[Located]:
        for label in CANONICAL_LABELS[intent]:
            element = await page.query_xpath(text_xpath(label))
            if element is not None and await is_clickable(element):
                return Located(DetectionResult(True, self.name, {"text": label}), element=element)
        return None


class AriaStrategy:
    """Accessible-name match on aria-label / aria-labelledby."""

    name = "aria"

    async def locate(self, page: PagePort, intent: Intent) -> Optional[Located]:
        for label in ARIA_LABELS[intent]:
            element = await page.query_first(aria_selector(label))
            if element is not None and await is_clickable(element):
                return Located(DetectionResult(True, self.name, {"label": label}), element=element)
        return None


class FormStrategy:
    """Attendance-looking forms; first button pointing the right direction."""

    name = "form"

    async def locate(self, page: PagePort, intent: Intent) -> Optional[Located]:
        direction = FORM_DIRECTION_WORDS[intent]
        for form in await page.query_all("form"):
            form_text = (await form.text()).lower()
            if not any(k in form_text for k in FORM_CONTEXT_KEYWORDS):
                continue
            for button in await form.query_all(FORM_BUTTON_SELECTOR):
                button_text = (await _first_text(button, with_title=False)).lower()
                if any(w in button_text for w in direction) and await is_clickable(button):
                    return Located(DetectionResult(True, self.name, {"button": button_text}), element=button)
        return None


class HookStrategy:
    """Well-known global functions, then any element tagged "attendance"."""

    name = "api"

    def __init__(self, functions: Sequence[str] = HOOK_FUNCTIONS):
        self._functions = tuple(functions)

    async def locate(self, page: PagePort, intent: Intent) -> Optional[Located]:
        candidates = self.candidates(page, intent)
        try:
            async for located in candidates:
                return located
        finally:
            await candidates.aclose()
        return None

    async def candidates(self, page: PagePort, intent: Intent) -> AsyncIterator[Located]:
        """Every defined hook in order, then the first clickable tagged element.

        A hook that throws when called is not final; callers move on to the
        next candidate.
        """
        for func_name in self._functions:
            if await page.has_function(func_name):
                yield Located(DetectionResult(True, self.name, {"function": func_name}), hook=func_name)

        for element in await page.query_all(ATTENDANCE_ATTRIBUTE_SELECTOR):
            if await is_clickable(element):
                yield Located(
                    DetectionResult(True, self.name, {"element": "attendance element"}),
                    element=element,
                )
                return


DEFAULT_STRATEGIES: Tuple[Strategy, ...] = (
    SelectorStrategy(),
    TextStrategy(),
    AriaStrategy(),
    FormStrategy(),
    HookStrategy(),
)


class StrategyChain:
    """Ordered fallback over strategies; first success wins."""

    def __init__(self, strategies: Optional[Sequence[Strategy]] = None):
        self._strategies: List[Strategy] = list(strategies if strategies is not None else DEFAULT_STRATEGIES)

    @property
    def names(self) -> List[str]:
        return [s.name for s in self._strategies]

    def strategy(self, name: str) -> Optional[Strategy]:
        for s in self._strategies:
            if s.name == name:
                return s
        return None

    async def locate(self, page: PagePort, intent: Intent) -> Located:
        for index, strategy in enumerate(self._strategies, start=1):
            _log(f"[detect] strategy {index} ({strategy.name}) for {intent.value}")
            try:
                located = await strategy.locate(page, intent)
            except Exception as e:
                _log(f"[detect] strategy {strategy.name} failed: {e}")
                continue
            if located is not None:
                _log(f"[detect] {intent.value} located via {located.result.method}")
                return located
        raise NotFound(intent)
