"""Outbound ports — interfaces for external system adapters."""

from dataclasses import dataclass
from datetime import datetime
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from punchclock.domain.models import PageContext


@runtime_checkable
class StoragePort(Protocol):
    """Per-key persistent storage. Each key is read and written atomically."""

    def get(self, keys: Iterable[str], defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]: ...
    def set(self, values: Dict[str, Any]) -> None: ...


TimerListener = Callable[[str], Awaitable[None]]


@runtime_checkable
class TimerPort(Protocol):
    """Named wall-clock timers."""

    def create(self, name: str, when: datetime, period_minutes: Optional[float] = None) -> None: ...
    def clear(self, name: str) -> bool: ...
    def on_fire(self, listener: TimerListener) -> None: ...


@runtime_checkable
class ElementPort(Protocol):
    """One element inside a page context."""

    async def text(self) -> str: ...
    async def value(self) -> str: ...
    async def attribute(self, name: str) -> Optional[str]: ...
    async def set_attribute(self, name: str, value: str) -> None: ...
    async def style(self, prop: str) -> str: ...
    async def is_disabled(self) -> bool: ...
    async def query_all(self, selector: str) -> List["ElementPort"]: ...
    async def scroll_into_view(self) -> None: ...
    async def inline_style(self) -> str: ...
    async def set_inline_style(self, css_text: str) -> None: ...
    async def focus(self) -> None: ...
    async def click(self) -> None: ...
    async def dispatch(self, event_type: str) -> None: ...
    async def in_form(self) -> bool: ...
    async def submit_form(self) -> None: ...


@runtime_checkable
class PagePort(Protocol):
    """The document of one page context."""

    @property
    def url(self) -> str: ...

    async def query_all(self, selector: str) -> List[ElementPort]: ...
    async def query_first(self, selector: str) -> Optional[ElementPort]: ...
    async def query_xpath(self, xpath: str) -> Optional[ElementPort]: ...
    async def has_function(self, name: str) -> bool: ...
    async def call_function(self, name: str) -> None: ...
    async def wait_for_load(self) -> None: ...


class DeliveryStatus:
    DELIVERED = "delivered"
    NO_RECEIVER = "no_receiver"
    CONTEXT_LOST = "context_lost"


@dataclass
class Delivery:
    """Outcome of sending one envelope into a page context."""

    status: str
    response: Optional[Dict[str, Any]] = None
    detail: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED


@runtime_checkable
class ContextPort(Protocol):
    """Page contexts (tabs) and message delivery into them."""

    async def query(self, url_pattern: Optional[str] = None, active: Optional[bool] = None) -> List[PageContext]: ...
    async def create(self, url: str, active: bool = False) -> PageContext: ...
    async def wait_for_load(self, context: PageContext) -> None: ...
    async def send_message(self, context: PageContext, envelope: Dict[str, Any]) -> Delivery: ...


@runtime_checkable
class NotificationPort(Protocol):
    """Fire-and-forget user notifications."""

    async def show(self, title: str, body: str) -> None: ...
