"""Port interfaces (Hexagonal Architecture)."""

from punchclock.ports.outbound import (
    ContextPort,
    Delivery,
    DeliveryStatus,
    ElementPort,
    NotificationPort,
    PagePort,
    StoragePort,
    TimerPort,
)

__all__ = [
    "ContextPort",
    "Delivery",
    "DeliveryStatus",
    "ElementPort",
    "NotificationPort",
    "PagePort",
    "StoragePort",
    "TimerPort",
]
