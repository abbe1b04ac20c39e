"""Domain data models — pure Python dataclasses."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Intent(str, Enum):
    """Semantic attendance action. The value is the wire string."""

    CHECK_IN = "checkin"
    CHECK_OUT = "checkout"

    @property
    def label(self) -> str:
        return "Check-in" if self is Intent.CHECK_IN else "Check-out"

    @property
    def done_label(self) -> str:
        return "Checked In" if self is Intent.CHECK_IN else "Checked Out"

    @classmethod
    def parse(cls, value: str) -> "Intent":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown intent: {value!r}") from None


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    INFO = "info"


@dataclass(frozen=True)
class DetectionResult:
    """Which strategy found the control, and how."""

    success: bool
    method: str  # "selector" | "text" | "aria" | "form" | "api"
    locator: Dict[str, str] = field(default_factory=dict)


@dataclass
class OutcomeLogEntry:
    timestamp: str  # ISO datetime
    kind: OutcomeKind
    detail: str
    intent: Optional[Intent] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "kind": self.kind.value,
            "detail": self.detail,
            "intent": self.intent.value if self.intent else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutcomeLogEntry":
        intent = data.get("intent")
        return cls(
            timestamp=str(data.get("timestamp", "")),
            kind=OutcomeKind(data.get("kind", OutcomeKind.INFO.value)),
            detail=str(data.get("detail", "")),
            intent=Intent(intent) if intent else None,
        )

    @classmethod
    def now(cls, kind: OutcomeKind, detail: str, intent: Optional[Intent] = None) -> "OutcomeLogEntry":
        return cls(
            timestamp=datetime.now().astimezone().isoformat(timespec="seconds"),
            kind=kind,
            detail=detail,
            intent=intent,
        )


@dataclass(frozen=True)
class PageContext:
    """Handle for one page context (browser tab)."""

    id: str
    url: str
    active: bool = False
