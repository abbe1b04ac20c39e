"""Domain layer — pure Python, no framework dependencies.

Only leaf modules are re-exported here; ``punchclock.ports`` imports the
models, so importing the port-dependent modules here would be circular.
"""

from punchclock.domain.errors import (
    ActivationFailure,
    AttendanceError,
    DeliveryFailure,
    NotFound,
    PersistenceFailure,
)
from punchclock.domain.models import (
    DetectionResult,
    Intent,
    OutcomeKind,
    OutcomeLogEntry,
    PageContext,
)

__all__ = [
    "ActivationFailure",
    "AttendanceError",
    "DeliveryFailure",
    "NotFound",
    "PersistenceFailure",
    "DetectionResult",
    "Intent",
    "OutcomeKind",
    "OutcomeLogEntry",
    "PageContext",
]
