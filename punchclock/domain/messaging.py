"""Request/response contract between an initiator and a page agent.

The initiator (scheduler or manual trigger) and the page agent live in
separate contexts and share nothing but these envelopes. Delivery problems
come back as a ``Delivery`` variant from the context port, never as a bare
exception, and are turned into ``DeliveryFailure`` here.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from punchclock.domain.errors import ActivationFailure, AttendanceError, DeliveryFailure, NotFound
from punchclock.domain.models import Intent, PageContext
from punchclock.ports.outbound import ContextPort, DeliveryStatus

PERFORM_ATTENDANCE = "performAttendance"

KIND_NOT_FOUND = "NotFound"
KIND_ACTIVATION_FAILURE = "ActivationFailure"


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class AttendanceRequest:
    intent: Intent
    correlation_id: str
    action: str = PERFORM_ATTENDANCE

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "type": self.intent.value, "correlationId": self.correlation_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttendanceRequest":
        return cls(
            intent=Intent.parse(data.get("type", "")),
            correlation_id=str(data.get("correlationId") or ""),
            action=str(data.get("action", "")),
        )


@dataclass(frozen=True)
class AttendanceResponse:
    success: bool
    method: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[str] = None
    correlation_id: Optional[str] = None

    @classmethod
    def ok(cls, method: str, correlation_id: Optional[str] = None) -> "AttendanceResponse":
        return cls(success=True, method=method, correlation_id=correlation_id)

    @classmethod
    def failed(cls, error: AttendanceError, correlation_id: Optional[str] = None) -> "AttendanceResponse":
        kind = KIND_NOT_FOUND if isinstance(error, NotFound) else KIND_ACTIVATION_FAILURE
        return cls(success=False, error=str(error), kind=kind, correlation_id=correlation_id)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.success:
            data["method"] = self.method
        else:
            data["error"] = self.error
            data["kind"] = self.kind
        if self.correlation_id:
            data["correlationId"] = self.correlation_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttendanceResponse":
        return cls(
            success=bool(data.get("success")),
            method=data.get("method"),
            error=data.get("error"),
            kind=data.get("kind"),
            correlation_id=data.get("correlationId"),
        )


def raise_for_response(response: AttendanceResponse, intent: Intent) -> None:
    """Re-raise a structured failure reported by the page agent."""
    if response.success:
        return
    message = response.error or "Unknown error"
    if response.kind == KIND_NOT_FOUND:
        raise NotFound(intent, message)
    raise ActivationFailure(message)


async def request_attendance(
    contexts: ContextPort,
    context: PageContext,
    intent: Intent,
) -> AttendanceResponse:
    """Send one performAttendance request and return the successful response.

    Raises DeliveryFailure when no receiver answered or the context died, and
    NotFound / ActivationFailure when the receiver reported a failure.
    """
    request = AttendanceRequest(intent=intent, correlation_id=new_correlation_id())
    delivery = await contexts.send_message(context, request.to_dict())

    if delivery.status == DeliveryStatus.NO_RECEIVER:
        raise DeliveryFailure(DeliveryFailure.NO_RECEIVER, delivery.detail)
    if delivery.status == DeliveryStatus.CONTEXT_LOST:
        raise DeliveryFailure(DeliveryFailure.CONTEXT_LOST, delivery.detail)
    if delivery.response is None:
        raise DeliveryFailure(DeliveryFailure.NO_RECEIVER, "The receiver sent no response.")

    response = AttendanceResponse.from_dict(delivery.response)
    if response.correlation_id and response.correlation_id != request.correlation_id:
        raise DeliveryFailure(
            DeliveryFailure.CONTEXT_LOST,
            f"Mismatched response {response.correlation_id!r} for request {request.correlation_id!r}",
        )
    raise_for_response(response, intent)
    return response
