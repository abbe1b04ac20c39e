"""Attendance API routes — manual triggers, schedule settings, logs."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from punchclock import __version__
from punchclock.domain.log_store import OutcomeLog
from punchclock.domain.manual_trigger import ManualTrigger
from punchclock.domain.models import Intent
from punchclock.domain.schedule import ScheduleManager, format_time

attendance_router = APIRouter(tags=["Attendance"])

# Wired by the server on startup; None until then.
manual_trigger: Optional[ManualTrigger] = None
schedule_manager: Optional[ScheduleManager] = None
background_log: Optional[OutcomeLog] = None


def bind(trigger: ManualTrigger, manager: ScheduleManager, log: OutcomeLog) -> None:
    global manual_trigger, schedule_manager, background_log
    manual_trigger = trigger
    schedule_manager = manager
    background_log = log


class AttendanceResult(BaseModel):
    success: bool
    method: Optional[str] = None
    error: Optional[str] = None


class ToggleRequest(BaseModel):
    enabled: bool


class TimesRequest(BaseModel):
    checkinTime: str
    checkoutTime: str


class ScheduleEntry(BaseModel):
    intent: str
    time: str
    displayTime: str
    nextFireAt: Optional[str] = None
    enabled: bool
    state: str


class ScheduleState(BaseModel):
    autoSchedule: bool
    schedules: List[ScheduleEntry]


class LogEntry(BaseModel):
    timestamp: str
    kind: str
    detail: str
    intent: Optional[str] = None


class LogsResponse(BaseModel):
    scope: str
    capacity: int
    entries: List[LogEntry]


class StatusResponse(BaseModel):
    connected: bool
    message: str
    url: Optional[str] = None
    version: str


def _require_manager() -> ScheduleManager:
    if schedule_manager is None:
        raise HTTPException(status_code=503, detail="Scheduler not running")
    return schedule_manager


def _schedule_state(manager: ScheduleManager) -> ScheduleState:
    entries = []
    for s in manager.list_schedules():
        data = s.to_dict()
        entries.append(ScheduleEntry(displayTime=format_time(data["time"]), **data))
    return ScheduleState(autoSchedule=manager.auto_schedule, schedules=entries)


@attendance_router.post("/attendance/{intent}", response_model=AttendanceResult)
async def perform_attendance(intent: str):
    try:
        parsed = Intent.parse(intent)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if manual_trigger is None:
        raise HTTPException(status_code=503, detail="Browser not running")
    return AttendanceResult(**(await manual_trigger.perform(parsed)))


@attendance_router.get("/status", response_model=StatusResponse)
async def status():
    if manual_trigger is None:
        return StatusResponse(connected=False, message="Browser not running", version=__version__)
    return StatusResponse(version=__version__, **(await manual_trigger.status()))


@attendance_router.get("/schedule", response_model=ScheduleState)
async def get_schedule():
    return _schedule_state(_require_manager())


@attendance_router.post("/schedule/toggle", response_model=ScheduleState)
async def toggle_schedule(req: ToggleRequest):
    manager = _require_manager()
    await manager.toggle(req.enabled)
    return _schedule_state(manager)


@attendance_router.put("/schedule/times", response_model=ScheduleState)
async def set_schedule_times(req: TimesRequest):
    manager = _require_manager()
    try:
        await manager.set_times(req.checkinTime, req.checkoutTime)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _schedule_state(manager)


@attendance_router.get("/logs", response_model=LogsResponse)
async def get_logs(scope: str = "background"):
    if scope == "interactive":
        log = manual_trigger.log if manual_trigger else None
    elif scope == "background":
        log = background_log
    else:
        raise HTTPException(status_code=422, detail=f"Unknown log scope: {scope!r}")
    if log is None:
        raise HTTPException(status_code=503, detail="Logs not available yet")
    return LogsResponse(
        scope=scope,
        capacity=log.capacity,
        entries=[LogEntry(**e.to_dict()) for e in log.entries()],
    )
