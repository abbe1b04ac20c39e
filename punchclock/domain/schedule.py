"""Schedule manager — two independent daily attendance triggers.

Per schedule: Disabled -> Armed(next_fire_at) -> Firing -> Armed(next_fire_at').
State is persisted at enable / disable / fire so a restart can catch up on
an occurrence that elapsed while the process was down.
"""

import asyncio
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from punchclock.domain.errors import PersistenceFailure
from punchclock.domain.log_store import OutcomeLog
from punchclock.domain.messaging import request_attendance
from punchclock.domain.models import Intent, OutcomeKind, OutcomeLogEntry, PageContext
from punchclock.ports.outbound import ContextPort, NotificationPort, StoragePort, TimerPort


def _log(msg: str):
    print(msg, file=sys.stderr)


_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

DAY = timedelta(days=1)
TIMER_PERIOD_MINUTES = 24 * 60
LOCALTIME_PATH = "/etc/localtime"

KEY_AUTO_SCHEDULE = "autoSchedule"
KEY_TIMEZONE = "timezone"
TIME_KEYS = {Intent.CHECK_IN: "checkinTime", Intent.CHECK_OUT: "checkoutTime"}
NEXT_FIRE_KEYS = {Intent.CHECK_IN: "checkinNextFireAt", Intent.CHECK_OUT: "checkoutNextFireAt"}

DEFAULT_TIMES = {Intent.CHECK_IN: "09:00", Intent.CHECK_OUT: "17:30"}

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


def parse_time_of_day(value: str) -> Tuple[int, int]:
    """Parse "HH:MM" into (hour, minute)."""
    m = _TIME_RE.match(str(value).strip())
    if not m:
        raise ValueError(f"Invalid time format: {value!r} (expected HH:MM)")
    hour, minute = int(m.group(1)), int(m.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time: {value!r}")
    return hour, minute


def format_time(value: str) -> str:
    """"17:30" -> "5:30 PM"."""
    hour, minute = parse_time_of_day(value)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def next_occurrence(hour: int, minute: int, now: datetime) -> datetime:
    """Today at hour:minute if still ahead of now, else tomorrow.

    Day steps keep the wall time, so now should carry a tz database zone
    (see make_clock) for the result to follow DST.
    """
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += DAY
    return candidate


def local_zone() -> tzinfo:
    """The system zone as a real tz database zone, so day steps follow DST."""
    name = os.environ.get("TZ", "").lstrip(":")
    if not name:
        path = os.path.realpath(LOCALTIME_PATH)
        if "zoneinfo/" in path:
            name = path.split("zoneinfo/", 1)[1]
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            _log(f"[ScheduleManager] unknown system zone {name!r}")
    try:
        with open(LOCALTIME_PATH, "rb") as f:
            return ZoneInfo.from_file(f, key="localtime")
    except (OSError, ValueError):
        pass
    # Fixed offset: stays correct only until the next DST change.
    _log("[ScheduleManager] no tz database entry for the system clock, set ATTENDANCE_TZ")
    return datetime.now().astimezone().tzinfo


def make_clock(tz_name: str = "") -> Clock:
    """Aware "now" in tz_name, or in the system local zone when empty."""
    if not tz_name:
        tz = local_zone()
        return lambda: datetime.now(tz)
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, KeyError, ValueError):
        raise ValueError(f"Invalid timezone: {tz_name!r}")
    return lambda: datetime.now(tz)


@dataclass
class Schedule:
    intent: Intent
    hour: int
    minute: int
    next_fire_at: Optional[datetime] = None
    enabled: bool = False
    firing: bool = False
    last_fired_slot: Optional[datetime] = None

    @property
    def time_of_day(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    @property
    def state(self) -> str:
        if not self.enabled:
            return "disabled"
        return "firing" if self.firing else "armed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "time": self.time_of_day,
            "nextFireAt": self.next_fire_at.isoformat() if self.next_fire_at else None,
            "enabled": self.enabled,
            "state": self.state,
        }


class ScheduleManager:
    """Owns the CheckIn/CheckOut schedules, their timers and persisted state."""

    def __init__(
        self,
        storage: StoragePort,
        timers: TimerPort,
        contexts: ContextPort,
        notifier: NotificationPort,
        log: OutcomeLog,
        *,
        target_url: str,
        url_pattern: str,
        default_times: Optional[Dict[Intent, str]] = None,
        grace_seconds: float = 2.0,
        tz_name: str = "",
        clock: Optional[Clock] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._storage = storage
        self._timers = timers
        self._contexts = contexts
        self._notifier = notifier
        self._log = log
        self._target_url = target_url
        self._url_pattern = url_pattern
        self._default_times = dict(DEFAULT_TIMES)
        self._default_times.update(default_times or {})
        self._grace_seconds = grace_seconds
        self._tz_name = tz_name
        self._clock = clock or make_clock(tz_name)
        self._sleep = sleep
        self._auto_schedule = False
        # Single-flight: CheckIn and CheckOut never race on one shared context.
        self._dispatch_lock = asyncio.Lock()
        self._schedules: Dict[Intent, Schedule] = {}
        for intent, value in self._default_times.items():
            hour, minute = parse_time_of_day(value)
            self._schedules[intent] = Schedule(intent=intent, hour=hour, minute=minute)
        self._timers.on_fire(self._on_timer)

    # ── queries ──────────────────────────────────────────────

    @property
    def auto_schedule(self) -> bool:
        return self._auto_schedule

    def get(self, intent: Intent) -> Schedule:
        return self._schedules[intent]

    def list_schedules(self) -> List[Schedule]:
        return [self._schedules[i] for i in (Intent.CHECK_IN, Intent.CHECK_OUT)]

    # ── lifecycle ────────────────────────────────────────────

    def install(self) -> bool:
        """Write first-run defaults. Returns False when settings already exist."""
        existing = self._read({KEY_AUTO_SCHEDULE: None})
        if existing.get(KEY_AUTO_SCHEDULE) is not None:
            return False
        self._write({
            KEY_AUTO_SCHEDULE: False,
            TIME_KEYS[Intent.CHECK_IN]: self._default_times[Intent.CHECK_IN],
            TIME_KEYS[Intent.CHECK_OUT]: self._default_times[Intent.CHECK_OUT],
            KEY_TIMEZONE: self._tz_name or str(self._clock().tzinfo),
        })
        self._record(OutcomeKind.INFO, "🚀 Attendance helper installed")
        return True

    async def start(self) -> List[Intent]:
        """Load settings and re-arm. Elapsed occurrences fire once as catch-up.

        Returns the intents that were caught up.
        """
        defaults: Dict[str, Any] = {KEY_AUTO_SCHEDULE: False}
        for intent, key in TIME_KEYS.items():
            defaults[key] = self._default_times[intent]
        for key in NEXT_FIRE_KEYS.values():
            defaults[key] = None
        settings = self._read(defaults)

        for intent, key in TIME_KEYS.items():
            try:
                hour, minute = parse_time_of_day(settings[key])
            except ValueError as e:
                _log(f"[ScheduleManager] {e}, keeping {self._schedules[intent].time_of_day}")
                continue
            self._schedules[intent].hour = hour
            self._schedules[intent].minute = minute

        self._auto_schedule = bool(settings[KEY_AUTO_SCHEDULE])
        if not self._auto_schedule:
            _log("[ScheduleManager] auto-schedule off")
            return []

        now = self._clock()
        catch_up: List[Intent] = []
        for schedule in self.list_schedules():
            persisted = self._parse_persisted(settings.get(NEXT_FIRE_KEYS[schedule.intent]), now)
            if persisted is not None and (persisted.hour, persisted.minute) == (schedule.hour, schedule.minute):
                if persisted <= now:
                    # Armed but elapsed while we were down: fire now, then re-arm.
                    schedule.enabled = True
                    schedule.next_fire_at = persisted
                    catch_up.append(schedule.intent)
                    continue
                self._arm(schedule, persisted)
            else:
                self._arm(schedule, next_occurrence(schedule.hour, schedule.minute, now))

        for intent in catch_up:
            self._record(OutcomeKind.INFO, f"⏰ Missed {intent.value} while offline, catching up", intent)
            await self.fire(intent)
        return catch_up

    # ── transitions ──────────────────────────────────────────

    async def toggle(self, enabled: bool) -> None:
        self._write({KEY_AUTO_SCHEDULE: enabled})
        self._auto_schedule = enabled
        if enabled:
            self.enable()
        else:
            self.disable()
        self._record(OutcomeKind.INFO, f"Auto-schedule {'enabled' if enabled else 'disabled'}")

    def enable(self) -> None:
        now = self._clock()
        for schedule in self.list_schedules():
            self._arm(schedule, next_occurrence(schedule.hour, schedule.minute, now))
        checkin, checkout = self.list_schedules()
        self._record(
            OutcomeKind.INFO,
            f"Schedule set: Check-in at {checkin.time_of_day}, Check-out at {checkout.time_of_day}",
        )

    def disable(self) -> None:
        for schedule in self.list_schedules():
            self._timers.clear(schedule.intent.value)
            schedule.enabled = False
            schedule.next_fire_at = None
        self._write({key: None for key in NEXT_FIRE_KEYS.values()})
        self._record(OutcomeKind.INFO, "Schedule cleared")

    async def set_times(self, checkin: str, checkout: str) -> None:
        parsed = {Intent.CHECK_IN: parse_time_of_day(checkin), Intent.CHECK_OUT: parse_time_of_day(checkout)}
        for intent, (hour, minute) in parsed.items():
            self._schedules[intent].hour = hour
            self._schedules[intent].minute = minute
        self._write({
            TIME_KEYS[Intent.CHECK_IN]: self._schedules[Intent.CHECK_IN].time_of_day,
            TIME_KEYS[Intent.CHECK_OUT]: self._schedules[Intent.CHECK_OUT].time_of_day,
        })
        if self._auto_schedule:
            self.enable()

    async def fire(self, intent: Intent) -> Optional[bool]:
        """Run one scheduled occurrence. Returns None when nothing fired."""
        schedule = self._schedules[intent]
        if not schedule.enabled or schedule.next_fire_at is None:
            _log(f"[ScheduleManager] {intent.value} is disabled, ignoring fire")
            return None
        slot = schedule.next_fire_at
        if schedule.last_fired_slot == slot:
            _log(f"[ScheduleManager] {intent.value} already fired for {slot.isoformat()}")
            return None

        schedule.last_fired_slot = slot
        schedule.firing = True
        self._record(OutcomeKind.INFO, f"🔔 Scheduled {intent.value} triggered", intent)
        ok = False
        try:
            response = await self._dispatch(intent)
            self._record(OutcomeKind.SUCCESS, f"✅ Scheduled {intent.value} succeeded via {response.method}", intent)
            await self._notify(intent, None)
            ok = True
        except Exception as e:
            # DeliveryFailure, NotFound, ActivationFailure or a browser error
            # while opening the page; none of them stop future occurrences.
            self._record(OutcomeKind.FAILURE, f"❌ Scheduled {intent.value} failed: {e}", intent)
            await self._notify(intent, str(e))
        finally:
            schedule.firing = False
            self._rearm_after(schedule, slot)
        return ok

    # ── internals ────────────────────────────────────────────

    async def _on_timer(self, name: str) -> None:
        try:
            intent = Intent.parse(name)
        except ValueError:
            _log(f"[ScheduleManager] ignoring unknown timer {name!r}")
            return
        await self.fire(intent)

    async def _dispatch(self, intent: Intent):
        async with self._dispatch_lock:
            context = await self._target_context()
            return await request_attendance(self._contexts, context, intent)

    async def _target_context(self) -> PageContext:
        matches = await self._contexts.query(url_pattern=self._url_pattern)
        if matches:
            return matches[0]
        _log(f"[ScheduleManager] no open page matches {self._url_pattern}, opening {self._target_url}")
        context = await self._contexts.create(self._target_url, active=False)
        await self._contexts.wait_for_load(context)
        await self._sleep(self._grace_seconds)
        return context

    def _arm(self, schedule: Schedule, when: datetime) -> None:
        schedule.enabled = True
        schedule.next_fire_at = when
        self._timers.create(schedule.intent.value, when, TIMER_PERIOD_MINUTES)
        self._write({NEXT_FIRE_KEYS[schedule.intent]: when.isoformat()})
        _log(f"[ScheduleManager] {schedule.intent.value} armed for {when.isoformat()}")

    def _rearm_after(self, schedule: Schedule, slot: datetime) -> None:
        if not schedule.enabled:
            return
        if schedule.next_fire_at != slot:
            # Re-armed by set_times / enable while this occurrence was in flight.
            return
        nxt = slot + DAY
        now = self._clock()
        if nxt <= now:
            nxt = next_occurrence(schedule.hour, schedule.minute, now)
        self._arm(schedule, nxt)

    def _parse_persisted(self, raw: Optional[str], now: datetime) -> Optional[datetime]:
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(str(raw))
        except (ValueError, TypeError):
            _log(f"[ScheduleManager] unreadable persisted fire time {raw!r}")
            return None
        # Keep the wall time it was written with; its offset may predate a DST change.
        return parsed.replace(tzinfo=now.tzinfo)

    async def _notify(self, intent: Intent, error: Optional[str]) -> None:
        if error is None:
            title, body = f"✅ {intent.done_label}", "Attendance recorded successfully"
        else:
            title, body = f"❌ {intent.label} Failed", error or "Failed to record attendance"
        try:
            await self._notifier.show(title, body)
        except Exception as e:
            _log(f"[ScheduleManager] notification failed: {e}")

    def _record(self, kind: OutcomeKind, message: str, intent: Optional[Intent] = None) -> None:
        _log(f"[ScheduleManager] {message}")
        self._log.append(OutcomeLogEntry.now(kind, message, intent))

    def _read(self, defaults: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self._storage.get(list(defaults), defaults)
        except PersistenceFailure as e:
            _log(f"[ScheduleManager] settings read failed, using defaults: {e}")
            return dict(defaults)

    def _write(self, values: Dict[str, Any]) -> None:
        try:
            self._storage.set(values)
        except PersistenceFailure as e:
            _log(f"[ScheduleManager] settings write failed: {e}")
