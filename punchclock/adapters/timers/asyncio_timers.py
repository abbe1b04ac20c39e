"""asyncio timer adapter — implements TimerPort.

Each named timer is one task that sleeps until ``when`` (re-checking the wall
clock at least once a minute, so a suspended laptop still fires on wake-up),
then hands the name to every listener. Listeners run in their own tasks:
clearing or re-creating a timer never cancels a firing already in progress.
"""

import asyncio
import sys
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set

from punchclock.domain.schedule import make_clock
from punchclock.ports.outbound import TimerListener


def _log(msg: str):
    print(msg, file=sys.stderr)


_MAX_SLEEP_SECONDS = 60.0


class AsyncioTimers:
    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or make_clock()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._when: Dict[str, datetime] = {}
        self._listeners: List[TimerListener] = []
        self._in_flight: Set[asyncio.Task] = set()

    def on_fire(self, listener: TimerListener) -> None:
        self._listeners.append(listener)

    def create(self, name: str, when: datetime, period_minutes: Optional[float] = None) -> None:
        """(Re)create timer ``name``. Must be called from a running event loop."""
        self.clear(name)
        self._when[name] = when
        self._tasks[name] = asyncio.get_running_loop().create_task(self._run(name, when, period_minutes))

    def clear(self, name: str) -> bool:
        self._when.pop(name, None)
        task = self._tasks.pop(name, None)
        if task is None:
            return False
        task.cancel()
        return True

    def scheduled(self) -> Dict[str, datetime]:
        return dict(self._when)

    async def close(self) -> None:
        for name in list(self._tasks):
            self.clear(name)
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _run(self, name: str, when: datetime, period_minutes: Optional[float]) -> None:
        while True:
            while True:
                delay = (when - self._clock()).total_seconds()
                if delay <= 0:
                    break
                await asyncio.sleep(min(delay, _MAX_SLEEP_SECONDS))
            self._dispatch(name)
            if not period_minutes:
                break
            when = when + timedelta(minutes=period_minutes)
            self._when[name] = when
        if self._tasks.get(name) is asyncio.current_task():
            del self._tasks[name]
            self._when.pop(name, None)

    def _dispatch(self, name: str) -> None:
        _log(f"[timers] {name} fired")
        for listener in self._listeners:
            task = asyncio.get_running_loop().create_task(self._call(listener, name))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    @staticmethod
    async def _call(listener: TimerListener, name: str) -> None:
        try:
            await listener(name)
        except Exception as e:
            _log(f"[timers] listener for {name} failed: {e}")
