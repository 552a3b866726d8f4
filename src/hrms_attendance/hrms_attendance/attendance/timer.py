"""Elapsed-time counter shown while a subject is checked in."""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime
from typing import Callable, Optional, Protocol

from ..common.datetime_utils import Clock, now_local
from ..core.constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


def elapsed_since(check_in_time: datetime, now: datetime) -> int:
    """Whole seconds between check-in and now, never negative."""
    return max(0, math.floor((now - check_in_time).total_seconds()))


def format_elapsed(total_seconds: int) -> str:
    """``HH:MM:SS``; hours keep growing past 24 (a forgotten check-out)."""
    if total_seconds < 0:
        raise ValueError("elapsed seconds must be >= 0")
    hours, rest = divmod(int(total_seconds), 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_elapsed(value: str) -> int:
    hours, minutes, seconds = (int(p) for p in value.split(":"))
    return hours * 3600 + minutes * 60 + seconds


class Ticker(Protocol):
    def start(self, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        raise NotImplementedError


class ThreadTicker:
    """Calls ``callback`` once per interval on a daemon thread until cancelled."""

    def __init__(self, interval: float = TICK_INTERVAL_SECONDS):
        self._interval = interval
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, callback: Callable[[], None]) -> None:
        self.cancel()
        stop = threading.Event()

        def _run():
            while not stop.wait(self._interval):
                callback()

        self._stop = stop
        self._thread = threading.Thread(target=_run, name="session-timer", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        if self._stop is not None:
            self._stop.set()
        self._stop = None
        self._thread = None


class ManualTicker:
    """Ticker that never fires on its own; the owner calls ``tick()``."""

    def __init__(self):
        self.running = False

    def start(self, callback: Callable[[], None]) -> None:
        self.running = True

    def cancel(self) -> None:
        self.running = False


class SessionTimer:
    def __init__(self, *, clock: Clock = now_local, ticker: Optional[Ticker] = None):
        self._clock = clock
        self._ticker = ticker or ThreadTicker()
        self._seconds = 0
        self._running = False
        self._lock = threading.Lock()

    @property
    def seconds(self) -> int:
        return self._seconds

    @property
    def running(self) -> bool:
        return self._running

    def display(self) -> str:
        return format_elapsed(self._seconds)

    def sync(self, check_in_time: Optional[datetime], is_checked_in: bool) -> None:
        """Recompute from the check-in time (mount / refresh)."""
        with self._lock:
            if is_checked_in and check_in_time is not None:
                self._seconds = elapsed_since(check_in_time, self._clock())
            else:
                self._seconds = 0
        if is_checked_in:
            self._start()
        else:
            self.stop()

    def restart(self) -> None:
        """Fresh check-in: count from zero."""
        with self._lock:
            self._seconds = 0
        self._start()

    def _start(self) -> None:
        if self._running:
            return
        self._running = True
        self._ticker.start(self.tick)

    def tick(self) -> None:
        with self._lock:
            if self._running:
                self._seconds += 1

    def stop(self) -> None:
        self._ticker.cancel()
        with self._lock:
            self._running = False
            self._seconds = 0

    def unmount(self) -> None:
        self._ticker.cancel()
        self._running = False
