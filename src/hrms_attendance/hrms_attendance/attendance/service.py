from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from typing import Callable, Optional

from ..auth.context import ContextReader
from ..common.datetime_utils import Clock, now_local
from ..core.constants import DEFAULT_HISTORY_DAYS
from ..core.enums import AttendanceStatus
from .events import EventBus, SelfAttendanceChanged
from .gateway import AttendanceGateway
from .model import AttendanceRecord, Err, GatewayResult, Ok
from .roster import RosterEngine
from .self_session import SelfSessionController
from .timer import SessionTimer, Ticker


@dataclass(frozen=True)
class AttendanceRowUI:
    date: str
    check_in: str
    check_out: str
    hours: str
    status: str
    css_class: str


class AttendanceDashboard:
    """Self session and reportee roster for one viewer.

    The self-session view notifies the roster through the event bus; the two
    never share mutable state.
    """

    def __init__(
        self,
        gateway: AttendanceGateway,
        context: ContextReader,
        *,
        clock: Clock = now_local,
        ticker: Optional[Ticker] = None,
        include_all: bool = True,
    ):
        self.events = EventBus()
        self.self_session = SelfSessionController(
            gateway,
            context,
            self.events,
            timer=SessionTimer(clock=clock, ticker=ticker),
            clock=clock,
        )
        self.roster = RosterEngine(gateway, context, events=self.events, clock=clock, include_all=include_all)
        self.events.subscribe(SelfAttendanceChanged, self._on_self_changed)

    def _on_self_changed(self, event: SelfAttendanceChanged) -> None:
        self.roster.load()

    def use_timezone(self, tz: tzinfo) -> None:
        """Manual HH:MM fields of both views are wall time in ``tz`` from now on."""
        self.self_session.use_timezone(tz)
        self.roster.use_timezone(tz)

    def close(self) -> None:
        self.self_session.timer.unmount()


class DashboardRegistry:
    """Keeps one dashboard per viewer across requests."""

    def __init__(self, factory: Callable[[], AttendanceDashboard]):
        self._factory = factory
        self._dashboards: dict[str, AttendanceDashboard] = {}
        self._lock = threading.Lock()

    def for_subject(self, subject_id: str) -> AttendanceDashboard:
        with self._lock:
            dashboard = self._dashboards.get(subject_id)
            if dashboard is None:
                dashboard = self._factory()
                self._dashboards[subject_id] = dashboard
            return dashboard

    def discard(self, subject_id: str) -> None:
        with self._lock:
            dashboard = self._dashboards.pop(subject_id, None)
        if dashboard is not None:
            dashboard.close()


class HistoryService:
    def __init__(self, gateway: AttendanceGateway, context: ContextReader, *, clock: Clock = now_local):
        self._gateway = gateway
        self._context = context
        self._clock = clock

    def history_rows(
        self, *, days: int = DEFAULT_HISTORY_DAYS, tz: Optional[tzinfo] = None
    ) -> GatewayResult[list[AttendanceRowUI]]:
        ctx = self._context.resolve_context()
        if not ctx:
            return Err("Authentication required")
        now = self._clock()
        if tz is not None:
            now = now.astimezone(tz)
        today = now.date()
        result = self._gateway.get_my_history(ctx.org_id, today - timedelta(days=days), today)
        if not result.ok:
            return result
        rows = sorted(result.value, key=lambda r: r.work_date or date.min, reverse=True)
        return Ok([self._to_ui(r, now.tzinfo) for r in rows])

    def _to_ui(self, r: AttendanceRecord, tz=None) -> AttendanceRowUI:
        css = {
            AttendanceStatus.PRESENT: "bg-success",
            AttendanceStatus.LATE: "bg-danger",
            AttendanceStatus.LEAVE: "bg-info",
            AttendanceStatus.WEEKEND: "bg-light text-dark",
            AttendanceStatus.ABSENT: "bg-secondary",
            AttendanceStatus.UNKNOWN: "bg-secondary",
        }.get(r.status, "bg-secondary")

        hours = r.hours_worked
        if hours is None and r.check_in and r.check_out:
            hours = f"{(r.check_out - r.check_in).total_seconds() / 3600:.2f}"

        return AttendanceRowUI(
            date=r.work_date.strftime("%Y-%m-%d") if r.work_date else "-",
            check_in=r.check_in.astimezone(tz).strftime("%H:%M:%S") if r.check_in else "-",
            check_out=r.check_out.astimezone(tz).strftime("%H:%M:%S") if r.check_out else "-",
            hours=hours or "-",
            status=r.status.value,
            css_class=css,
        )
