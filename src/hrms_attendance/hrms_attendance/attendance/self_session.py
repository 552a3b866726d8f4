"""Check-in / check-out state machine for the logged-in viewer."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from ..auth.context import AuthContext, ContextReader
from ..common.datetime_utils import Clock, at_time_today, format_hhmm, now_local, shift_hhmm, to_iso
from ..common.validators import require_hhmm
from ..core.enums import SessionState
from .events import EventBus, SelfAttendanceChanged
from .gateway import AttendanceGateway
from .model import NotFound
from .timer import SessionTimer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    message: Optional[str] = None
    skipped: bool = False

    @classmethod
    def skip(cls, reason: str) -> "ActionResult":
        return cls(ok=False, message=reason, skipped=True)


class SelfSessionController:
    def __init__(
        self,
        gateway: AttendanceGateway,
        context: ContextReader,
        events: EventBus,
        *,
        timer: SessionTimer,
        clock: Clock = now_local,
    ):
        self._gateway = gateway
        self._context = context
        self._events = events
        self._timer = timer
        self._clock = clock

        self.state = SessionState.NOT_CHECKED_IN
        self.is_absent = False
        self.check_in_time: Optional[datetime] = None
        self.check_out_time: Optional[datetime] = None
        self.busy = False
        self.viewer_tz: Optional[tzinfo] = None
        self._lock = threading.Lock()

        now = self._clock()
        self._login_time = format_hhmm(now)
        self._logout_time = format_hhmm(now)

    def _now(self) -> datetime:
        now = self._clock()
        return now.astimezone(self.viewer_tz) if self.viewer_tz is not None else now

    def use_timezone(self, tz: tzinfo) -> None:
        """Read and show manual times as wall time in the viewer's zone."""
        now = self._now()
        self._login_time = shift_hhmm(self._login_time, now, tz)
        self._logout_time = shift_hhmm(self._logout_time, now, tz)
        self.viewer_tz = tz

    @property
    def timer(self) -> SessionTimer:
        return self._timer

    @property
    def login_time(self) -> str:
        return self._login_time

    @login_time.setter
    def login_time(self, value: str) -> None:
        self._login_time = require_hhmm(value, "Login time")

    @property
    def logout_time(self) -> str:
        return self._logout_time

    @logout_time.setter
    def logout_time(self, value: str) -> None:
        self._logout_time = require_hhmm(value, "Logout time")

    def _ready(self) -> Optional[AuthContext]:
        ctx = self._context.resolve_context()
        return ctx or None

    @property
    def can_transition(self) -> bool:
        return (
            self.state != SessionState.CHECKED_OUT
            and not self.busy
            and not self.is_absent
            and self._ready() is not None
        )

    def refresh(self) -> ActionResult:
        """Load today's status from the backend and resync the timer."""
        ctx = self._ready()
        if ctx is None:
            return ActionResult.skip("Authentication required")

        result = self._gateway.get_self_status(ctx.org_id, ctx.subject_id)
        if not result.ok:
            logger.error("Error fetching own status: %s", result.error_message)
            return ActionResult(ok=False, message=result.error_message)

        session = result.value
        if isinstance(session, NotFound):
            self.state = SessionState.NOT_CHECKED_IN
            self.is_absent = False
            self.check_in_time = None
            self.check_out_time = None
        else:
            self.state = session.state
            self.is_absent = session.is_absent
            self.check_in_time = session.check_in_time
            self.check_out_time = session.check_out_time
            tz = self._now().tzinfo
            if session.check_in_time:
                self._login_time = format_hhmm(session.check_in_time.astimezone(tz))
            if session.check_out_time:
                self._logout_time = format_hhmm(session.check_out_time.astimezone(tz))

        self._timer.sync(self.check_in_time, self.state == SessionState.CHECKED_IN)
        return ActionResult(ok=True)

    def toggle(self) -> ActionResult:
        if self.state == SessionState.CHECKED_IN:
            return self.check_out()
        return self.check_in()

    def check_in(self) -> ActionResult:
        if self.state != SessionState.NOT_CHECKED_IN:
            return ActionResult.skip("Already checked in today")
        return self._transition(check_in=True, expected=SessionState.NOT_CHECKED_IN)

    def check_out(self) -> ActionResult:
        if self.state != SessionState.CHECKED_IN:
            return ActionResult.skip("Not checked in")
        return self._transition(check_in=False, expected=SessionState.CHECKED_IN)

    def _transition(self, *, check_in: bool, expected: SessionState) -> ActionResult:
        if self.is_absent:
            return ActionResult.skip("Marked absent today")
        ctx = self._ready()
        if ctx is None:
            return ActionResult.skip("Authentication required")

        # Dashboards are shared by request threads; only the check-and-set is locked.
        with self._lock:
            if self.busy:
                return ActionResult.skip("Request already in progress")
            if self.state != expected:
                return ActionResult.skip("Attendance changed while waiting")
            self.busy = True

        try:
            at = at_time_today(self._login_time if check_in else self._logout_time, self._now())
            if check_in:
                result = self._gateway.check_in(ctx.org_id, to_iso(at), subject_id=ctx.subject_id)
            else:
                result = self._gateway.check_out(ctx.org_id, to_iso(at), subject_id=ctx.subject_id)

            if not result.ok:
                verb = "check in" if check_in else "check out"
                return ActionResult(ok=False, message=f"Failed to {verb}: {result.error_message}")

            session = result.value
            if check_in:
                self.state = SessionState.CHECKED_IN
                self.check_in_time = session.check_in_time or at
                self._timer.restart()
            else:
                self.state = SessionState.CHECKED_OUT
                self.check_out_time = session.check_out_time or at
                self._timer.stop()
        finally:
            with self._lock:
                self.busy = False

        self._events.publish(SelfAttendanceChanged(subject_id=ctx.subject_id, checked_in=check_in))
        return ActionResult(ok=True)
