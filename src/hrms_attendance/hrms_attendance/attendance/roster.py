"""Reportee roster, selection and bulk check-in/check-out.

The roster is never patched locally after a bulk call: a successful call
clears the selection and refetches, because the backend may have applied
the transition to only some subjects.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Optional

from ..auth.context import ContextReader
from ..common.datetime_utils import Clock, at_time_today, format_hhmm, now_local, shift_hhmm, to_iso
from ..common.validators import require_hhmm
from ..core.enums import BulkKind, SelectMode
from ..core.exceptions import ValidationError
from .events import EventBus, RosterReloaded
from .gateway import AttendanceGateway
from .model import Roster, Session
from .self_session import ActionResult

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


@dataclass(frozen=True)
class InFlightRequest:
    request_id: int
    kind: BulkKind
    started_at: datetime


class RosterEngine:
    def __init__(
        self,
        gateway: AttendanceGateway,
        context: ContextReader,
        *,
        events: Optional[EventBus] = None,
        clock: Clock = now_local,
        include_all: bool = True,
    ):
        self._gateway = gateway
        self._context = context
        self._events = events
        self._clock = clock
        self._include_all = include_all

        self._roster = Roster()
        self._roster_date: Optional[date] = None
        self._selection: set[str] = set()
        self._in_flight: Optional[InFlightRequest] = None
        self._lock = threading.Lock()
        self.viewer_tz: Optional[tzinfo] = None

        now = self._clock()
        self._global_check_in_time = format_hhmm(now)
        self._global_check_out_time = format_hhmm(now)

    def _now(self) -> datetime:
        now = self._clock()
        return now.astimezone(self.viewer_tz) if self.viewer_tz is not None else now

    def use_timezone(self, tz: tzinfo) -> None:
        now = self._now()
        self._global_check_in_time = shift_hhmm(self._global_check_in_time, now, tz)
        self._global_check_out_time = shift_hhmm(self._global_check_out_time, now, tz)
        self.viewer_tz = tz

    # --- state ---

    @property
    def roster(self) -> Roster:
        return self._roster

    @property
    def roster_date(self) -> Optional[date]:
        return self._roster_date

    @property
    def selection(self) -> frozenset[str]:
        return frozenset(self._selection)

    @property
    def in_flight(self) -> Optional[InFlightRequest]:
        return self._in_flight

    @property
    def check_in_loading(self) -> bool:
        return self._in_flight is not None

    @property
    def global_check_in_time(self) -> str:
        return self._global_check_in_time

    @global_check_in_time.setter
    def global_check_in_time(self, value: str) -> None:
        self._global_check_in_time = require_hhmm(value, "Check-in time")

    @property
    def global_check_out_time(self) -> str:
        return self._global_check_out_time

    @global_check_out_time.setter
    def global_check_out_time(self, value: str) -> None:
        self._global_check_out_time = require_hhmm(value, "Check-out time")

    # --- loading ---

    def load(self, day: Optional[date] = None) -> ActionResult:
        ctx = self._context.resolve_context()
        if not ctx:
            return ActionResult.skip("Authentication required")

        day = day or self._roster_date or self._now().date()
        result = self._gateway.get_roster_status(ctx.org_id, day, self._include_all)
        if not result.ok:
            logger.error("Failed to fetch reportees: %s", result.error_message)
            return ActionResult(ok=False, message=result.error_message)

        self._roster = result.value
        self._roster_date = day
        selectable = {s.subject_id for s in self._roster.selectable()}
        self._selection &= selectable
        if self._events is not None:
            self._events.publish(RosterReloaded(size=len(self._roster)))
        return ActionResult(ok=True)

    # --- selection ---

    def toggle(self, subject_id: str) -> None:
        session = self._roster.get(subject_id)
        if session is None or not session.selectable:
            return
        if subject_id in self._selection:
            self._selection.discard(subject_id)
        else:
            self._selection.add(subject_id)

    def cohort(self, mode: SelectMode) -> list[Session]:
        if mode == SelectMode.CHECKIN:
            return self._roster.pending()
        if mode == SelectMode.CHECKOUT:
            return self._roster.checked_in()
        return self._roster.selectable()

    def cohort_fully_selected(self, mode: SelectMode) -> bool:
        ids = [s.subject_id for s in self.cohort(mode)]
        return bool(ids) and all(i in self._selection for i in ids)

    def select_all(self, mode) -> None:
        try:
            mode = SelectMode(mode)
        except ValueError:
            raise ValidationError(f"Unknown selection mode '{mode}'") from None

        ids = {s.subject_id for s in self.cohort(mode)}
        if not self.cohort_fully_selected(mode):
            self._selection |= ids
        elif mode == SelectMode.ALL:
            self._selection.clear()
        else:
            self._selection -= ids

    def clear_selection(self) -> None:
        self._selection.clear()

    def selected_pending(self) -> list[str]:
        return [s.subject_id for s in self._roster.pending() if s.subject_id in self._selection]

    def selected_checked_in(self) -> list[str]:
        return [s.subject_id for s in self._roster.checked_in() if s.subject_id in self._selection]

    @property
    def show_bulk_check_in(self) -> bool:
        return bool(self.selected_pending())

    @property
    def show_bulk_check_out(self) -> bool:
        return bool(self.selected_checked_in())

    # --- bulk ---

    def bulk_check_in(self) -> ActionResult:
        return self._bulk(BulkKind.CHECK_IN)

    def bulk_check_out(self) -> ActionResult:
        return self._bulk(BulkKind.CHECK_OUT)

    def _bulk(self, kind: BulkKind) -> ActionResult:
        if self._in_flight is not None:
            return ActionResult.skip("A bulk request is already in progress")
        ctx = self._context.resolve_context()
        if not ctx:
            return ActionResult.skip("Authentication required")

        now = self._now()
        # Dashboards are shared by request threads; only the check-and-set is locked.
        with self._lock:
            if self._in_flight is not None:
                return ActionResult.skip("A bulk request is already in progress")
            if kind == BulkKind.CHECK_IN:
                subject_ids = self.selected_pending()
                hhmm = self._global_check_in_time
            else:
                subject_ids = self.selected_checked_in()
                hhmm = self._global_check_out_time
            if not subject_ids:
                return ActionResult.skip("No employees selected")
            token = InFlightRequest(request_id=next(_request_ids), kind=kind, started_at=now)
            self._in_flight = token

        try:
            iso_time = to_iso(at_time_today(hhmm, now))
            if kind == BulkKind.CHECK_IN:
                result = self._gateway.bulk_check_in(ctx.org_id, subject_ids, iso_time)
            else:
                result = self._gateway.bulk_check_out(ctx.org_id, subject_ids, iso_time)

            if self._in_flight is not token:
                logger.info("Dropping stale bulk %s response #%d", kind.value, token.request_id)
                return ActionResult.skip("Superseded by a newer request")

            if not result.ok:
                return ActionResult(ok=False, message=result.error_message)
            self._selection.clear()
        finally:
            with self._lock:
                if self._in_flight is token:
                    self._in_flight = None

        reload_result = self.load()
        if not reload_result.ok and not reload_result.skipped:
            logger.warning("Roster refresh after bulk %s failed: %s", kind.value, reload_result.message)
        verb = "checked in" if kind == BulkKind.CHECK_IN else "checked out"
        return ActionResult(ok=True, message=f"Successfully {verb} {len(subject_ids)} employees")
