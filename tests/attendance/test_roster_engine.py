from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from src.hrms_attendance.hrms_attendance.attendance.model import BulkOutcome, Err, Ok, Roster, Session
from src.hrms_attendance.hrms_attendance.attendance.roster import RosterEngine
from src.hrms_attendance.hrms_attendance.auth.context import ContextReader
from src.hrms_attendance.hrms_attendance.auth.store import DictStore
from src.hrms_attendance.hrms_attendance.core.enums import SelectMode, SessionState
from src.hrms_attendance.hrms_attendance.core.exceptions import ValidationError

IN, OUT, PENDING = SessionState.CHECKED_IN, SessionState.CHECKED_OUT, SessionState.NOT_CHECKED_IN


@pytest.fixture
def engine(gateway, context, clock, roster_of):
    gateway.rosters = [roster_of(A=PENDING, B=PENDING, C=IN, D=IN, E=OUT)]
    eng = RosterEngine(gateway, context, clock=clock)
    assert eng.load().ok
    return eng


def test_load_uses_today_and_include_all(engine, gateway):
    assert gateway.calls == [("roster", "ORG-1", date(2026, 3, 2), True)]
    assert engine.roster.subject_ids == ["A", "B", "C", "D", "E"]
    assert engine.roster_date == date(2026, 3, 2)


def test_toggle_adds_and_removes(engine):
    engine.toggle("A")
    engine.toggle("C")
    assert engine.selection == {"A", "C"}

    engine.toggle("A")
    assert engine.selection == {"C"}


def test_toggle_on_checked_out_or_unknown_is_noop(engine):
    engine.toggle("A")

    engine.toggle("E")
    engine.toggle("ZZ")

    assert engine.selection == {"A"}


def test_select_all_modes(engine):
    engine.select_all(SelectMode.CHECKOUT)
    assert engine.selection == {"C", "D"}

    engine.select_all("checkin")
    assert engine.selection == {"A", "B", "C", "D"}

    engine.select_all(SelectMode.ALL)
    assert engine.selection == set()


def test_select_all_all_never_selects_checked_out(engine):
    engine.select_all(SelectMode.ALL)

    assert engine.selection == {"A", "B", "C", "D"}


def test_checkin_toggle_twice_leaves_other_cohort_alone(engine):
    engine.toggle("C")
    before = engine.selection

    engine.select_all(SelectMode.CHECKIN)
    engine.select_all(SelectMode.CHECKIN)

    assert engine.selection == before
    assert engine.selection == {"C"}


def test_partially_selected_cohort_is_completed_not_cleared(engine):
    engine.toggle("A")

    engine.select_all(SelectMode.CHECKIN)

    assert engine.selection == {"A", "B"}


def test_unknown_mode_is_rejected(engine):
    with pytest.raises(ValidationError):
        engine.select_all("everyone")


def test_partitions_drive_bulk_panels(engine):
    assert not engine.show_bulk_check_in
    assert not engine.show_bulk_check_out

    engine.toggle("A")
    assert engine.show_bulk_check_in and not engine.show_bulk_check_out

    engine.toggle("D")
    assert engine.selected_pending() == ["A"]
    assert engine.selected_checked_in() == ["D"]
    assert engine.show_bulk_check_in and engine.show_bulk_check_out


def test_bulk_check_in_sends_only_pending_partition(engine, gateway, roster_of):
    engine.global_check_in_time = "09:00"
    engine.toggle("A")
    engine.toggle("B")
    engine.toggle("C")
    gateway.bulk_result = Ok(BulkOutcome(succeeded=frozenset({"A", "B"})))
    gateway.rosters = [roster_of(A=IN, B=IN, C=IN, D=IN, E=OUT)]

    result = engine.bulk_check_in()

    assert result.ok
    assert result.message == "Successfully checked in 2 employees"
    assert ("bulk_check_in", "ORG-1", ["A", "B"], "2026-03-02T09:00:00.000Z") in gateway.calls
    assert engine.selection == set()
    assert gateway.names()[-1] == "roster"
    assert engine.roster.get("A").state == IN
    assert not engine.check_in_loading


def test_no_optimistic_patch_before_refetch(engine, gateway, roster_of):
    engine.toggle("A")
    engine.toggle("B")
    gateway.bulk_result = Ok(BulkOutcome(succeeded=frozenset({"A", "B"})))
    # Server says only A went through.
    gateway.rosters = [roster_of(A=IN, B=PENDING, C=IN, D=IN, E=OUT)]

    engine.bulk_check_in()

    assert engine.roster.get("B").state == PENDING
    assert engine.selection == set()


def test_failed_bulk_check_out_keeps_selection(engine, gateway):
    engine.global_check_out_time = "18:00"
    engine.toggle("C")
    engine.toggle("D")
    gateway.bulk_result = Err("Bulk check-out failed for 1 of 2 employee(s)")
    calls_before = len(gateway.calls)

    result = engine.bulk_check_out()

    assert not result.ok
    assert not result.skipped
    assert result.message == "Bulk check-out failed for 1 of 2 employee(s)"
    assert engine.selection == {"C", "D"}
    assert not engine.check_in_loading
    assert gateway.names()[calls_before:] == ["bulk_check_out"]
    assert gateway.calls[-1][3] == "2026-03-02T18:00:00.000Z"


def test_bulk_with_empty_partition_is_skipped(engine, gateway):
    engine.toggle("C")

    result = engine.bulk_check_in()

    assert result.skipped
    assert "bulk_check_in" not in gateway.names()


def test_bulk_is_blocked_while_in_flight(engine, gateway):
    engine.toggle("A")

    def reentrant(org_id, subject_ids, iso_timestamp):
        assert engine.check_in_loading
        assert engine.in_flight.kind.value == "check-in"
        inner = engine.bulk_check_in()
        assert inner.skipped
        return Err("server busy")

    gateway.bulk_check_in = reentrant

    result = engine.bulk_check_in()

    assert not result.ok
    assert not engine.check_in_loading


def test_bulk_clears_busy_flag_when_gateway_raises(engine, gateway):
    engine.toggle("A")

    def boom(*args):
        raise RuntimeError("unexpected")

    gateway.bulk_check_in = boom

    with pytest.raises(RuntimeError):
        engine.bulk_check_in()
    assert not engine.check_in_loading
    assert engine.selection == {"A"}


def test_failed_reload_keeps_previous_roster(engine, gateway):
    gateway.rosters = [Err("timeout")]

    result = engine.load()

    assert not result.ok
    assert engine.roster.subject_ids == ["A", "B", "C", "D", "E"]


def test_reload_prunes_selection_of_now_checked_out(engine, gateway, roster_of):
    engine.toggle("C")
    engine.toggle("A")
    gateway.rosters = [roster_of(A=PENDING, B=PENDING, C=OUT, D=IN, E=OUT)]

    engine.load()

    assert engine.selection == {"A"}


def test_absent_reportees_are_not_selectable(gateway, context, clock):
    gateway.rosters = [Roster.from_sessions([Session(subject_id="X", is_absent=True), Session(subject_id="Y")])]
    engine = RosterEngine(gateway, context, clock=clock)
    engine.load()

    engine.toggle("X")
    engine.select_all(SelectMode.CHECKIN)

    assert engine.selection == {"Y"}


def test_incomplete_context_blocks_everything(gateway, clock, roster_of):
    gateway.rosters = [roster_of(A=PENDING)]
    engine = RosterEngine(gateway, ContextReader(DictStore()), clock=clock)

    assert engine.load().skipped
    assert engine.bulk_check_in().skipped
    assert gateway.calls == []


def test_bulk_time_and_roster_date_follow_the_viewers_zone(gateway, context, clock, roster_of):
    clock.now = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)
    gateway.rosters = [roster_of(A=PENDING)]
    gateway.bulk_result = Ok(BulkOutcome(succeeded=frozenset({"A"})))
    engine = RosterEngine(gateway, context, clock=clock)
    engine.use_timezone(timezone(timedelta(hours=5, minutes=30)))

    engine.load()
    engine.toggle("A")
    engine.global_check_in_time = "09:00"
    engine.bulk_check_in()

    assert engine.roster_date == date(2026, 3, 3)
    assert ("bulk_check_in", "ORG-1", ["A"], "2026-03-03T03:30:00.000Z") in gateway.calls
