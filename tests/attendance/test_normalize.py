from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.hrms_attendance.hrms_attendance.attendance import normalize
from src.hrms_attendance.hrms_attendance.attendance.model import NOT_FOUND
from src.hrms_attendance.hrms_attendance.core.enums import AttendanceStatus, SessionState
from src.hrms_attendance.hrms_attendance.core.exceptions import MalformedPayloadError

ROSTER = {
    "employees": [
        {"employeeId": "A", "employeeName": "Ann", "hasCheckedIn": False, "hasCheckedOut": False},
        {"employeeId": "B", "employeeName": "Bo", "hasCheckedIn": True, "hasCheckedOut": False,
         "checkInTime": "2026-03-02T08:00:00.000Z"},
        {"employeeId": "C", "hasCheckedIn": True, "hasCheckedOut": True,
         "checkInTime": "2026-03-02T08:00:00.000Z", "checkOutTime": "2026-03-02T17:00:00.000Z"},
        {"employeeId": "D", "employeeName": "Dee", "status": "Absent"},
    ]
}


@pytest.mark.parametrize("payload", [ROSTER, {"data": ROSTER}])
def test_roster_accepts_bare_and_wrapped_payloads(payload):
    roster = normalize.roster_from_payload(payload)

    assert roster.subject_ids == ["A", "B", "C", "D"]
    assert roster.get("A").state == SessionState.NOT_CHECKED_IN
    assert roster.get("B").state == SessionState.CHECKED_IN
    assert roster.get("B").check_in_time == datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
    assert roster.get("C").state == SessionState.CHECKED_OUT
    assert roster.get("C").subject_name == "Unknown"
    assert roster.get("D").is_absent
    assert [s.subject_id for s in roster.selectable()] == ["A", "B"]


def test_checked_out_is_never_also_checked_in():
    roster = normalize.roster_from_payload(ROSTER)
    c = roster.get("C")

    assert c.is_checked_out
    assert not c.is_checked_in


def test_roster_without_employees_is_malformed():
    with pytest.raises(MalformedPayloadError):
        normalize.roster_from_payload({"data": {"rows": []}})


def test_status_message_means_no_record_today():
    assert normalize.status_from_payload({"message": "No attendance for today"}, "E-1") is NOT_FOUND
    assert normalize.status_from_payload({"success": True, "data": None, "message": "none"}, "E-1") is NOT_FOUND


def test_status_uses_legacy_field_names():
    session = normalize.status_from_payload({"data": {"checkIn": "2026-03-02T08:00:00Z"}}, "E-1")

    assert session.subject_id == "E-1"
    assert session.state == SessionState.CHECKED_IN


def test_bulk_outcome_infers_succeeded_from_failed():
    outcome = normalize.bulk_outcome_from_payload(
        {"data": {"failed": [{"employeeId": "D", "reason": "already checked out"}]}},
        frozenset({"C", "D"}),
    )

    assert outcome.succeeded == frozenset({"C"})
    assert outcome.failed == frozenset({"D"})


def test_bulk_outcome_without_detail_counts_as_full_success():
    outcome = normalize.bulk_outcome_from_payload(None, frozenset({"A"}))

    assert outcome.succeeded == frozenset({"A"})
    assert not outcome.failed


def test_records_parse_status_and_dates():
    records = normalize.records_from_payload({
        "data": [{"id": 1, "employeeId": "E-1", "date": "2026-03-01T00:00:00.000Z", "status": "late",
                  "checkIn": "2026-03-01T09:40:00Z", "hoursWorked": "7.5"}]
    })

    assert records[0].status == AttendanceStatus.LATE
    assert records[0].work_date.isoformat() == "2026-03-01"
    assert records[0].record_id == "1"
    assert records[0].hours_worked == "7.5"
