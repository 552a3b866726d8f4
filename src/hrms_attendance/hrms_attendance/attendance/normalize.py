"""Adapters from backend payloads to internal types.

The backend answers either with the bare payload or wrapped as
``{"data": payload}``. Each endpoint family gets one adapter so that
ambiguity is resolved here and nowhere else.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..core.enums import AttendanceStatus, SessionState
from ..core.exceptions import MalformedPayloadError
from .model import NOT_FOUND, AttendanceRecord, BulkOutcome, Roster, Session, NotFound


def unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload and payload["data"] is not None:
        return payload["data"]
    return payload


def _first(record: dict, *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _is_absent(record: dict) -> bool:
    status = str(record.get("status") or "").lower()
    return status == "absent" or bool(record.get("isAbsent"))


def _state(has_in: bool, has_out: bool) -> SessionState:
    if has_out:
        return SessionState.CHECKED_OUT
    if has_in:
        return SessionState.CHECKED_IN
    return SessionState.NOT_CHECKED_IN


def session_from_payload(payload: Any, subject_id: Optional[str] = None) -> Session:
    """Single-subject check-in/check-out/status record."""
    record = unwrap(payload)
    if record is None:
        record = {}
    if not isinstance(record, dict):
        raise MalformedPayloadError("expected an attendance record object")

    check_in_raw = _first(record, "checkInTime", "checkIn")
    check_out_raw = _first(record, "checkOutTime", "checkOut")
    sid = _first(record, "employeeId", "subjectId") or subject_id
    if sid is None:
        raise MalformedPayloadError("attendance record has no employee id")

    return Session(
        subject_id=str(sid),
        state=_state(bool(check_in_raw), bool(check_out_raw)),
        check_in_time=parse_iso_datetime(check_in_raw),
        check_out_time=parse_iso_datetime(check_out_raw),
        subject_name=_first(record, "employeeName", "name"),
        is_absent=_is_absent(record),
    )


def status_from_payload(payload: Any, subject_id: str) -> Union[Session, NotFound]:
    """``my-status``: a record, or ``{"message": ...}`` when none exists today."""
    record = unwrap(payload)
    if record is None:
        return NOT_FOUND
    if isinstance(record, dict) and "message" in record and not _first(record, "checkInTime", "checkIn"):
        return NOT_FOUND
    return session_from_payload(record, subject_id=subject_id)


def roster_from_payload(payload: Any) -> Roster:
    body = unwrap(payload)
    if isinstance(body, list):
        employees = body
    elif isinstance(body, dict) and isinstance(body.get("employees"), list):
        employees = body["employees"]
    else:
        raise MalformedPayloadError("expected an 'employees' list")

    sessions = []
    for emp in employees:
        if not isinstance(emp, dict) or not emp.get("employeeId"):
            raise MalformedPayloadError("roster entry without employeeId")
        has_in = bool(emp.get("hasCheckedIn")) or bool(emp.get("checkInTime"))
        has_out = bool(emp.get("hasCheckedOut")) or bool(emp.get("checkOutTime"))
        sessions.append(
            Session(
                subject_id=str(emp["employeeId"]),
                state=_state(has_in, has_out),
                check_in_time=parse_iso_datetime(emp.get("checkInTime")),
                check_out_time=parse_iso_datetime(emp.get("checkOutTime")),
                subject_name=emp.get("employeeName") or "Unknown",
                is_absent=_is_absent(emp),
            )
        )
    return Roster.from_sessions(sessions)


def _id_set(values: Any) -> frozenset[str]:
    if not values:
        return frozenset()
    if not isinstance(values, list):
        raise MalformedPayloadError("expected a list of employee ids")
    ids = set()
    for v in values:
        # Some backends report failures as {"employeeId": ..., "reason": ...}.
        if isinstance(v, dict):
            v = v.get("employeeId")
        if v:
            ids.add(str(v))
    return frozenset(ids)


def bulk_outcome_from_payload(payload: Any, requested: frozenset[str]) -> BulkOutcome:
    body = unwrap(payload)
    if body is None or not isinstance(body, dict):
        # A bare success with no detail: everything requested went through.
        return BulkOutcome(succeeded=requested)
    failed = _id_set(body.get("failed"))
    if "succeeded" in body:
        succeeded = _id_set(body.get("succeeded"))
    else:
        succeeded = requested - failed
    message = body.get("message") if isinstance(body.get("message"), str) else None
    return BulkOutcome(succeeded=succeeded, failed=failed, message=message)


def _status(value: Any) -> AttendanceStatus:
    text = str(value or "").strip().lower()
    for status in AttendanceStatus:
        if status.value.lower() == text:
            return status
    return AttendanceStatus.UNKNOWN


def record_from_payload(record: dict) -> AttendanceRecord:
    raw_date = _first(record, "date", "workDate")
    try:
        work_date = parse_iso_date(str(raw_date)[:10]) if raw_date else None
    except ValueError:
        work_date = None
    record_id = _first(record, "id", "_id")
    employee_id = _first(record, "employeeId")
    hours = _first(record, "hoursWorked")
    return AttendanceRecord(
        record_id=str(record_id) if record_id is not None else None,
        employee_id=str(employee_id) if employee_id is not None else None,
        work_date=work_date,
        check_in=parse_iso_datetime(_first(record, "checkInTime", "checkIn")),
        check_out=parse_iso_datetime(_first(record, "checkOutTime", "checkOut")),
        hours_worked=str(hours) if hours is not None else None,
        status=_status(record.get("status")),
    )


def records_from_payload(payload: Any) -> list[AttendanceRecord]:
    body = unwrap(payload)
    if isinstance(body, dict):
        body = body.get("records", body.get("attendance"))
    if not isinstance(body, list):
        raise MalformedPayloadError("expected a list of attendance records")
    return [record_from_payload(r) for r in body if isinstance(r, dict)]
