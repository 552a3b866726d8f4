from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from src.hrms_attendance.hrms_attendance.attendance.model import Err, Ok, Roster, Session
from src.hrms_attendance.hrms_attendance.auth.context import ContextReader
from src.hrms_attendance.hrms_attendance.auth.store import DictStore
from src.hrms_attendance.hrms_attendance.core.enums import SessionState


class ManualClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeGateway:
    """In-memory stand-in for AttendanceGateway; records every call."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.rosters: list = []
        self.status_result = None
        self.check_in_result = None
        self.check_out_result = None
        self.bulk_result = None
        self.history_result = None

    def get_roster_status(self, org_id, day=None, include_all=False):
        self.calls.append(("roster", org_id, day, include_all))
        nxt = self.rosters.pop(0) if len(self.rosters) > 1 else self.rosters[0]
        return nxt if isinstance(nxt, Err) else Ok(nxt)

    def get_self_status(self, org_id, subject_id):
        self.calls.append(("status", org_id, subject_id))
        return self.status_result

    def check_in(self, org_id, iso_timestamp=None, *, subject_id=None):
        self.calls.append(("check_in", org_id, iso_timestamp))
        return self.check_in_result or Ok(Session(subject_id=subject_id))

    def check_out(self, org_id, iso_timestamp=None, *, subject_id=None):
        self.calls.append(("check_out", org_id, iso_timestamp))
        return self.check_out_result or Ok(Session(subject_id=subject_id))

    def bulk_check_in(self, org_id, subject_ids, iso_timestamp):
        self.calls.append(("bulk_check_in", org_id, sorted(subject_ids), iso_timestamp))
        return self.bulk_result

    def bulk_check_out(self, org_id, subject_ids, iso_timestamp):
        self.calls.append(("bulk_check_out", org_id, sorted(subject_ids), iso_timestamp))
        return self.bulk_result

    def get_my_history(self, org_id, start_date=None, end_date=None):
        self.calls.append(("history", org_id, start_date, end_date))
        return self.history_result

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


def make_roster(**states: SessionState) -> Roster:
    return Roster.from_sessions(Session(subject_id=sid, state=state, subject_name=sid) for sid, state in states.items())


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2026, 3, 2, 10, 30, 0, tzinfo=timezone.utc))


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def cookies() -> DictStore:
    token = jwt.encode({"sub": "MGR-1", "orgId": "ORG-1", "role": "admin"}, "secret", algorithm="HS256")
    return DictStore({"authToken": token})


@pytest.fixture
def context(cookies) -> ContextReader:
    return ContextReader(cookies)


@pytest.fixture
def roster_of():
    return make_roster
