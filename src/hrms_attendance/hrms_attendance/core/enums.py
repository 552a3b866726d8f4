from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Viewer role used to decide which setup flow applies."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class SessionState(str, Enum):
    """Attendance state of one subject for one day.

    CHECKED_OUT is terminal: no transition leaves it.
    """

    NOT_CHECKED_IN = "yet-to-check-in"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"


class AttendanceStatus(str, Enum):
    """Status label the backend attaches to history records."""

    PRESENT = "Present"
    LATE = "Late"
    LEAVE = "Leave"
    WEEKEND = "Weekend"
    ABSENT = "Absent"
    UNKNOWN = "Unknown"


class SelectMode(str, Enum):
    ALL = "all"
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class BulkKind(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"
