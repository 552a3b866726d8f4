from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Generic, Iterable, Iterator, Optional, TypeVar, Union

from ..core.enums import AttendanceStatus, SessionState

T = TypeVar("T")


@dataclass(frozen=True)
class Session:
    """One subject's attendance for the day."""

    subject_id: str
    state: SessionState = SessionState.NOT_CHECKED_IN
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    subject_name: Optional[str] = None
    is_absent: bool = False

    @property
    def is_checked_in(self) -> bool:
        return self.state == SessionState.CHECKED_IN

    @property
    def is_checked_out(self) -> bool:
        return self.state == SessionState.CHECKED_OUT

    @property
    def selectable(self) -> bool:
        return self.state != SessionState.CHECKED_OUT and not self.is_absent


class Roster:
    """Ordered reportee sessions keyed by subject id.

    Built only from a successful fetch and never patched afterwards.
    """

    def __init__(self, sessions: Iterable[Session] = ()):
        self._by_id: dict[str, Session] = {}
        for s in sessions:
            self._by_id[s.subject_id] = s

    @classmethod
    def from_sessions(cls, sessions: Iterable[Session]) -> "Roster":
        return cls(sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, subject_id: object) -> bool:
        return subject_id in self._by_id

    def get(self, subject_id: str) -> Optional[Session]:
        return self._by_id.get(subject_id)

    @property
    def subject_ids(self) -> list[str]:
        return list(self._by_id)

    def selectable(self) -> list[Session]:
        return [s for s in self if s.selectable]

    def pending(self) -> list[Session]:
        return [s for s in self if s.state == SessionState.NOT_CHECKED_IN and not s.is_absent]

    def checked_in(self) -> list[Session]:
        return [s for s in self if s.state == SessionState.CHECKED_IN and not s.is_absent]


@dataclass(frozen=True)
class BulkOutcome:
    succeeded: frozenset[str] = frozenset()
    failed: frozenset[str] = frozenset()
    message: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """History / admin row as reported by the backend."""

    record_id: Optional[str]
    employee_id: Optional[str]
    work_date: Optional[date]
    check_in: Optional[datetime]
    check_out: Optional[datetime]
    hours_worked: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.UNKNOWN


class NotFound:
    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound()


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    error_message: str
    status_code: Optional[int] = None
    ok: bool = field(default=False, init=False)


GatewayResult = Union[Ok[T], Err]
