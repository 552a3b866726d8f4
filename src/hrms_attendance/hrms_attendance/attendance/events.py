from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelfAttendanceChanged:
    """Emitted after the viewer's own check-in/check-out succeeded."""

    subject_id: str
    checked_in: bool


@dataclass(frozen=True)
class RosterReloaded:
    size: int


class EventBus:
    """One-way notifications between dashboard parts."""

    def __init__(self):
        self._handlers: DefaultDict[type, List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event) -> None:
        for handler in list(self._handlers[type(event)]):
            try:
                handler(event)
            except Exception:
                # The publisher already committed its own transition.
                logger.exception("handler for %s failed", type(event).__name__)
