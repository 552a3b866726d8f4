from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests
from flask import session

from .attendance.gateway import AttendanceGateway
from .attendance.service import AttendanceDashboard, DashboardRegistry, HistoryService
from .attendance.timer import Ticker
from .auth.context import ContextReader
from .auth.store import KeyValueStore, MappingStore
from .common.datetime_utils import Clock, now_local
from .core.constants import DEFAULT_REQUEST_TIMEOUT
from .core.exceptions import ConfigurationError


def resolve_api_url(value: Optional[str]) -> str:
    """Validate the backend base URL and drop a trailing slash."""
    if not value or value == "undefined":
        raise ConfigurationError("API URL is not configured. Please set HRMS_API_URL.")
    return value[:-1] if value.endswith("/") else value


@dataclass(frozen=True)
class Container:
    context: ContextReader
    gateway: AttendanceGateway
    dashboards: DashboardRegistry
    history_service: HistoryService


def build_container(
    *,
    api_url: Optional[str],
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    include_all: bool = True,
    cookies: Optional[KeyValueStore] = None,
    local: Optional[KeyValueStore] = None,
    http: Optional[requests.Session] = None,
    clock: Clock = now_local,
    ticker_factory=None,
) -> Container:
    base_url = resolve_api_url(api_url)

    # Flask's signed session cookie is the cookie store. A server has no local
    # storage shared per viewer, so the fallback store is only used when given.
    context = ContextReader(cookies or MappingStore(lambda: session), local)
    gateway = AttendanceGateway(base_url, context.token, http=http, timeout=timeout)

    def make_dashboard() -> AttendanceDashboard:
        ticker: Optional[Ticker] = ticker_factory() if ticker_factory else None
        return AttendanceDashboard(gateway, context, clock=clock, ticker=ticker, include_all=include_all)

    return Container(
        context=context,
        gateway=gateway,
        dashboards=DashboardRegistry(make_dashboard),
        history_service=HistoryService(gateway, context, clock=clock),
    )
