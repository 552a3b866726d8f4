"""Request layer for the attendance endpoints of the HRMS backend.

Every operation returns ``Ok(value)`` or ``Err(message)``. Transport errors,
non-2xx answers and payloads of unknown shape are folded into ``Err`` here,
so nothing above this module has to handle ``requests`` exceptions.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable, Optional

import requests

from ..core import constants
from ..core.exceptions import MalformedPayloadError
from . import normalize
from .model import Err, GatewayResult, Ok

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


def _error_from_body(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def _with_time(body: dict, key: str, iso_timestamp: Optional[str]) -> dict:
    # An omitted time lets the server stamp the transition with its own clock.
    if iso_timestamp:
        body[key] = iso_timestamp
    return body


class AttendanceGateway:
    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        *,
        http: Optional[requests.Session] = None,
        timeout: float = constants.DEFAULT_REQUEST_TIMEOUT,
    ):
        self._base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._http = http or requests.Session()
        self._timeout = timeout

    def _url(self, org_id: str, path: str) -> str:
        return f"{self._base_url}/org/{org_id}/{constants.ATTENDANCE_SEGMENT}/{path}"

    def _call(
        self,
        method: str,
        org_id: str,
        path: str,
        *,
        default_error: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> GatewayResult[Any]:
        # Token is re-read per request so a fresh login is always used.
        token = self._token_provider()
        if not token or not org_id:
            logger.warning("No auth token or organization for API request: %s", path)
            return Err("Authentication required")

        url = self._url(org_id, path)
        logger.debug("[AttendanceGateway] %s %s with token: %s...", method, url, token[: constants.TOKEN_LOG_PREFIX])
        try:
            resp = self._http.request(
                method,
                url,
                json=body,
                params=params,
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            return Err(str(e) or default_error)

        undecodable = False
        try:
            payload = resp.json() if resp.content else None
        except ValueError:
            payload, undecodable = None, True

        if not resp.ok:
            logger.warning("%s %s -> %s %s", method, url, resp.status_code, payload)
            message = _error_from_body(payload) or resp.reason or default_error
            return Err(message, status_code=resp.status_code)

        if undecodable:
            logger.error("%s %s returned a non-JSON body", method, url)
            return Err(default_error, status_code=resp.status_code)

        if isinstance(payload, dict) and payload.get("success") is False:
            return Err(_error_from_body(payload) or default_error, status_code=resp.status_code)

        return Ok(payload)

    @staticmethod
    def _adapt(result: GatewayResult[Any], adapter: Callable[[Any], Any], default_error: str) -> GatewayResult[Any]:
        if not result.ok:
            return result
        try:
            return Ok(adapter(result.value))
        except MalformedPayloadError as e:
            logger.error("%s: malformed payload (%s)", default_error, e)
            return Err(default_error)

    # --- self ---

    def check_in(
        self, org_id: str, iso_timestamp: Optional[str] = None, *, subject_id: Optional[str] = None
    ) -> GatewayResult:
        """Self check-in; without a timestamp the server uses its own clock."""
        body = {"checkInTime": iso_timestamp} if iso_timestamp else None
        result = self._call("POST", org_id, "check-in", body=body, default_error="Check-in failed")
        return self._adapt(
            result,
            lambda payload: normalize.session_from_payload(payload, subject_id=subject_id),
            "Check-in failed",
        )

    def check_out(
        self, org_id: str, iso_timestamp: Optional[str] = None, *, subject_id: Optional[str] = None
    ) -> GatewayResult:
        body = {"checkOutTime": iso_timestamp} if iso_timestamp else None
        result = self._call("POST", org_id, "check-out", body=body, default_error="Check-out failed")
        return self._adapt(
            result,
            lambda payload: normalize.session_from_payload(payload, subject_id=subject_id),
            "Check-out failed",
        )

    def get_self_status(self, org_id: str, subject_id: str) -> GatewayResult:
        result = self._call("GET", org_id, "my-status", default_error="Failed to fetch status")
        return self._adapt(
            result,
            lambda payload: normalize.status_from_payload(payload, subject_id),
            "Failed to fetch status",
        )

    def get_my_history(
        self, org_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> GatewayResult:
        params = {}
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            params["endDate"] = end_date.isoformat()
        result = self._call("GET", org_id, "my-history", params=params or None, default_error="Failed to fetch history")
        return self._adapt(result, normalize.records_from_payload, "Failed to fetch history")

    # --- manager ---

    def admin_check_in(self, org_id: str, employee_id: str, iso_timestamp: Optional[str] = None) -> GatewayResult:
        result = self._call(
            "POST",
            org_id,
            "manager-checkin",
            body=_with_time({"employeeId": employee_id}, "checkInTime", iso_timestamp),
            default_error="Failed to check in employee",
        )
        return self._adapt(
            result,
            lambda payload: normalize.session_from_payload(payload, subject_id=employee_id),
            "Failed to check in employee",
        )

    def admin_check_out(self, org_id: str, employee_id: str, iso_timestamp: Optional[str] = None) -> GatewayResult:
        result = self._call(
            "POST",
            org_id,
            "manager-checkout",
            body=_with_time({"employeeId": employee_id}, "checkOutTime", iso_timestamp),
            default_error="Failed to check out employee",
        )
        return self._adapt(
            result,
            lambda payload: normalize.session_from_payload(payload, subject_id=employee_id),
            "Failed to check out employee",
        )

    def _bulk(self, org_id: str, path: str, time_key: str, subject_ids: Iterable[str], iso_timestamp: str, verb: str):
        default_error = f"Bulk {verb} failed"
        requested = frozenset(str(s) for s in subject_ids)
        if not requested:
            return Err("No employees selected")

        logger.info("Bulk %s request: org=%s employees=%d at %s", verb, org_id, len(requested), iso_timestamp)
        result = self._call(
            "POST",
            org_id,
            path,
            body={"employeeIds": sorted(requested), time_key: iso_timestamp},
            default_error=default_error,
        )
        result = self._adapt(
            result,
            lambda payload: normalize.bulk_outcome_from_payload(payload, requested),
            default_error,
        )
        if result.ok and result.value.failed:
            outcome = result.value
            # Partial failure is reported as a failure of the whole call.
            logger.warning("Bulk %s partially failed: %s", verb, sorted(outcome.failed))
            return Err(
                outcome.message
                or f"{default_error} for {len(outcome.failed)} of {len(requested)} employee(s)"
            )
        return result

    def bulk_check_in(self, org_id: str, subject_ids: Iterable[str], iso_timestamp: str) -> GatewayResult:
        return self._bulk(org_id, "bulk-manager-checkin", "checkInTime", subject_ids, iso_timestamp, "check-in")

    def bulk_check_out(self, org_id: str, subject_ids: Iterable[str], iso_timestamp: str) -> GatewayResult:
        return self._bulk(org_id, "bulk-manager-checkout", "checkOutTime", subject_ids, iso_timestamp, "check-out")

    def get_roster_status(self, org_id: str, day: Optional[date] = None, include_all: bool = False) -> GatewayResult:
        params = {}
        if day:
            params["date"] = day.isoformat()
        if include_all:
            params["includeAll"] = "true"
        result = self._call(
            "GET", org_id, "pending-checkins", params=params or None, default_error="Failed to fetch pending check-ins"
        )
        return self._adapt(result, normalize.roster_from_payload, "Failed to fetch pending check-ins")

    # --- admin reports ---

    def get_daily_attendance(self, org_id: str, day: Optional[date] = None) -> GatewayResult:
        params = {"date": day.isoformat()} if day else None
        result = self._call("GET", org_id, "admin/daily", params=params, default_error="Failed to fetch daily attendance")
        return self._adapt(result, normalize.records_from_payload, "Failed to fetch daily attendance")

    def get_all_attendance(self, org_id: str) -> GatewayResult:
        result = self._call("GET", org_id, "admin/all", default_error="Failed to fetch all attendance")
        return self._adapt(result, normalize.records_from_payload, "Failed to fetch all attendance")

    def get_employee_history(
        self,
        org_id: str,
        employee_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> GatewayResult:
        params = {}
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            params["endDate"] = end_date.isoformat()
        result = self._call(
            "GET",
            org_id,
            f"admin/employee/{employee_id}",
            params=params or None,
            default_error="Failed to fetch employee history",
        )
        return self._adapt(result, normalize.records_from_payload, "Failed to fetch employee history")

    def search_attendance(
        self,
        org_id: str,
        query: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> GatewayResult:
        params = {}
        if query:
            params["q"] = query
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            params["endDate"] = end_date.isoformat()
        result = self._call(
            "GET", org_id, "admin/search", params=params or None, default_error="Failed to search attendance"
        )
        return self._adapt(result, normalize.records_from_payload, "Failed to search attendance")
