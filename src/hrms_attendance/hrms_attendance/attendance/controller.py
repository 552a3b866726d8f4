from __future__ import annotations

import logging
from dataclasses import asdict
from functools import wraps
from typing import Optional

from flask import Flask, g, jsonify, request

from ..auth.context import AuthContext
from ..common.datetime_utils import parse_iso_date, resolve_timezone
from ..core.constants import DEFAULT_HISTORY_DAYS
from ..core.enums import SelectMode
from ..core.exceptions import ValidationError
from ..container import Container
from .model import Roster, Session
from .roster import RosterEngine
from .self_session import ActionResult

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _session_json(s: Session) -> dict:
    return {
        "employeeId": s.subject_id,
        "employeeName": s.subject_name,
        "status": "absent" if s.is_absent else s.state.value,
        "isCheckedIn": s.is_checked_in,
        "isCheckedOut": s.is_checked_out,
        "isAbsent": s.is_absent,
        "selectable": s.selectable,
        "checkInTime": _iso(s.check_in_time),
        "checkOutTime": _iso(s.check_out_time),
    }


def _roster_json(engine: RosterEngine) -> dict:
    roster: Roster = engine.roster
    selection = engine.selection
    return {
        "date": _iso(engine.roster_date),
        "reportees": [dict(_session_json(s), selected=s.subject_id in selection) for s in roster],
        "selectedIds": sorted(selection),
        "selectedPending": engine.selected_pending(),
        "selectedCheckedIn": engine.selected_checked_in(),
        "showBulkCheckIn": engine.show_bulk_check_in,
        "showBulkCheckOut": engine.show_bulk_check_out,
        "allSelected": engine.cohort_fully_selected(SelectMode.ALL),
        "allPendingSelected": engine.cohort_fully_selected(SelectMode.CHECKIN),
        "allCheckedInSelected": engine.cohort_fully_selected(SelectMode.CHECKOUT),
        "globalCheckInTime": engine.global_check_in_time,
        "globalCheckOutTime": engine.global_check_out_time,
        "checkInLoading": engine.check_in_loading,
    }


def _viewer_timezone(source):
    """``timeZone`` (IANA) or ``utcOffsetMinutes`` from a JSON body or query string."""
    return resolve_timezone(source.get("timeZone"), source.get("utcOffsetMinutes"))


def _action_response(result: ActionResult, payload: dict):
    if result.ok:
        return jsonify({"success": True, "message": result.message, **payload}), 200
    if result.skipped:
        return jsonify({"success": False, "skipped": True, "message": result.message, **payload}), 409
    return jsonify({"success": False, "error": result.message, **payload}), 502


def register(app: Flask, container: Container) -> None:
    def context_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            ctx = container.context.resolve_context()
            if not ctx:
                return jsonify({"success": False, "error": "Authentication required"}), 401
            g.auth = ctx
            return view(*args, **kwargs)

        return wrapper

    def _dashboard(source=None):
        auth: AuthContext = g.auth
        dashboard = container.dashboards.for_subject(auth.subject_id)
        tz = _viewer_timezone(source) if source is not None else None
        if tz is not None:
            dashboard.use_timezone(tz)
        return dashboard

    @app.errorhandler(ValidationError)
    def _validation_error(e: ValidationError):
        return jsonify({"success": False, "error": str(e)}), 400

    @app.route("/session", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or {}
        token = (data.get("token") or "").strip()
        if not token:
            raise ValidationError("token is required")
        container.context.store_login(
            token=token,
            org_id=data.get("orgId"),
            subject_id=data.get("employeeId"),
            role=data.get("role"),
        )
        ctx = container.context.resolve_context()
        return jsonify({
            "success": True,
            "complete": bool(ctx),
            "requiresSetup": container.context.requires_setup(ctx.role if ctx else None),
        }), 200

    @app.route("/session", methods=["DELETE"], endpoint="logout")
    def logout():
        ctx = container.context.resolve_context()
        if ctx:
            container.dashboards.discard(ctx.subject_id)
        container.context.clear()
        return jsonify({"success": True}), 200

    def _self_json(dashboard) -> dict:
        me = dashboard.self_session
        return {
            "state": "absent" if me.is_absent else me.state.value,
            "checkInTime": _iso(me.check_in_time),
            "checkOutTime": _iso(me.check_out_time),
            "loginTime": me.login_time,
            "logoutTime": me.logout_time,
            "elapsed": me.timer.display(),
            "elapsedSeconds": me.timer.seconds,
            "canTransition": me.can_transition,
            "loading": me.busy,
        }

    @app.route("/api/attendance/me", methods=["GET"], endpoint="attendance_me")
    @context_required
    def attendance_me():
        dashboard = _dashboard(request.args)
        result = dashboard.self_session.refresh()
        return _action_response(result, _self_json(dashboard))

    @app.route("/api/attendance/me/toggle", methods=["POST"], endpoint="attendance_toggle")
    @context_required
    def attendance_toggle():
        data = request.get_json(silent=True) or {}
        dashboard = _dashboard(data)
        if data.get("loginTime"):
            dashboard.self_session.login_time = data["loginTime"]
        if data.get("logoutTime"):
            dashboard.self_session.logout_time = data["logoutTime"]
        result = dashboard.self_session.toggle()
        return _action_response(result, _self_json(dashboard))

    @app.route("/api/attendance/me/history", methods=["GET"], endpoint="attendance_history")
    @context_required
    def attendance_history():
        days = request.args.get("days", type=int) or DEFAULT_HISTORY_DAYS
        result = container.history_service.history_rows(days=days, tz=_viewer_timezone(request.args))
        if not result.ok:
            return jsonify({"success": False, "error": result.error_message}), 502
        return jsonify({"success": True, "rows": [asdict(r) for r in result.value]}), 200

    @app.route("/api/team/roster", methods=["GET"], endpoint="team_roster")
    @context_required
    def team_roster():
        engine = _dashboard(request.args).roster
        raw_date = request.args.get("date")
        try:
            day = parse_iso_date(raw_date) if raw_date else None
        except ValueError:
            raise ValidationError(f"Invalid date '{raw_date}', expected YYYY-MM-DD")
        result = engine.load(day)
        return _action_response(result, _roster_json(engine))

    @app.route("/api/team/selection/toggle", methods=["POST"], endpoint="team_toggle")
    @context_required
    def team_toggle():
        engine = _dashboard().roster
        data = request.get_json(silent=True) or {}
        employee_id = str(data.get("employeeId") or "")
        if not employee_id:
            raise ValidationError("employeeId is required")
        engine.toggle(employee_id)
        return jsonify({"success": True, **_roster_json(engine)}), 200

    @app.route("/api/team/selection/select-all", methods=["POST"], endpoint="team_select_all")
    @context_required
    def team_select_all():
        engine = _dashboard().roster
        data = request.get_json(silent=True) or {}
        engine.select_all(data.get("mode") or "all")
        return jsonify({"success": True, **_roster_json(engine)}), 200

    @app.route("/api/team/times", methods=["PUT"], endpoint="team_times")
    @context_required
    def team_times():
        data = request.get_json(silent=True) or {}
        engine = _dashboard(data).roster
        if data.get("checkInTime"):
            engine.global_check_in_time = data["checkInTime"]
        if data.get("checkOutTime"):
            engine.global_check_out_time = data["checkOutTime"]
        return jsonify({"success": True, **_roster_json(engine)}), 200

    @app.route("/api/team/bulk-check-in", methods=["POST"], endpoint="team_bulk_check_in")
    @context_required
    def team_bulk_check_in():
        engine = _dashboard(request.get_json(silent=True) or {}).roster
        result = engine.bulk_check_in()
        if not result.ok and not result.skipped:
            logger.warning("Bulk check-in failed: %s", result.message)
        return _action_response(result, _roster_json(engine))

    @app.route("/api/team/bulk-check-out", methods=["POST"], endpoint="team_bulk_check_out")
    @context_required
    def team_bulk_check_out():
        engine = _dashboard(request.get_json(silent=True) or {}).roster
        result = engine.bulk_check_out()
        if not result.ok and not result.skipped:
            logger.warning("Bulk check-out failed: %s", result.message)
        return _action_response(result, _roster_json(engine))
