"""Example: drive the attendance services without Flask.

Controllers are a thin layer; the state machine and roster engine can be
used directly with an in-memory login store.
"""

import importlib
import os

from config import get_settings_module

from src.hrms_attendance.hrms_attendance.attendance.gateway import AttendanceGateway
from src.hrms_attendance.hrms_attendance.attendance.service import AttendanceDashboard
from src.hrms_attendance.hrms_attendance.auth.context import ContextReader
from src.hrms_attendance.hrms_attendance.auth.store import DictStore
from src.hrms_attendance.hrms_attendance.container import resolve_api_url


def main():
    settings = importlib.import_module(get_settings_module())
    cookies = DictStore({"authToken": os.environ["HRMS_TOKEN"]})
    context = ContextReader(cookies)
    gateway = AttendanceGateway(resolve_api_url(settings.HRMS_API_URL), context.token)

    dashboard = AttendanceDashboard(gateway, context)
    try:
        print(dashboard.self_session.refresh())
        print(dashboard.self_session.state, dashboard.self_session.timer.display())

        print(dashboard.roster.load())
        for s in dashboard.roster.roster:
            print(s.subject_id, s.subject_name, s.state.value)
    finally:
        dashboard.close()


if __name__ == "__main__":
    main()
