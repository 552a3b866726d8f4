"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_REQUEST_TIMEOUT = 15
DEFAULT_HISTORY_DAYS = 30
TOKEN_LOG_PREFIX = 20
TICK_INTERVAL_SECONDS = 1.0

ATTENDANCE_SEGMENT = "attendance"

# Side-channel keys (cookies, mirrored in local storage).
AUTH_TOKEN_KEY = "authToken"
ORG_ID_KEY = "currentOrgId"
EMPLOYEE_ID_KEY = "hrms_user_id"
ROLE_KEY = "role"
SETUP_COMPLETED_KEY = "setupCompleted"
EMPLOYEE_SETUP_COMPLETED_KEY = "employeeSetupCompleted"

AUTH_KEYS = (
    "currentOrgId",
    "currentLocationId",
    "currentDepartmentId",
    "setupCompleted",
    "employeeSetupCompleted",
    "organizationSetup",
    "authToken",
    "role",
    "hrms_user_id",
    "hrms_user_email",
    "hrms_user_firstName",
    "hrms_user_lastName",
)
