import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

# Must be set explicitly; the app refuses to start without it.
HRMS_API_URL = os.getenv("HRMS_API_URL", "")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))

ROSTER_INCLUDE_ALL = bool(int(os.getenv("ROSTER_INCLUDE_ALL", "1")))

DEBUG = False
