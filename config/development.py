import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

HRMS_API_URL = os.getenv("HRMS_API_URL", "http://localhost:5000/api")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15"))

ROSTER_INCLUDE_ALL = bool(int(os.getenv("ROSTER_INCLUDE_ALL", "1")))

DEBUG = True
