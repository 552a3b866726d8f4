import os

SECRET_KEY = "test-secret"

HRMS_API_URL = os.getenv("HRMS_API_URL", "http://hrms.test/api")
REQUEST_TIMEOUT = 5.0

ROSTER_INCLUDE_ALL = True

DEBUG = False
TESTING = True
