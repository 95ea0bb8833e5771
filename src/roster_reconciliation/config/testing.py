SECRET_KEY = "test-secret"

STORE_BACKEND = "memory"

DB_CONFIG = {
    "host": "localhost",
    "port": 3306,
    "user": "root",
    "password": "",
    "database": "roster_test",
}

ORGANIZATION_ID = "test-org"

# The ticker is driven by hand in tests.
REFRESH_INTERVAL_SECONDS = 0
LATE_GRACE_MINUTES = 0
DAILY_TARGET_HOURS = 8
MAX_BREAK_MINUTES = 60

LOG_LEVEL = "WARNING"
DEBUG = False
TESTING = True

AUTO_INIT_DB = False
