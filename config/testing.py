import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_payroll_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

DEFAULT_DEDUCTION_PERCENTAGE = 100.0
DEFAULT_PROBATION_MONTHS = 3
DEFAULT_CURRENCY = "INR"
MAX_ROLLOVER_DAYS = 5.0

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
