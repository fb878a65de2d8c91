import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_payroll"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Payroll and leave defaults
DEFAULT_DEDUCTION_PERCENTAGE = float(os.getenv("DEFAULT_DEDUCTION_PERCENTAGE", "100"))
DEFAULT_PROBATION_MONTHS = int(os.getenv("DEFAULT_PROBATION_MONTHS", "3"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")
MAX_ROLLOVER_DAYS = float(os.getenv("MAX_ROLLOVER_DAYS", "5"))

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
