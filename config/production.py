import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_payroll"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DEFAULT_DEDUCTION_PERCENTAGE = float(os.getenv("DEFAULT_DEDUCTION_PERCENTAGE", "100"))
DEFAULT_PROBATION_MONTHS = int(os.getenv("DEFAULT_PROBATION_MONTHS", "3"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")
MAX_ROLLOVER_DAYS = float(os.getenv("MAX_ROLLOVER_DAYS", "5"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
