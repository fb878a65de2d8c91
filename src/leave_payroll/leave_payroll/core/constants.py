"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PROBATION_MONTHS = 3
# Probation windows are measured in flat 30-day months, not calendar months.
PROBATION_DAYS_PER_MONTH = 30

DEFAULT_DEDUCTION_PERCENTAGE = 100.0
DEFAULT_CURRENCY = "INR"
DEFAULT_MAX_ROLLOVER_DAYS = 5

NO_LEAVE_TYPE_NAME = "none"
DEFAULT_LIST_LIMIT = 500
