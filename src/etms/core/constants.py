"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LATE_CUTOFF = "09:00"
DEFAULT_STANDARD_WORK_HOURS = 8.0
DEFAULT_MAX_PAGE_SIZE = 100

# Default page sizes per list endpoint
EMPLOYEES_PAGE_SIZE = 10
LEAVE_PAGE_SIZE = 20
TASKS_PAGE_SIZE = 20
PERFORMANCE_PAGE_SIZE = 20
PAYROLL_PAGE_SIZE = 20
ATTENDANCE_PAGE_SIZE = 30
PROJECTS_PAGE_SIZE = 20
LOCATIONS_PAGE_SIZE = 50
SEARCH_LIMIT = 20

LEAVE_REASON_MAX_LENGTH = 500
TASK_TITLE_MAX_LENGTH = 200
TASK_DESCRIPTION_MAX_LENGTH = 1000
COMMENT_MAX_LENGTH = 500
PROJECT_NAME_MAX_LENGTH = 150
ADDRESS_MAX_LENGTH = 255
MIN_PASSWORD_LENGTH = 6

EMPLOYEE_CODE_PREFIX = "EMP"
DEFAULT_COUNTRY = "USA"
DEPARTMENTS = ("Engineering", "Marketing", "Sales", "HR", "Finance", "Operations")

# Leave entitlements (days per year)
ANNUAL_LEAVE_BASE_DAYS = 20
ANNUAL_LEAVE_MAX_DAYS = 30
LEAVE_ENTITLEMENTS = {
    "sick": 10,
    "personal": 5,
    "maternity": 90,
    "paternity": 15,
    "emergency": 3,
}

# Payroll
PAYROLL_MONTH_DAYS = 30
OVERTIME_MULTIPLIER = 1.5
PAYROLL_ALLOWANCES = {"transport": 5000.0, "meal": 3000.0, "medical": 2000.0, "other": 0.0}
INSURANCE_RATE = 0.02
PROVIDENT_FUND_RATE = 0.08

TOP_PERFORMER_RATING = 4

# Location tracking
EARTH_RADIUS_KM = 6371.0
CURRENT_LOCATION_WINDOW_HOURS = 24
LOCATION_STATS_DAYS = 7
LOCATION_RETENTION_DAYS = 90

# Reports
RECENT_ACTIVITY_LIMIT = 5
PUNCTUAL_SCORE = 100
LATE_SCORE = 80
