from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles carried in the access token and used for authorization."""

    ADMIN = "admin"
    HR_MANAGER = "hr_manager"
    MANAGER = "manager"
    EMPLOYEE = "employee"

    @property
    def is_privileged(self) -> bool:
        return self in {Role.ADMIN, Role.HR_MANAGER}


ALL_ROLES = (Role.ADMIN, Role.HR_MANAGER, Role.MANAGER, Role.EMPLOYEE)
STAFF_ROLES = (Role.ADMIN, Role.HR_MANAGER, Role.MANAGER)
PRIVILEGED_ROLES = (Role.ADMIN, Role.HR_MANAGER)


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"


class AttendanceStatus(str, Enum):
    """Attendance status stored per (employee, date) record."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half_day"
    WORK_FROM_HOME = "work_from_home"


class AttendanceAction(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    PERSONAL = "personal"
    EMERGENCY = "emergency"


class LeaveStatus(str, Enum):
    """pending -> {approved, rejected, cancelled}; approved -> cancelled before start."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ReviewType(str, Enum):
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    PROBATION = "probation"
    PROJECT_BASED = "project_based"


class ReviewStatus(str, Enum):
    """draft -> submitted -> approved -> acknowledged."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    ACKNOWLEDGED = "acknowledged"


class GoalStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class PayrollStatus(str, Enum):
    DRAFT = "draft"
    PROCESSED = "processed"
    PAID = "paid"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LocationActivity(str, Enum):
    STATIONARY = "stationary"
    WALKING = "walking"
    RUNNING = "running"
    DRIVING = "driving"
    UNKNOWN = "unknown"
