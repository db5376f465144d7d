from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .access.policy import AccessPolicy
from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .auth.mysql_user_repository import MySQLUserRepository
from .auth.repository import UserRepository
from .auth.resolver import RoleResolver
from .auth.service import AuthService
from .core.constants import DEFAULT_LATE_CUTOFF, DEFAULT_STANDARD_WORK_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .departments.mysql_department_repository import MySQLDepartmentRepository
from .departments.repository import DepartmentRepository
from .departments.service import DepartmentService
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .employees.service import EmployeeService
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.repository import LeaveRepository
from .leave.service import LeaveService
from .locations.mysql_location_repository import MySQLLocationRepository
from .locations.repository import LocationRepository
from .locations.service import LocationService
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.repository import PayrollRepository
from .payroll.service import PayrollService
from .performance.mysql_review_repository import MySQLReviewRepository
from .performance.repository import ReviewRepository
from .performance.service import PerformanceService
from .projects.mysql_project_repository import MySQLProjectRepository
from .projects.repository import ProjectRepository
from .projects.service import ProjectService
from .reports.service import ReportService
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.repository import TaskRepository
from .tasks.service import TaskService


class Pingable(Protocol):
    def ping(self) -> bool:
        ...


@dataclass(frozen=True)
class Repositories:
    users: UserRepository
    employees: EmployeeRepository
    departments: DepartmentRepository
    attendance: AttendanceRepository
    leave: LeaveRepository
    tasks: TaskRepository
    reviews: ReviewRepository
    payrolls: PayrollRepository
    projects: ProjectRepository
    locations: LocationRepository


@dataclass(frozen=True)
class Container:
    conn: Pingable
    repos: Repositories

    policy: AccessPolicy
    resolver: RoleResolver

    auth_service: AuthService
    employee_service: EmployeeService
    department_service: DepartmentService
    attendance_service: AttendanceService
    leave_service: LeaveService
    task_service: TaskService
    performance_service: PerformanceService
    payroll_service: PayrollService
    project_service: ProjectService
    location_service: LocationService
    report_service: ReportService


def assemble(
    repos: Repositories,
    *,
    conn: Pingable,
    late_cutoff: str = DEFAULT_LATE_CUTOFF,
    standard_hours: float = DEFAULT_STANDARD_WORK_HOURS,
) -> Container:
    """Wire services on top of any set of repositories (MySQL in production, in-memory in tests)."""
    policy = AccessPolicy(repos.employees)
    employee_service = EmployeeService(repos.employees, repos.users, policy)

    return Container(
        conn=conn,
        repos=repos,
        policy=policy,
        resolver=RoleResolver(repos.users),
        auth_service=AuthService(repos.users, repos.employees, employee_service),
        employee_service=employee_service,
        department_service=DepartmentService(repos.departments, repos.employees, policy),
        attendance_service=AttendanceService(
            repos.attendance,
            repos.employees,
            policy,
            strategy_factory=AttendanceStrategyFactory(),
            late_cutoff=late_cutoff,
            standard_hours=standard_hours,
        ),
        leave_service=LeaveService(repos.leave, repos.employees, policy),
        task_service=TaskService(repos.tasks, repos.employees, repos.projects, policy),
        performance_service=PerformanceService(repos.reviews, repos.employees, policy),
        payroll_service=PayrollService(repos.payrolls, repos.employees, repos.attendance, policy),
        project_service=ProjectService(repos.projects, repos.employees, repos.tasks, policy),
        location_service=LocationService(repos.locations, policy),
        report_service=ReportService(
            employees=repos.employees,
            departments=repos.departments,
            attendance=repos.attendance,
            leave=repos.leave,
            tasks=repos.tasks,
            payrolls=repos.payrolls,
            policy=policy,
        ),
    )


def build_container(*, db_config: dict, settings: Optional[Any] = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    repos = Repositories(
        users=MySQLUserRepository(conn),
        employees=MySQLEmployeeRepository(conn),
        departments=MySQLDepartmentRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        leave=MySQLLeaveRepository(conn),
        tasks=MySQLTaskRepository(conn),
        reviews=MySQLReviewRepository(conn),
        payrolls=MySQLPayrollRepository(conn),
        projects=MySQLProjectRepository(conn),
        locations=MySQLLocationRepository(conn),
    )
    return assemble(
        repos,
        conn=conn,
        late_cutoff=str(getattr(settings, "LATE_CUTOFF", DEFAULT_LATE_CUTOFF)),
        standard_hours=float(getattr(settings, "STANDARD_WORK_HOURS", DEFAULT_STANDARD_WORK_HOURS)),
    )
