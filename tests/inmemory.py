"""In-memory repositories and a small demo organisation used across the tests."""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from etms.access.policy import Identity
from etms.access.scope import Scope
from etms.attendance.model import AttendanceFilters, AttendanceRecord
from etms.auth.model import User
from etms.common.pagination import Page, PageRequest
from etms.container import Container, Repositories, assemble
from etms.core.enums import EmployeeStatus, PayrollStatus, Role
from etms.core.exceptions import ConflictError
from etms.departments.model import Department
from etms.employees.model import Employee, EmployeeFilters
from etms.leave.model import LeaveFilters, LeaveRequest
from etms.locations.model import Location, LocationFilters
from etms.payroll.model import Payroll, PayrollBreakdown, PayrollFilters
from etms.performance.model import PerformanceReview, ReviewFilters
from etms.projects.model import Project, ProjectFilters
from etms.tasks.model import Task, TaskComment, TaskFilters

_LIST_FIELDS = {"skills", "documents", "tags", "attachments", "categories", "goals", "strengths", "areas_for_improvement"}


def _normalize(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: tuple(value) if key in _LIST_FIELDS else value for key, value in fields.items()}


def _paginate(records: Sequence, page: PageRequest, summary: Optional[list[dict]] = None) -> Page:
    records = list(records)
    return Page(
        records=records[page.offset : page.offset + page.limit],
        page=page.page,
        limit=page.limit,
        total=len(records),
        summary=summary or [],
    )


def _status_summary(records: Iterable) -> list[dict]:
    counts = Counter(r.status.value for r in records)
    return [{"status": status, "count": count} for status, count in sorted(counts.items())]


class FakeConnection:
    def __init__(self, up: bool = True):
        self.up = up

    def ping(self) -> bool:
        return self.up


class InMemoryUsers:
    def __init__(self):
        self.by_id: dict[int, User] = {}

    def add(self, user: User) -> User:
        self.by_id[user.user_id] = user
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.by_id.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.by_id.values() if u.email == email.lower()), None)

    def create_user(self, *, email, password_hash, role, employee_id=None) -> int:
        user_id = max(self.by_id, default=0) + 1
        self.by_id[user_id] = User(
            user_id=user_id, email=email.lower(), password_hash=password_hash, role=Role(role), employee_id=employee_id
        )
        return user_id

    def touch_last_login(self, user_id: int, *, when: datetime) -> None:
        self.by_id[user_id] = replace(self.by_id[user_id], last_login=when)

    def set_active_for_employee(self, employee_id: int, *, is_active: bool) -> int:
        changed = 0
        for user_id, user in list(self.by_id.items()):
            if user.employee_id == employee_id:
                self.by_id[user_id] = replace(user, is_active=is_active)
                changed += 1
        return changed


class InMemoryEmployees:
    def __init__(self):
        self.by_id: dict[int, Employee] = {}

    def add(self, employee: Employee) -> Employee:
        self.by_id[employee.employee_id] = employee
        return employee

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self.by_id.get(int(employee_id))

    def get_by_email(self, email: str) -> Optional[Employee]:
        return next((e for e in self.by_id.values() if e.email == email.lower()), None)

    def count(self) -> int:
        return len(self.by_id)

    def create(self, *, employee_code: str, fields: dict[str, Any]) -> int:
        employee_id = max(self.by_id, default=0) + 1
        self.by_id[employee_id] = Employee(employee_id=employee_id, employee_code=employee_code, **_normalize(fields))
        return employee_id

    def update(self, employee_id: int, changes: dict[str, Any]) -> bool:
        self.by_id[employee_id] = replace(self.by_id[employee_id], **_normalize(changes))
        return True

    def list_direct_report_ids(self, manager_id: int) -> Sequence[int]:
        return [e.employee_id for e in self.by_id.values() if e.manager_id == manager_id]

    def list_direct_reports(self, manager_id: int) -> Sequence[Employee]:
        return [e for e in self.by_id.values() if e.manager_id == manager_id]

    def existing_ids(self, employee_ids: Iterable[int]) -> set[int]:
        return {int(i) for i in employee_ids if int(i) in self.by_id}

    def count_active_in_department(self, department: str) -> int:
        return sum(1 for e in self.by_id.values() if e.department == department and e.is_active)

    def list_all(self, scope: Scope, filters: EmployeeFilters) -> Sequence[Employee]:
        return [e for e in self.by_id.values() if scope.matches([e.employee_id]) and filters.matches(e)]

    def list_page(self, scope, filters, page, *, sort_by="created_at", descending=True) -> Page[Employee]:
        rows = sorted(
            self.list_all(scope, filters),
            key=lambda e: (str(getattr(e, sort_by) or ""), e.employee_id),
            reverse=descending,
        )
        counts = Counter((e.department, e.status.value) for e in rows)
        summary = [{"department": d, "status": s, "count": c} for (d, s), c in sorted(counts.items())]
        return _paginate(rows, page, summary)


class InMemoryDepartments:
    def __init__(self):
        self.by_id: dict[int, Department] = {}

    def list_all(self, *, include_inactive: bool = False) -> Sequence[Department]:
        return [d for d in self.by_id.values() if include_inactive or d.is_active]

    def get_by_id(self, department_id: int) -> Optional[Department]:
        return self.by_id.get(int(department_id))

    def get_by_name(self, name: str) -> Optional[Department]:
        return next((d for d in self.by_id.values() if d.name == name), None)

    def create(self, fields: dict[str, Any]) -> int:
        department_id = max(self.by_id, default=0) + 1
        self.by_id[department_id] = Department(department_id=department_id, **fields)
        return department_id

    def update(self, department_id: int, changes: dict[str, Any]) -> bool:
        self.by_id[department_id] = replace(self.by_id[department_id], **changes)
        return True


class InMemoryAttendance:
    def __init__(self):
        self.by_id: dict[int, AttendanceRecord] = {}

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        self.by_id[record.attendance_id] = record
        return record

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self.by_id.get(int(attendance_id))

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        return next(
            (r for r in self.by_id.values() if r.employee_id == employee_id and r.work_date == work_date), None
        )

    def create_checkin(self, *, employee_id, work_date, check_in, status, notes=None, location=None) -> int:
        if self.get_for_employee_and_date(employee_id, work_date):
            raise ConflictError("Attendance already recorded for this date")
        attendance_id = max(self.by_id, default=0) + 1
        self.by_id[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            employee_id=employee_id,
            work_date=work_date,
            status=status,
            check_in=check_in,
            notes=notes,
            location=dict(location or {}),
        )
        return attendance_id

    def update(self, attendance_id: int, changes: dict[str, Any]) -> bool:
        self.by_id[attendance_id] = replace(self.by_id[attendance_id], **changes)
        return True

    def list_page(self, scope: Scope, filters: AttendanceFilters, page: PageRequest) -> Page[AttendanceRecord]:
        rows = sorted(
            (r for r in self.by_id.values() if scope.matches([r.employee_id]) and filters.matches(r)),
            key=lambda r: (r.work_date, r.attendance_id),
            reverse=True,
        )
        return _paginate(rows, page, _status_summary(rows))

    def list_between(self, scope: Scope, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        return [
            r
            for r in self.by_id.values()
            if scope.matches([r.employee_id]) and start_date <= r.work_date <= end_date
        ]

    def total_overtime(self, employee_id: int, start_date: date, end_date: date) -> float:
        return sum(
            r.overtime
            for r in self.by_id.values()
            if r.employee_id == employee_id and start_date <= r.work_date <= end_date
        )


class InMemoryLeave:
    def __init__(self):
        self.by_id: dict[int, LeaveRequest] = {}

    def get_by_id(self, leave_id: int) -> Optional[LeaveRequest]:
        return self.by_id.get(int(leave_id))

    def create(self, fields: dict[str, Any]) -> int:
        leave_id = max(self.by_id, default=0) + 1
        self.by_id[leave_id] = LeaveRequest(leave_id=leave_id, **_normalize(fields))
        return leave_id

    def update(self, leave_id: int, changes: dict[str, Any]) -> bool:
        self.by_id[leave_id] = replace(self.by_id[leave_id], **_normalize(changes))
        return True

    def find_overlapping(self, employee_id, start_date, end_date, *, exclude_id=None) -> Sequence[LeaveRequest]:
        return [
            r
            for r in self.by_id.values()
            if r.employee_id == employee_id
            and r.is_open
            and r.leave_id != exclude_id
            and r.start_date <= end_date
            and r.end_date >= start_date
        ]

    def list_all(self, scope: Scope, filters: LeaveFilters) -> Sequence[LeaveRequest]:
        return [r for r in self.by_id.values() if scope.matches([r.employee_id]) and filters.matches(r)]

    def list_page(self, scope: Scope, filters: LeaveFilters, page: PageRequest) -> Page[LeaveRequest]:
        rows = sorted(self.list_all(scope, filters), key=lambda r: r.leave_id, reverse=True)
        return _paginate(rows, page, _status_summary(rows))

    def list_for_employee_year(self, employee_id: int, year: int) -> Sequence[LeaveRequest]:
        return [r for r in self.by_id.values() if r.employee_id == employee_id and r.start_date.year == year]


class InMemoryProjects:
    def __init__(self, employees: InMemoryEmployees):
        self.by_id: dict[int, Project] = {}
        self._employees = employees

    def _view(self, project: Project) -> Project:
        manager = self._employees.get_by_id(project.manager_id)
        members = [self._employees.get_by_id(i) for i in project.team_members]
        return replace(
            project,
            manager_name=manager.full_name if manager else None,
            member_names=tuple(m.full_name for m in members if m is not None),
        )

    def get_by_id(self, project_id: int) -> Optional[Project]:
        project = self.by_id.get(int(project_id))
        return self._view(project) if project else None

    def create(self, fields: dict[str, Any], *, members: Sequence[int]) -> int:
        project_id = max(self.by_id, default=0) + 1
        self.by_id[project_id] = Project(project_id=project_id, team_members=tuple(members), **fields)
        return project_id

    def update(self, project_id: int, changes: dict[str, Any], *, members=None) -> bool:
        project = replace(self.by_id[project_id], **changes)
        if members is not None:
            project = replace(project, team_members=tuple(members))
        self.by_id[project_id] = project
        return True

    def delete(self, project_id: int) -> bool:
        return self.by_id.pop(project_id, None) is not None

    def list_page(self, scope: Scope, filters: ProjectFilters, page: PageRequest) -> Page[Project]:
        rows = [
            self._view(p)
            for p in sorted(self.by_id.values(), key=lambda p: p.project_id, reverse=True)
            if scope.matches(p.team_members, p.manager_id) and filters.matches(p)
        ]
        return _paginate(rows, page, _status_summary(rows))


class InMemoryTasks:
    def __init__(self, projects: InMemoryProjects):
        self.by_id: dict[int, Task] = {}
        self._comment_id = 0
        self._projects = projects

    def _view(self, task: Task) -> Task:
        project = self._projects.get_by_id(task.project_id) if task.project_id is not None else None
        return replace(task, project_id=project.project_id if project else None, project=project.name if project else None)

    def get_by_id(self, task_id: int) -> Optional[Task]:
        task = self.by_id.get(int(task_id))
        return self._view(task) if task else None

    def create(self, fields: dict[str, Any], *, assignees: Sequence[int]) -> int:
        task_id = max(self.by_id, default=0) + 1
        self.by_id[task_id] = Task(task_id=task_id, assigned_to=tuple(assignees), **_normalize(fields))
        return task_id

    def update(self, task_id: int, changes: dict[str, Any], *, assignees=None) -> bool:
        task = replace(self.by_id[task_id], **_normalize(changes))
        if assignees is not None:
            task = replace(task, assigned_to=tuple(assignees))
        self.by_id[task_id] = task
        return True

    def delete(self, task_id: int) -> bool:
        return self.by_id.pop(task_id, None) is not None

    def add_comment(self, task_id: int, *, user_id: int, content: str, when: datetime) -> TaskComment:
        self._comment_id += 1
        comment = TaskComment(comment_id=self._comment_id, task_id=task_id, user_id=user_id, content=content, created_at=when)
        task = self.by_id[task_id]
        self.by_id[task_id] = replace(task, comments=task.comments + (comment,))
        return comment

    def list_all(self, scope: Scope, filters: TaskFilters) -> Sequence[Task]:
        tasks = (self._view(t) for t in self.by_id.values())
        return [t for t in tasks if scope.matches(t.assigned_to, t.assigned_by) and filters.matches(t)]

    def list_page(self, scope: Scope, filters: TaskFilters, page: PageRequest) -> Page[Task]:
        rows = sorted(self.list_all(scope, filters), key=lambda t: t.task_id, reverse=True)
        return _paginate(rows, page, _status_summary(rows))


class InMemoryReviews:
    def __init__(self, employees: InMemoryEmployees):
        self.by_id: dict[int, PerformanceReview] = {}
        self._employees = employees

    def get_by_id(self, review_id: int) -> Optional[PerformanceReview]:
        return self.by_id.get(int(review_id))

    def create(self, fields: dict[str, Any]) -> int:
        review_id = max(self.by_id, default=0) + 1
        employee = self._employees.get_by_id(fields["employee_id"])
        self.by_id[review_id] = PerformanceReview(
            review_id=review_id,
            employee_name=employee.full_name if employee else None,
            department=employee.department if employee else None,
            **_normalize(fields),
        )
        return review_id

    def update(self, review_id: int, changes: dict[str, Any]) -> bool:
        self.by_id[review_id] = replace(self.by_id[review_id], **_normalize(changes))
        return True

    def find_overlapping(self, employee_id, review_type, start, end, *, exclude_id=None) -> Sequence[PerformanceReview]:
        return [
            r
            for r in self.by_id.values()
            if r.employee_id == employee_id
            and r.review_type == review_type
            and r.review_id != exclude_id
            and r.period_start <= end
            and r.period_end >= start
        ]

    def list_all(self, scope: Scope, filters: ReviewFilters) -> Sequence[PerformanceReview]:
        return [
            r for r in self.by_id.values() if scope.matches([r.employee_id], r.reviewer_id) and filters.matches(r)
        ]

    def list_page(self, scope: Scope, filters: ReviewFilters, page: PageRequest) -> Page[PerformanceReview]:
        rows = sorted(self.list_all(scope, filters), key=lambda r: r.review_id, reverse=True)
        return _paginate(rows, page, _status_summary(rows))


class InMemoryPayrolls:
    def __init__(self):
        self.by_id: dict[int, Payroll] = {}

    def get_by_id(self, payroll_id: int) -> Optional[Payroll]:
        return self.by_id.get(int(payroll_id))

    def exists_for_period(self, employee_id: int, period_start: date, period_end: date) -> bool:
        return any(
            p.employee_id == employee_id and p.period_start == period_start and p.period_end == period_end
            for p in self.by_id.values()
        )

    def create(self, *, employee_id: int, period_start: date, period_end: date, breakdown: PayrollBreakdown) -> int:
        if self.exists_for_period(employee_id, period_start, period_end):
            raise ConflictError("Payroll already exists for this period")
        payroll_id = max(self.by_id, default=0) + 1
        self.by_id[payroll_id] = Payroll(
            payroll_id=payroll_id,
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            breakdown=breakdown,
        )
        return payroll_id

    def update(self, payroll_id: int, changes: dict[str, Any]) -> bool:
        self.by_id[payroll_id] = replace(self.by_id[payroll_id], **changes)
        return True

    def list_all(self, scope: Scope, filters: PayrollFilters) -> Sequence[Payroll]:
        return [p for p in self.by_id.values() if scope.matches([p.employee_id]) and filters.matches(p)]

    def list_page(self, scope: Scope, filters: PayrollFilters, page: PageRequest) -> Page[Payroll]:
        rows = sorted(self.list_all(scope, filters), key=lambda p: p.payroll_id, reverse=True)
        return _paginate(rows, page, _status_summary(rows))

    def status_totals(self, *, year: Optional[int] = None) -> Sequence[dict]:
        groups: dict[PayrollStatus, list[Payroll]] = defaultdict(list)
        for payroll in self.by_id.values():
            if year is None or payroll.period_start.year == year:
                groups[payroll.status].append(payroll)
        return [
            {
                "status": status.value,
                "count": len(rows),
                "totalGross": round(sum(p.breakdown.gross_salary for p in rows), 2),
                "totalNet": round(sum(p.breakdown.net_salary for p in rows), 2),
                "averageNet": round(sum(p.breakdown.net_salary for p in rows) / len(rows), 2),
            }
            for status, rows in groups.items()
        ]


class InMemoryLocations:
    def __init__(self, employees: InMemoryEmployees):
        self.by_id: dict[int, Location] = {}
        self._employees = employees

    def get_by_id(self, location_id: int) -> Optional[Location]:
        return self.by_id.get(int(location_id))

    def add(self, location: Location) -> Location:
        self.by_id[location.location_id] = location
        return location

    def create(self, fields: dict[str, Any]) -> int:
        location_id = max(self.by_id, default=0) + 1
        employee = self._employees.get_by_id(fields["employee_id"])
        self.by_id[location_id] = Location(
            location_id=location_id,
            employee_name=employee.full_name if employee else None,
            employee_code=employee.employee_code if employee else None,
            **fields,
        )
        return location_id

    def list_all(self, scope: Scope, filters: LocationFilters) -> Sequence[Location]:
        rows = [p for p in self.by_id.values() if scope.matches([p.employee_id]) and filters.matches(p)]
        return sorted(rows, key=lambda p: (p.recorded_at, p.location_id))

    def list_page(self, scope: Scope, filters: LocationFilters, page: PageRequest) -> Page[Location]:
        rows = list(reversed(self.list_all(scope, filters)))
        counts = Counter(p.activity.value for p in rows)
        return _paginate(rows, page, [{"activity": a, "count": c} for a, c in sorted(counts.items())])

    def latest_per_employee(self, scope: Scope, *, since: datetime) -> Sequence[Location]:
        latest: dict[int, Location] = {}
        for point in self.list_all(scope, LocationFilters(start=since)):
            latest[point.employee_id] = point
        return list(latest.values())

    def delete_before(self, cutoff: datetime) -> int:
        stale = [i for i, p in self.by_id.items() if p.recorded_at < cutoff]
        for location_id in stale:
            del self.by_id[location_id]
        return len(stale)


# name -> (employee id, first, last, department, position, manager id, salary, role)
ORG = {
    "admin": (1, "John", "Smith", "Engineering", "CTO", None, 180000.0, Role.ADMIN),
    "hr": (2, "Sarah", "Johnson", "HR", "HR Manager", None, 95000.0, Role.HR_MANAGER),
    "manager": (3, "Michael", "Brown", "Engineering", "Engineering Manager", 1, 120000.0, Role.MANAGER),
    "emily": (4, "Emily", "Davis", "Engineering", "Software Engineer", 3, 85000.0, Role.EMPLOYEE),
    "david": (5, "David", "Wilson", "Engineering", "QA Engineer", 3, 72000.0, Role.EMPLOYEE),
    "laura": (6, "Laura", "Martinez", "Sales", "Account Executive", None, 68000.0, Role.EMPLOYEE),
}

DEMO_PASSWORD = "secret123"


def build_repositories(password_hash: str = "") -> Repositories:
    users = InMemoryUsers()
    employees = InMemoryEmployees()
    for name, (employee_id, first, last, department, position, manager_id, salary, role) in ORG.items():
        employees.add(
            Employee(
                employee_id=employee_id,
                employee_code=f"EMP{employee_id:04d}",
                first_name=first,
                last_name=last,
                email=f"{first.lower()}.{last.lower()}@etms.com",
                phone=f"+1-555-010{employee_id}",
                department=department,
                position=position,
                hire_date=date(2020, 1, 15),
                salary=salary,
                status=EmployeeStatus.ACTIVE,
                manager_id=manager_id,
                skills=("python",) if department == "Engineering" else (),
            )
        )
        users.add(
            User(
                user_id=employee_id,
                email=f"{name}@etms.com",
                password_hash=password_hash,
                role=role,
                employee_id=employee_id,
            )
        )

    projects = InMemoryProjects(employees)
    return Repositories(
        users=users,
        employees=employees,
        departments=InMemoryDepartments(),
        attendance=InMemoryAttendance(),
        leave=InMemoryLeave(),
        tasks=InMemoryTasks(projects),
        reviews=InMemoryReviews(employees),
        payrolls=InMemoryPayrolls(),
        projects=projects,
        locations=InMemoryLocations(employees),
    )


def build_container(password_hash: str = "", *, conn: Optional[FakeConnection] = None) -> Container:
    return assemble(build_repositories(password_hash), conn=conn or FakeConnection())


def identity_of(name: str) -> Identity:
    employee_id, *_, role = ORG[name]
    return Identity(user_id=employee_id, role=role, employee_id=employee_id, email=f"{name}@etms.com")
