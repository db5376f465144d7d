from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from ..access.policy import AccessPolicy, Action, Entity, Identity
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.pagination import Page, PageRequest
from ..common.validators import (
    optional_int,
    parse_int,
    parse_number,
    require_enum,
    require_fields,
    require_max_length,
    require_non_empty,
    string_list,
)
from ..core.constants import COMMENT_MAX_LENGTH, TASK_DESCRIPTION_MAX_LENGTH, TASK_TITLE_MAX_LENGTH
from ..core.enums import Role, TaskPriority, TaskStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..projects.repository import ProjectRepository
from .model import Task, TaskComment, TaskFilters, completed_date_for
from .repository import TaskRepository
from .stats import project_stats, task_report

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "assignedTo", "startDate", "dueDate", "estimatedHours")
ASSIGNEE_FIELDS = frozenset({"status", "actualHours", "comments"})


class TaskService:
    def __init__(
        self,
        tasks: TaskRepository,
        employees: EmployeeRepository,
        projects: ProjectRepository,
        policy: AccessPolicy,
    ):
        self._tasks = tasks
        self._employees = employees
        self._projects = projects
        self._policy = policy

    def create(self, identity: Identity, payload: Mapping[str, Any], *, now: datetime | None = None) -> Task:
        self._policy.enforce(identity, Entity.TASK, Action.CREATE)
        require_fields(payload, REQUIRED_FIELDS)

        assignees = self._assignees(payload["assignedTo"])
        start = parse_iso_date(str(payload["startDate"]))
        due = parse_iso_date(str(payload["dueDate"]))
        self._check_dates(start, due)

        fields: dict[str, Any] = {
            "title": self._title(payload["title"]),
            "description": self._description(payload["description"]),
            "assigned_by": identity.employee_id,
            "start_date": start,
            "due_date": due,
            "estimated_hours": parse_number(payload["estimatedHours"], "estimatedHours", minimum=0),
            "priority": require_enum(payload.get("priority") or TaskPriority.MEDIUM.value, TaskPriority, "priority"),
            "status": require_enum(payload.get("status") or TaskStatus.TODO.value, TaskStatus, "status"),
            "project_id": self._project_id(payload.get("projectId")),
            "tags": string_list(payload.get("tags"), "tags"),
            "attachments": string_list(payload.get("attachments"), "attachments"),
            "created_at": now or now_local(),
        }
        if fields["status"] == TaskStatus.COMPLETED:
            fields["completed_date"] = fields["created_at"]

        task_id = self._tasks.create(fields, assignees=assignees)
        logger.info("task created id=%s assignees=%s by user=%s", task_id, assignees, identity.user_id)
        return self._require(task_id)

    def list(
        self,
        identity: Identity,
        filters: TaskFilters,
        page: PageRequest,
        *,
        assigned_to: Optional[int] = None,
    ) -> Page[Task]:
        self._policy.enforce(identity, Entity.TASK, Action.LIST)
        scope = self._policy.scope_for(identity, Entity.TASK).narrow(assigned_to)
        return self._tasks.list_page(scope, filters, page)

    def get(self, identity: Identity, task_id: int) -> Task:
        task = self._require(task_id)
        self._policy.enforce(identity, Entity.TASK, Action.READ, task.target)
        return task

    def update(
        self,
        identity: Identity,
        task_id: int,
        payload: Mapping[str, Any],
        *,
        now: datetime | None = None,
    ) -> Task:
        now = now or now_local()
        task = self._require(task_id)
        self._policy.enforce(identity, Entity.TASK, Action.UPDATE, task.target)

        data = dict(payload)
        if identity.role == Role.EMPLOYEE:
            data = {key: value for key, value in data.items() if key in ASSIGNEE_FIELDS}

        changes: dict[str, Any] = {}
        assignees: Optional[list[int]] = None

        if "status" in data:
            status = require_enum(data["status"], TaskStatus, "status")
            changes["status"] = status
            changes["completed_date"] = completed_date_for(task, status, now)
        if "actualHours" in data:
            changes["actual_hours"] = parse_number(data["actualHours"], "actualHours", minimum=0)
        if "title" in data:
            changes["title"] = self._title(data["title"])
        if "description" in data:
            changes["description"] = self._description(data["description"])
        if "projectId" in data:
            changes["project_id"] = self._project_id(data["projectId"])
        if "priority" in data:
            changes["priority"] = require_enum(data["priority"], TaskPriority, "priority")
        if "estimatedHours" in data:
            changes["estimated_hours"] = parse_number(data["estimatedHours"], "estimatedHours", minimum=0)
        if "tags" in data:
            changes["tags"] = string_list(data["tags"], "tags")
        if "attachments" in data:
            changes["attachments"] = string_list(data["attachments"], "attachments")
        if "startDate" in data or "dueDate" in data:
            start = parse_iso_date(str(data["startDate"])) if "startDate" in data else task.start_date
            due = parse_iso_date(str(data["dueDate"])) if "dueDate" in data else task.due_date
            self._check_dates(start, due)
            changes.update(start_date=start, due_date=due)
        if "assignedTo" in data:
            assignees = self._assignees(data["assignedTo"])

        new_comments = self._comment_texts(data.get("comments"))

        self._tasks.update(task.task_id, changes, assignees=assignees)
        for content in new_comments:
            self._tasks.add_comment(task.task_id, user_id=identity.user_id, content=content, when=now)

        if "status" in changes and changes["status"] != task.status:
            logger.info("task status id=%s %s -> %s by user=%s", task.task_id, task.status.value, changes["status"].value, identity.user_id)
        return self._require(task.task_id)

    def delete(self, identity: Identity, task_id: int) -> None:
        task = self._require(task_id)
        self._policy.enforce(identity, Entity.TASK, Action.DELETE, task.target)
        self._tasks.delete(task.task_id)
        logger.info("task deleted id=%s by user=%s", task.task_id, identity.user_id)

    def add_comment(self, identity: Identity, task_id: int, content: Any, *, now: datetime | None = None) -> TaskComment:
        task = self._require(task_id)
        self._policy.enforce(identity, Entity.TASK, Action.COMMENT, task.target)
        text = self._comment_text(content)
        return self._tasks.add_comment(task.task_id, user_id=identity.user_id, content=text, when=now or now_local())

    def project_stats(self, identity: Identity, *, now: datetime | None = None) -> dict:
        """Per-project figures; managers see the tasks they assigned."""
        self._policy.enforce(identity, Entity.TASK, Action.REPORT)
        scope = self._policy.scope_for(identity, Entity.TASK, Action.REPORT)
        return project_stats(self._tasks.list_all(scope, TaskFilters()), now or now_local())

    def report(
        self,
        identity: Identity,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        now: datetime | None = None,
    ) -> dict:
        now = now or now_local()
        self._policy.enforce(identity, Entity.TASK, Action.REPORT)
        start = start or now.date().replace(day=1)
        end = end or now.date()
        if end < start:
            raise ValidationError("endDate must not be before startDate")
        scope = self._policy.scope_for(identity, Entity.TASK, Action.LIST)
        tasks = self._tasks.list_all(scope, TaskFilters(due_from=start, due_to=end))
        report = task_report(tasks, now)
        report["dateRange"] = {"start": start.isoformat(), "end": end.isoformat()}
        return report

    # --- helpers ---------------------------------------------------------

    def _require(self, task_id: int) -> Task:
        task = self._tasks.get_by_id(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _project_id(self, raw: Any) -> Optional[int]:
        project_id = optional_int(raw, "projectId")
        if project_id is not None and self._projects.get_by_id(project_id) is None:
            raise ValidationError("Project not found")
        return project_id

    def _assignees(self, raw: Any) -> list[int]:
        values = raw if isinstance(raw, list) else [raw]
        ids = sorted({parse_int(v, "assignedTo") for v in values})
        if not ids:
            raise ValidationError("assignedTo is required")
        missing = set(ids) - self._employees.existing_ids(ids)
        if missing:
            raise ValidationError("One or more assigned employees not found")
        return ids

    @staticmethod
    def _check_dates(start: date, due: date) -> None:
        if due <= start:
            raise ValidationError("Due date must be after start date")

    @staticmethod
    def _title(raw: Any) -> str:
        return require_max_length(require_non_empty(raw, "title"), "title", TASK_TITLE_MAX_LENGTH)

    @staticmethod
    def _description(raw: Any) -> str:
        return require_max_length(require_non_empty(raw, "description"), "description", TASK_DESCRIPTION_MAX_LENGTH)

    @staticmethod
    def _comment_text(raw: Any) -> str:
        if isinstance(raw, Mapping):
            raw = raw.get("content")
        text = require_non_empty(raw, "content")
        return require_max_length(text, "content", COMMENT_MAX_LENGTH)

    def _comment_texts(self, raw: Any) -> Sequence[str]:
        if raw in (None, "", []):
            return []
        items = raw if isinstance(raw, list) else [raw]
        return [self._comment_text(item) for item in items]
