from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping

from ..access.policy import AccessPolicy, Action, Entity, Identity, Target
from ..access.scope import Scope
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.pagination import Page, PageRequest
from ..common.validators import (
    optional_int,
    parse_int,
    require_enum,
    require_fields,
    require_max_length,
    require_non_empty,
)
from ..core.constants import PROJECT_NAME_MAX_LENGTH
from ..core.enums import ProjectStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..tasks.model import TaskFilters
from ..tasks.repository import TaskRepository
from ..tasks.stats import task_figures
from .model import Project, ProjectFilters
from .repository import ProjectRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "description", "startDate", "endDate")


class ProjectService:
    def __init__(
        self,
        projects: ProjectRepository,
        employees: EmployeeRepository,
        tasks: TaskRepository,
        policy: AccessPolicy,
    ):
        self._projects = projects
        self._employees = employees
        self._tasks = tasks
        self._policy = policy

    def create(self, identity: Identity, payload: Mapping[str, Any], *, now: datetime | None = None) -> Project:
        """Managers create projects they run themselves; admin and HR may name any manager."""
        self._policy.enforce(identity, Entity.PROJECT, Action.CREATE)
        require_fields(payload, REQUIRED_FIELDS)
        manager_id = optional_int(payload.get("managerId"), "managerId")
        if manager_id is None:
            manager_id = identity.employee_id
        if manager_id is None:
            raise ValidationError("managerId is required")
        self._policy.enforce(identity, Entity.PROJECT, Action.CREATE, Target.owned_by(author_id=manager_id))
        self._require_manager(manager_id)

        start = parse_iso_date(str(payload["startDate"]))
        end = parse_iso_date(str(payload["endDate"]))
        self._check_dates(start, end)
        members = self._members(payload.get("teamMembers"))

        fields: dict[str, Any] = {
            "name": self._name(payload["name"]),
            "description": require_non_empty(payload["description"], "description"),
            "status": require_enum(payload.get("status") or ProjectStatus.PLANNING.value, ProjectStatus, "status"),
            "manager_id": manager_id,
            "start_date": start,
            "end_date": end,
            "progress": self._progress(payload.get("progress", 0)),
            "created_at": now or now_local(),
        }
        project_id = self._projects.create(fields, members=members)
        logger.info("project created id=%s manager=%s by user=%s", project_id, manager_id, identity.user_id)
        return self._require(project_id)

    def list(self, identity: Identity, filters: ProjectFilters, page: PageRequest) -> Page[Project]:
        self._policy.enforce(identity, Entity.PROJECT, Action.LIST)
        scope = self._policy.scope_for(identity, Entity.PROJECT)
        return self._projects.list_page(scope, filters, page)

    def get(self, identity: Identity, project_id: int, *, now: datetime | None = None) -> tuple[Project, dict]:
        """The project plus figures over every task linked to it."""
        project = self._require(project_id)
        self._policy.enforce(identity, Entity.PROJECT, Action.READ, project.target)
        tasks = self._tasks.list_all(Scope.everyone(), TaskFilters(project_id=project.project_id))
        return project, task_figures(tasks, now or now_local())

    def update(self, identity: Identity, project_id: int, payload: Mapping[str, Any]) -> Project:
        project = self._require(project_id)
        self._policy.enforce(identity, Entity.PROJECT, Action.UPDATE, project.target)

        changes: dict[str, Any] = {}
        members = None
        if "name" in payload:
            changes["name"] = self._name(payload["name"])
        if "description" in payload:
            changes["description"] = require_non_empty(payload["description"], "description")
        if "status" in payload:
            changes["status"] = require_enum(payload["status"], ProjectStatus, "status")
        if "progress" in payload:
            changes["progress"] = self._progress(payload["progress"])
        if "managerId" in payload:
            changes["manager_id"] = self._require_manager(parse_int(payload["managerId"], "managerId"))
        if "startDate" in payload or "endDate" in payload:
            start = parse_iso_date(str(payload["startDate"])) if "startDate" in payload else project.start_date
            end = parse_iso_date(str(payload["endDate"])) if "endDate" in payload else project.end_date
            self._check_dates(start, end)
            changes.update(start_date=start, end_date=end)
        if "teamMembers" in payload:
            members = self._members(payload["teamMembers"])

        self._projects.update(project.project_id, changes, members=members)
        if "status" in changes and changes["status"] != project.status:
            logger.info(
                "project status id=%s %s -> %s by user=%s",
                project.project_id,
                project.status.value,
                changes["status"].value,
                identity.user_id,
            )
        return self._require(project.project_id)

    def delete(self, identity: Identity, project_id: int) -> None:
        project = self._require(project_id)
        self._policy.enforce(identity, Entity.PROJECT, Action.DELETE, project.target)
        self._projects.delete(project.project_id)
        logger.info("project deleted id=%s by user=%s", project.project_id, identity.user_id)

    def _require(self, project_id: int) -> Project:
        project = self._projects.get_by_id(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    def _require_manager(self, manager_id: int) -> int:
        if self._employees.get_by_id(manager_id) is None:
            raise ValidationError("Manager not found")
        return manager_id

    def _members(self, raw: Any) -> list[int]:
        if raw in (None, ""):
            return []
        values = raw if isinstance(raw, list) else [raw]
        ids = sorted({parse_int(v, "teamMembers") for v in values})
        if set(ids) - self._employees.existing_ids(ids):
            raise ValidationError("One or more team members not found")
        return ids

    @staticmethod
    def _name(raw: Any) -> str:
        return require_max_length(require_non_empty(raw, "name"), "name", PROJECT_NAME_MAX_LENGTH)

    @staticmethod
    def _progress(raw: Any) -> int:
        progress = parse_int(raw, "progress")
        if not 0 <= progress <= 100:
            raise ValidationError("progress must be between 0 and 100")
        return progress

    @staticmethod
    def _check_dates(start: date, end: date) -> None:
        if end < start:
            raise ValidationError("End date must not be before start date")

