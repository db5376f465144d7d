from __future__ import annotations

from typing import Optional

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import created, ok, paged
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.constants import PROJECTS_PAGE_SIZE
from ..core.enums import ProjectStatus, STAFF_ROLES
from .model import Project, ProjectFilters


def serialize_project(project: Project, *, task_figures: Optional[dict] = None) -> dict:
    body = {
        "id": project.project_id,
        "name": project.name,
        "description": project.description,
        "status": project.status.value,
        "manager": {"id": project.manager_id, "name": project.manager_name},
        "teamMembers": [
            {"id": employee_id, "name": project.member_names[i] if i < len(project.member_names) else None}
            for i, employee_id in enumerate(project.team_members)
        ],
        "startDate": iso(project.start_date),
        "endDate": iso(project.end_date),
        "progress": project.progress,
        "createdAt": iso(project.created_at),
    }
    if task_figures is not None:
        body["taskSummary"] = task_figures
    return body


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.project_service

    @app.route("/api/projects", methods=["POST"], endpoint="create_project")
    @require(*STAFF_ROLES)
    def create_project():
        return created(serialize_project(service.create(current_identity(), json_body())))

    @app.route("/api/projects", methods=["GET"], endpoint="list_projects")
    @require()
    def list_projects():
        args = request.args
        page = PageRequest.from_args(args, default_limit=PROJECTS_PAGE_SIZE, max_limit=current_app.config["MAX_PAGE_SIZE"])
        status = args.get("status")
        filters = ProjectFilters(
            status=require_enum(status, ProjectStatus, "status") if status else None,
            manager_id=optional_int(args.get("managerId"), "managerId"),
            search=args.get("search") or None,
        )
        return paged(service.list(current_identity(), filters, page), serialize_project)

    @app.route("/api/projects/<int:project_id>", methods=["GET"], endpoint="get_project")
    @require()
    def get_project(project_id: int):
        project, figures = service.get(current_identity(), project_id)
        return ok(serialize_project(project, task_figures=figures))

    @app.route("/api/projects/<int:project_id>", methods=["PUT"], endpoint="update_project")
    @require(*STAFF_ROLES)
    def update_project(project_id: int):
        return ok(
            serialize_project(service.update(current_identity(), project_id, json_body())),
            message="Project updated successfully",
        )

    @app.route("/api/projects/<int:project_id>", methods=["DELETE"], endpoint="delete_project")
    @require(*STAFF_ROLES)
    def delete_project(project_id: int):
        service.delete(current_identity(), project_id)
        return ok(message="Project deleted successfully")
