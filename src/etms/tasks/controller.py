from __future__ import annotations

from flask import Flask, current_app, request

from ..auth.resolver import current_identity
from ..common.datetime_utils import iso, optional_date
from ..common.http import json_body
from ..common.pagination import PageRequest
from ..common.responses import created, ok, paged
from ..common.validators import optional_int, require_enum
from ..container import Container
from ..core.constants import TASKS_PAGE_SIZE
from ..core.enums import STAFF_ROLES, TaskPriority, TaskStatus
from .model import Task, TaskComment, TaskFilters


def serialize_comment(comment: TaskComment) -> dict:
    return {
        "id": comment.comment_id,
        "user": comment.user_id,
        "userEmail": comment.author_email,
        "content": comment.content,
        "createdAt": iso(comment.created_at),
    }


def serialize_task(task: Task) -> dict:
    return {
        "id": task.task_id,
        "title": task.title,
        "description": task.description,
        "assignedTo": [
            {"id": employee_id, "name": task.assignee_names[i] if i < len(task.assignee_names) else None}
            for i, employee_id in enumerate(task.assigned_to)
        ],
        "assignedBy": {"id": task.assigned_by, "name": task.assigner_name} if task.assigned_by is not None else None,
        "project": {"id": task.project_id, "name": task.project} if task.project_id is not None else None,
        "priority": task.priority.value,
        "status": task.status.value,
        "startDate": iso(task.start_date),
        "dueDate": iso(task.due_date),
        "completedDate": iso(task.completed_date),
        "estimatedHours": task.estimated_hours,
        "actualHours": task.actual_hours,
        "tags": list(task.tags),
        "attachments": list(task.attachments),
        "comments": [serialize_comment(c) for c in task.comments],
        "createdAt": iso(task.created_at),
    }


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.task_service

    @app.route("/api/tasks", methods=["POST"], endpoint="create_task")
    @require(*STAFF_ROLES)
    def create_task():
        return created(serialize_task(service.create(current_identity(), json_body())))

    @app.route("/api/tasks", methods=["GET"], endpoint="list_tasks")
    @require()
    def list_tasks():
        args = request.args
        page = PageRequest.from_args(args, default_limit=TASKS_PAGE_SIZE, max_limit=current_app.config["MAX_PAGE_SIZE"])
        status = args.get("status")
        priority = args.get("priority")
        filters = TaskFilters(
            assigned_by=optional_int(args.get("assignedBy"), "assignedBy"),
            project_id=optional_int(args.get("projectId"), "projectId"),
            project=args.get("project") or None,
            status=require_enum(status, TaskStatus, "status") if status else None,
            priority=require_enum(priority, TaskPriority, "priority") if priority else None,
            due_from=optional_date(args.get("startDate")),
            due_to=optional_date(args.get("endDate")),
        )
        result = service.list(
            current_identity(), filters, page, assigned_to=optional_int(args.get("assignedTo"), "assignedTo")
        )
        return paged(result, serialize_task)

    @app.route("/api/tasks/projects", methods=["GET"], endpoint="task_projects")
    @require(*STAFF_ROLES)
    def task_projects():
        return ok(service.project_stats(current_identity()))

    @app.route("/api/tasks/<int:task_id>", methods=["GET"], endpoint="get_task")
    @require()
    def get_task(task_id: int):
        return ok(serialize_task(service.get(current_identity(), task_id)))

    @app.route("/api/tasks/<int:task_id>", methods=["PUT"], endpoint="update_task")
    @require()
    def update_task(task_id: int):
        return ok(serialize_task(service.update(current_identity(), task_id, json_body())))

    @app.route("/api/tasks/<int:task_id>", methods=["DELETE"], endpoint="delete_task")
    @require()
    def delete_task(task_id: int):
        service.delete(current_identity(), task_id)
        return ok(message="Task deleted successfully")

    @app.route("/api/tasks/<int:task_id>/comments", methods=["POST"], endpoint="comment_task")
    @require()
    def comment_task(task_id: int):
        comment = service.add_comment(current_identity(), task_id, json_body().get("content"))
        return created(serialize_comment(comment))
