from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..access.policy import Target
from ..core.enums import TaskPriority, TaskStatus


@dataclass(frozen=True)
class TaskComment:
    comment_id: int
    task_id: int
    user_id: int
    content: str
    created_at: Optional[datetime] = None
    author_email: Optional[str] = None


@dataclass(frozen=True)
class Task:
    task_id: int
    title: str
    description: str
    assigned_to: tuple[int, ...]
    assigned_by: Optional[int]
    start_date: date
    due_date: date
    estimated_hours: float
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    actual_hours: float = 0.0
    project_id: Optional[int] = None
    project: Optional[str] = None
    completed_date: Optional[datetime] = None
    tags: tuple[str, ...] = ()
    attachments: tuple[str, ...] = ()
    comments: tuple[TaskComment, ...] = ()
    created_at: Optional[datetime] = None
    assignee_names: tuple[str, ...] = ()
    assigner_name: Optional[str] = None

    @property
    def target(self) -> Target:
        """Assignees own the task; the assigner authored it."""
        return Target.of_many(self.assigned_to, author_id=self.assigned_by)

    def is_overdue(self, now: datetime) -> bool:
        return self.due_date < now.date() and self.status != TaskStatus.COMPLETED


@dataclass(frozen=True)
class TaskFilters:
    assigned_by: Optional[int] = None
    project_id: Optional[int] = None
    project: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_from: Optional[date] = None
    due_to: Optional[date] = None

    def matches(self, task: Task) -> bool:
        if self.assigned_by is not None and task.assigned_by != self.assigned_by:
            return False
        if self.project_id is not None and task.project_id != self.project_id:
            return False
        if self.project and self.project.lower() not in (task.project or "").lower():
            return False
        if self.status and task.status != self.status:
            return False
        if self.priority and task.priority != self.priority:
            return False
        if self.due_from and task.due_date < self.due_from:
            return False
        if self.due_to and task.due_date > self.due_to:
            return False
        return True


def completed_date_for(task: Task, new_status: TaskStatus, now: datetime) -> Optional[datetime]:
    """Stamp the first transition into completed; never overwrite an existing stamp."""
    if task.completed_date is not None:
        return task.completed_date
    if new_status == TaskStatus.COMPLETED:
        return now
    return None
