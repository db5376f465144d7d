"""Task statistics (pure functions over task lists)."""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Sequence

from ..core.enums import TaskPriority, TaskStatus
from .model import Task

PRIORITY_WEIGHT = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}


def completion_rate(completed: int, total: int) -> float:
    return round(completed / total * 100, 2) if total else 0.0


def efficiency(estimated_hours: float, actual_hours: float) -> float:
    """Estimated over actual, as a percentage. 10h estimated / 12h actual -> 83.33."""
    return round(estimated_hours / actual_hours * 100, 2) if actual_hours else 0.0


def task_figures(tasks: Sequence[Task], now: datetime) -> dict:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    estimated = sum(t.estimated_hours for t in tasks)
    actual = sum(t.actual_hours for t in tasks)
    return {
        "totalTasks": total,
        "completedTasks": completed,
        "inProgressTasks": sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
        "overdueTasks": sum(1 for t in tasks if t.is_overdue(now)),
        "totalEstimatedHours": round(estimated, 2),
        "totalActualHours": round(actual, 2),
        "completionRate": completion_rate(completed, total),
        "efficiency": efficiency(estimated, actual),
    }


def project_stats(tasks: Iterable[Task], now: datetime) -> dict:
    tasks = list(tasks)
    by_project: dict[str, list[Task]] = defaultdict(list)
    for task in tasks:
        by_project[task.project or "Unassigned"].append(task)

    projects = []
    for name in sorted(by_project):
        rows = by_project[name]
        figures = task_figures(rows, now)
        figures["project"] = name
        figures["avgPriority"] = round(sum(PRIORITY_WEIGHT[t.priority] for t in rows) / len(rows), 2)
        projects.append(figures)

    return {"projects": projects, "overall": task_figures(tasks, now)}


def task_report(tasks: Iterable[Task], now: datetime) -> dict:
    tasks = list(tasks)
    by_status = {status.value: 0 for status in TaskStatus}
    by_priority = {priority.value: 0 for priority in TaskPriority}
    per_employee: dict[int, list[Task]] = defaultdict(list)
    names: dict[int, str] = {}

    for task in tasks:
        by_status[task.status.value] += 1
        by_priority[task.priority.value] += 1
        for index, employee_id in enumerate(task.assigned_to):
            per_employee[employee_id].append(task)
            if index < len(task.assignee_names):
                names[employee_id] = task.assignee_names[index]

    employees = []
    for employee_id, rows in sorted(per_employee.items()):
        figures = task_figures(rows, now)
        employees.append(
            {
                "employeeId": employee_id,
                "employeeName": names.get(employee_id),
                "totalTasks": figures["totalTasks"],
                "completedTasks": figures["completedTasks"],
                "overdueTasks": figures["overdueTasks"],
                "completionRate": figures["completionRate"],
            }
        )

    overall = task_figures(tasks, now)
    return {
        "totalTasks": overall["totalTasks"],
        "byStatus": by_status,
        "byPriority": by_priority,
        "overdue": overall["overdueTasks"],
        "completionRate": overall["completionRate"],
        "efficiency": overall["efficiency"],
        "byEmployee": employees,
    }
