from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from .model import Task, TaskComment, TaskFilters


class TaskRepository(Protocol):
    def get_by_id(self, task_id: int) -> Optional[Task]:
        raise NotImplementedError

    def create(self, fields: dict[str, Any], *, assignees: Sequence[int]) -> int:
        raise NotImplementedError

    def update(self, task_id: int, changes: dict[str, Any], *, assignees: Optional[Sequence[int]] = None) -> bool:
        raise NotImplementedError

    def delete(self, task_id: int) -> bool:
        raise NotImplementedError

    def add_comment(self, task_id: int, *, user_id: int, content: str, when: datetime) -> TaskComment:
        raise NotImplementedError

    def list_page(self, scope: Scope, filters: TaskFilters, page: PageRequest) -> Page[Task]:
        raise NotImplementedError

    def list_all(self, scope: Scope, filters: TaskFilters) -> Sequence[Task]:
        raise NotImplementedError
