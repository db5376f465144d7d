from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from ..access.scope import Scope
from ..common.pagination import Page, PageRequest
from .model import Project, ProjectFilters


class ProjectRepository(Protocol):
    def get_by_id(self, project_id: int) -> Optional[Project]:
        raise NotImplementedError

    def create(self, fields: dict[str, Any], *, members: Sequence[int]) -> int:
        raise NotImplementedError

    def update(self, project_id: int, changes: dict[str, Any], *, members: Optional[Sequence[int]] = None) -> bool:
        raise NotImplementedError

    def delete(self, project_id: int) -> bool:
        """Remove the project; its tasks stay and lose the project link."""
        raise NotImplementedError

    def list_page(self, scope: Scope, filters: ProjectFilters, page: PageRequest) -> Page[Project]:
        raise NotImplementedError
