from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..access.policy import Target
from ..core.enums import ProjectStatus


@dataclass(frozen=True)
class Project:
    project_id: int
    name: str
    description: str
    manager_id: int
    start_date: date
    end_date: date
    status: ProjectStatus = ProjectStatus.PLANNING
    progress: int = 0
    team_members: tuple[int, ...] = ()
    created_at: Optional[datetime] = None
    manager_name: Optional[str] = None
    member_names: tuple[str, ...] = ()

    @property
    def target(self) -> Target:
        """Team members own the project; its manager authored it."""
        return Target.of_many(self.team_members, author_id=self.manager_id)


@dataclass(frozen=True)
class ProjectFilters:
    status: Optional[ProjectStatus] = None
    manager_id: Optional[int] = None
    search: Optional[str] = None

    def matches(self, project: Project) -> bool:
        if self.status and project.status != self.status:
            return False
        if self.manager_id is not None and project.manager_id != self.manager_id:
            return False
        if self.search and self.search.lower() not in project.name.lower():
            return False
        return True
