from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .model import Department


class DepartmentRepository(Protocol):
    def list_all(self, *, include_inactive: bool = False) -> Sequence[Department]:
        raise NotImplementedError

    def get_by_id(self, department_id: int) -> Optional[Department]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Department]:
        raise NotImplementedError

    def create(self, fields: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, department_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError
