from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Account storage used by authentication and the role resolver."""

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        role: Role,
        employee_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def touch_last_login(self, user_id: int, *, when: datetime) -> None:
        raise NotImplementedError

    def set_active_for_employee(self, employee_id: int, *, is_active: bool) -> int:
        raise NotImplementedError
