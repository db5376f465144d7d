from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..access.policy import Identity
from ..common.datetime_utils import now_local
from ..common.validators import require_enum, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..employees.service import EmployeeService
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Use cases: login, register, current account, token refresh."""

    def __init__(self, users: UserRepository, employees: EmployeeRepository, employee_service: EmployeeService):
        self._users = users
        self._employees = employees
        self._employee_service = employee_service

    def login(self, email: str, password: str) -> tuple[User, Optional[Employee]]:
        email = require_non_empty(email, "email").lower()
        password = require_non_empty(password, "password")

        user = self._users.get_by_email(email)
        if user is None:
            raise AuthenticationError("Invalid credentials")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False
        if not ok:
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        self._users.touch_last_login(user.user_id, when=now_local())
        logger.info("login user=%s role=%s", user.user_id, user.role.value)
        return user, self._linked_employee(user)

    def register(
        self,
        *,
        email: str,
        password: str,
        role: Any = None,
        employee_data: Optional[Mapping[str, Any]] = None,
        caller: Optional[Identity] = None,
    ) -> tuple[User, Optional[Employee]]:
        email = require_non_empty(email, "email").lower()
        require_min_length(password or "", "password", MIN_PASSWORD_LENGTH)
        role = require_enum(role or Role.EMPLOYEE.value, Role, "role")

        if role != Role.EMPLOYEE:
            if caller is None or not caller.role.is_privileged:
                raise AuthorizationError(f"Only admin or HR may register a '{role.value}' account")
            if role == Role.ADMIN and caller.role != Role.ADMIN:
                raise AuthorizationError("Only an admin may register another admin")

        if self._users.get_by_email(email):
            raise ConflictError("User already exists with this email")

        employee = None
        if employee_data:
            if not isinstance(employee_data, Mapping):
                raise ValidationError("employeeData must be an object")
            employee = self._employee_service.create_profile(employee_data, email=email)

        user_id = self._users.create_user(
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            employee_id=employee.employee_id if employee else None,
        )
        logger.info("registered user=%s role=%s employee=%s", user_id, role.value, employee.employee_id if employee else "-")
        return self._require_user(user_id), employee

    def me(self, identity: Identity) -> tuple[User, Optional[Employee]]:
        user = self._require_user(identity.user_id)
        return user, self._linked_employee(user)

    def refresh(self, identity: Identity) -> User:
        user = self._require_user(identity.user_id)
        if not user.is_active:
            raise AuthenticationError("User not found or inactive")
        return user

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _linked_employee(self, user: User) -> Optional[Employee]:
        if user.employee_id is None:
            return None
        return self._employees.get_by_id(user.employee_id)
