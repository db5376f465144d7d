from __future__ import annotations

from flask_jwt_extended import create_access_token

from .model import User


def issue_token(user: User) -> str:
    """Sign an access token for ``user``; lifetime comes from JWT_ACCESS_TOKEN_EXPIRES."""
    return create_access_token(
        identity=str(user.user_id),
        additional_claims={"role": user.role.value, "employeeId": user.employee_id},
    )
