from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import g, request
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import ExpiredSignatureError, PyJWTError

from ..access.policy import Identity
from ..core.enums import ALL_ROLES, Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from .repository import UserRepository

logger = logging.getLogger(__name__)


def current_identity() -> Identity:
    identity = getattr(g, "identity", None)
    if identity is None:
        raise AuthenticationError("Not authorized to access this route")
    return identity


class RoleResolver:
    """Turns the bearer token of a request into an Identity.

    The token only proves who the caller is; the role and the active flag are
    re-read from the account on every request so deactivation and role changes
    take effect immediately.
    """

    def __init__(self, users: UserRepository):
        self._users = users

    def resolve(self, authorization: Optional[str]) -> Identity:
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationError("Not authorized to access this route")
        token = authorization[len("Bearer "):].strip()
        if not token:
            raise AuthenticationError("Not authorized to access this route")

        try:
            claims = decode_token(token)
        except ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except (PyJWTError, JWTExtendedException):
            raise AuthenticationError("Invalid token")

        try:
            user_id = int(claims["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Invalid token")

        user = self._users.get_by_id(user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return Identity(user_id=user.user_id, role=user.role, employee_id=user.employee_id, email=user.email)

    def resolve_optional(self, authorization: Optional[str]) -> Optional[Identity]:
        if not authorization:
            return None
        return self.resolve(authorization)

    def require(self, *roles: Role):
        """Route decorator: resolve the caller and demand one of ``roles`` (any role when empty)."""
        allowed = frozenset(roles or ALL_ROLES)

        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                identity = self.resolve(request.headers.get("Authorization"))
                if identity.role not in allowed:
                    raise AuthorizationError(f"User role '{identity.role.value}' is not authorized to access this route")
                g.identity = identity
                return view(*args, **kwargs)

            return wrapper

        return decorator
