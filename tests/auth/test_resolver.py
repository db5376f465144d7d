from __future__ import annotations

from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from etms.core.enums import Role
from etms.core.exceptions import AuthenticationError


@pytest.fixture
def resolver(container):
    return container.resolver


def test_missing_or_malformed_header(app, resolver):
    with app.app_context():
        for header in (None, "", "Token abc", "Bearer "):
            with pytest.raises(AuthenticationError, match="Not authorized to access this route"):
                resolver.resolve(header)


def test_garbage_token_is_invalid(app, resolver):
    with app.app_context():
        with pytest.raises(AuthenticationError, match="Invalid token"):
            resolver.resolve("Bearer not-a-jwt")


def test_expired_token(app, resolver):
    with app.app_context():
        token = create_access_token(identity="4", expires_delta=timedelta(seconds=-10))
        with pytest.raises(AuthenticationError, match="Token expired"):
            resolver.resolve(f"Bearer {token}")


def test_role_is_read_from_the_account(app, resolver):
    with app.app_context():
        # the token claims admin but the account is an employee
        token = create_access_token(identity="4", additional_claims={"role": "admin"})
        identity = resolver.resolve(f"Bearer {token}")

    assert identity.role == Role.EMPLOYEE
    assert identity.employee_id == 4


def test_deactivated_user_rejected(app, container, resolver):
    container.repos.users.set_active_for_employee(4, is_active=False)
    with app.app_context():
        token = create_access_token(identity="4")
        with pytest.raises(AuthenticationError, match="User not found or inactive"):
            resolver.resolve(f"Bearer {token}")


def test_unknown_user_rejected(app, resolver):
    with app.app_context():
        token = create_access_token(identity="999")
        with pytest.raises(AuthenticationError, match="User not found or inactive"):
            resolver.resolve(f"Bearer {token}")


def test_resolve_optional_without_header(resolver):
    assert resolver.resolve_optional(None) is None
