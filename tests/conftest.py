from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from etms import create_app
from etms.auth.tokens import issue_token

from tests.inmemory import DEMO_PASSWORD, FakeConnection, build_container, identity_of


@pytest.fixture(scope="session")
def password_hash():
    return generate_password_hash(DEMO_PASSWORD)


@pytest.fixture
def conn():
    return FakeConnection()


@pytest.fixture
def container(password_hash, conn):
    return build_container(password_hash, conn=conn)


@pytest.fixture
def app(container):
    app = create_app(container=container, settings_module="etms.config.testing")
    app.config["API_KEYS"] = ["test-key"]
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth(app, container):
    """auth("manager") -> headers carrying a bearer token for that demo account."""

    def headers(name: str, **extra: str) -> dict:
        user = container.repos.users.get_by_id(identity_of(name).user_id)
        with app.app_context():
            token = issue_token(user)
        return {"Authorization": f"Bearer {token}", **extra}

    return headers


@pytest.fixture
def who():
    return identity_of
