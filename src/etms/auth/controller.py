from __future__ import annotations

from typing import Optional

from flask import Flask, request

from ..common.datetime_utils import iso
from ..common.http import json_body
from ..common.responses import created, ok
from ..container import Container
from ..employees.controller import serialize_employee_summary
from ..employees.model import Employee
from .model import User
from .resolver import current_identity
from .tokens import issue_token


def serialize_user(user: User, employee: Optional[Employee] = None) -> dict:
    return {
        "id": user.user_id,
        "email": user.email,
        "role": user.role.value,
        "isActive": user.is_active,
        "lastLogin": iso(user.last_login),
        "employee": serialize_employee_summary(employee) if employee else None,
    }


def register(app: Flask, container: Container) -> None:
    require = container.resolver.require
    service = container.auth_service

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        payload = json_body()
        user, employee = service.login(payload.get("email", ""), payload.get("password", ""))
        return ok({"user": serialize_user(user, employee), "token": issue_token(user)}, message="Login successful")

    @app.route("/api/auth/register", methods=["POST"], endpoint="register")
    def register_account():
        payload = json_body()
        caller = container.resolver.resolve_optional(request.headers.get("Authorization"))
        user, employee = service.register(
            email=payload.get("email", ""),
            password=payload.get("password", ""),
            role=payload.get("role"),
            employee_data=payload.get("employeeData"),
            caller=caller,
        )
        return created({"user": serialize_user(user, employee), "token": issue_token(user)})

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @require()
    def me():
        user, employee = service.me(current_identity())
        return ok({"user": serialize_user(user, employee)})

    @app.route("/api/auth/refresh", methods=["POST"], endpoint="refresh_token")
    @require()
    def refresh_token():
        user = service.refresh(current_identity())
        return ok({"token": issue_token(user)})
