"""Top-level error boundary: every failure leaves as {success: false, message}."""
from __future__ import annotations

import logging
import traceback

import mysql.connector
from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError
from ..database.mysql_base import is_duplicate_key
from .responses import error_body

logger = logging.getLogger(__name__)


def _log_security_event(status: int, message: str) -> None:
    identity = getattr(g, "identity", None)
    logger.warning(
        "security event status=%s method=%s path=%s user=%s ip=%s message=%s",
        status,
        request.method,
        request.path,
        identity.user_id if identity else "-",
        request.remote_addr,
        message,
    )


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        if exc.status_code in (401, 403):
            _log_security_event(exc.status_code, exc.message)
        return jsonify(error_body(exc.message, errors=exc.errors)), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        status = exc.code or 500
        return jsonify(error_body(exc.description or exc.name)), status

    @app.errorhandler(mysql.connector.IntegrityError)
    def handle_integrity_error(exc: mysql.connector.IntegrityError):
        if is_duplicate_key(exc):
            return jsonify(error_body("Duplicate field value. Please use another value!")), 409
        return handle_unexpected(exc)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        if bool(app.config.get("DEBUG", False)):
            body = error_body(str(exc) or exc.__class__.__name__, error=exc.__class__.__name__, stack=traceback.format_exc())
        else:
            body = error_body("Something went wrong!")
        return jsonify(body), 500
