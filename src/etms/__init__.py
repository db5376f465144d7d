"""Employee Tracking Management System: role-scoped REST API."""
from __future__ import annotations

import atexit
import importlib
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_jwt_extended import JWTManager

from .attendance.controller import register as register_attendance
from .auth.controller import register as register_auth
from .common.errors import register_error_handlers
from .common.logging_setup import configure_logging
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .departments.controller import register as register_departments
from .employees.controller import register as register_employees
from .health.controller import register as register_health
from .leave.controller import register as register_leave
from .locations.controller import register as register_locations
from .payroll.controller import register as register_payroll
from .performance.controller import register as register_performance
from .projects.controller import register as register_projects
from .reports.controller import register as register_reports
from .tasks.controller import register as register_tasks

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[2] / "database"


def create_app(*, container: Optional[Container] = None, settings_module: Optional[str] = None) -> Flask:
    """Application factory.

    Passing ``container`` skips every database step (tests hand in in-memory repositories).
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.config.update(
        SECRET_KEY=settings.SECRET_KEY,
        JWT_SECRET_KEY=settings.JWT_SECRET_KEY,
        JWT_ACCESS_TOKEN_EXPIRES=timedelta(days=int(getattr(settings, "JWT_EXPIRES_DAYS", 7))),
        DEBUG=bool(getattr(settings, "DEBUG", False)),
        TESTING=bool(getattr(settings, "TESTING", False)),
        LOG_LEVEL=getattr(settings, "LOG_LEVEL", "INFO"),
        API_KEYS=list(getattr(settings, "API_KEYS", [])),
        MAX_PAGE_SIZE=int(getattr(settings, "MAX_PAGE_SIZE", 100)),
        APP_ENV=settings_module.rsplit(".", 1)[-1],
    )
    app.json.sort_keys = False

    configure_logging(app)
    register_error_handlers(app)
    JWTManager(app)

    if container is None:
        container = _build_database_container(settings)

    app.extensions["etms.container"] = container

    register_health(app, container)
    register_auth(app, container)
    register_employees(app, container)
    register_departments(app, container)
    register_attendance(app, container)
    register_leave(app, container)
    register_projects(app, container)
    register_tasks(app, container)
    register_performance(app, container)
    register_payroll(app, container)
    register_locations(app, container)
    register_reports(app, container)

    logger.info("app ready settings=%s", settings_module)
    return app


def _build_database_container(settings) -> Container:
    db_config = settings.DB_CONFIG
    logger.info(
        "database %s@%s:%s/%s",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
        logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
        ensure_demo_users(db_config)

    container = build_container(db_config=db_config, settings=settings)
    container.conn.open()
    atexit.register(container.conn.close)
    return container
