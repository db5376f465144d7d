from __future__ import annotations

import logging

from flask import Flask, current_app, jsonify

from ..common.datetime_utils import now_local
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        db_ok = container.conn.ping()
        if not db_ok:
            logger.error("health check: database unreachable")
        body = {
            "success": db_ok,
            "status": "OK" if db_ok else "DEGRADED",
            "timestamp": now_local().isoformat(),
            "environment": current_app.config.get("APP_ENV", "development"),
            "database": "connected" if db_ok else "unreachable",
        }
        return jsonify(body), 200 if db_ok else 503
