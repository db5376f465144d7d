from __future__ import annotations

import logging
import sys
import time

from flask import Flask, g, request

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

request_logger = logging.getLogger("etms.requests")


def configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()

    root = logging.getLogger("etms")
    root.setLevel(level)
    if not any(getattr(h, "_etms_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._etms_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = getattr(g, "request_started", None)
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        request_logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.full_path.rstrip("?"),
            response.status_code,
            elapsed_ms,
        )
        return response
