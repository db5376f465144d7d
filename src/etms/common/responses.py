from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from flask import jsonify

from .pagination import Page


def ok(data: Any = None, *, status: int = 200, message: Optional[str] = None, **extra: Any):
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def created(data: Any):
    return ok(data, status=201)


def paged(page: Page, serialize: Callable[[Any], dict]):
    return ok(
        [serialize(record) for record in page.records],
        pagination=page.pagination(),
        summary=page.summary,
    )


def error_body(message: str, *, errors: Optional[Iterable[dict]] = None, **extra: Any) -> dict:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = list(errors)
    body.update(extra)
    return body
