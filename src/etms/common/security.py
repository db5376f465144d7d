from __future__ import annotations

from functools import wraps

from flask import current_app, request

from ..core.exceptions import AuthenticationError


def api_key_required(view):
    """Demand an X-API-Key header; when API_KEYS is configured the key must be listed."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        api_key = request.headers.get("X-API-Key", "").strip()
        if not api_key:
            raise AuthenticationError("API key required")

        valid_keys = current_app.config.get("API_KEYS") or []
        if valid_keys and api_key not in valid_keys:
            raise AuthenticationError("Invalid API key")

        return view(*args, **kwargs)

    return wrapper
