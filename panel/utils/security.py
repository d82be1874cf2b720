# panel/utils/security.py
from functools import wraps
from flask import current_app, jsonify, request


def _has_valid_key() -> bool:
    key = request.headers.get("X-PANEL-KEY", "")
    expected = current_app.config.get("PANEL_API_KEY", "")
    return bool(expected) and key == expected


def api_key_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not _has_valid_key():
            return jsonify({"error": "unauthorized"}), 401
        return fn(*args, **kwargs)
    return wrapper


def current_actor() -> str | None:
    actor = (request.headers.get("X-PANEL-USER") or "").strip()
    return actor[:120] or None
