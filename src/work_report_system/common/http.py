from __future__ import annotations

from typing import Any, Optional

from flask import jsonify


def api_ok(data: Any = None, *, message: Optional[str] = None, status: int = 200):
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return jsonify(body), status


def api_error(error: str, status: int):
    return jsonify({"success": False, "error": error}), status
