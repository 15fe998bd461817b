from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, request, session

from ..common.datetime_utils import isoformat, utc_now
from ..common.http import api_error, api_ok
from ..core import constants
from ..core.enums import Role
from ..container import Container

logger = logging.getLogger(__name__)

ADMIN_ROLES = {Role.ADMIN.value, Role.SUPERADMIN.value}


def register(app: Flask, container: Container) -> None:
    queue = container.report_queue

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return api_error("Authentication required", 401)
            if session.get("role") not in ADMIN_ROLES:
                return api_error("Forbidden", 403)
            return view(*args, **kwargs)

        return wrapper

    def _flag(name: str, default: bool) -> bool:
        value = request.args.get(name)
        if value is None:
            return default
        return value.strip().lower() == "true"

    @app.route("/api/work-reports/submit", methods=["GET"], endpoint="queued_report_status")
    def queued_report_status():
        queue_id = (request.args.get("id") or "").strip()
        if not queue_id:
            return api_error("Queue ID is required", 400)

        item = queue.get_status(queue_id)
        if item is None:
            # Unknown ids may simply have been cleaned up from history.
            return api_error("Queue item not found", 404)
        return api_ok(item.to_dict())

    @app.route("/api/queue", methods=["GET"], endpoint="queue_status")
    @admin_required
    def queue_status():
        return api_ok({"queue": queue.get_queue_status().to_dict()})

    @app.route("/api/queue/stats", methods=["GET"], endpoint="queue_stats")
    @admin_required
    def queue_stats():
        status = queue.get_queue_status()
        database = container.db_health()
        healthy = bool(database.get("healthy")) and status.queue_healthy

        data = {
            "database": database,
            "queue": {
                **status.to_dict(),
                "workerRunning": queue.is_running,
                "recentFailures": [
                    i.to_failure_dict() for i in queue.get_recent_failures(constants.DEFAULT_RECENT_FAILURES)
                ],
            },
            "timestamp": isoformat(utc_now()),
        }
        message = "System healthy" if healthy else "System degraded - check details"
        return api_ok(data, message=message, status=200 if healthy else 503)

    @app.route("/api/queue/maintenance", methods=["POST"], endpoint="queue_maintenance")
    @admin_required
    def queue_maintenance():
        clear_queue = _flag("clearQueue", False)
        prune = _flag("prune", True)

        result = {
            "queueCleanup": {"success": False, "clearedItems": 0},
            "retention": {"success": False, "prunedItems": 0},
            "timestamp": isoformat(utc_now()),
        }
        try:
            if prune:
                result["retention"] = {"success": True, "prunedItems": queue.prune_history()}
            if clear_queue:
                before = queue.get_queue_status()
                queue.clear_history()
                result["queueCleanup"] = {"success": True, "clearedItems": before.total_processed}
        except Exception:
            logger.exception("Queue maintenance error")
            return api_error("Queue maintenance failed", 500)

        logger.info("Queue maintenance finished: %s", result)
        return api_ok(result, message="Maintenance completed")
