from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import Flask, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.http import api_error, api_ok
from ..core import constants
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, DuplicateReportError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return api_error("Authentication required", 401)
            return view(*args, **kwargs)

        return wrapper

    def _current_role() -> Optional[Role]:
        try:
            return Role(session.get("role"))
        except ValueError:
            return None

    def _optional_date(name: str):
        value = request.args.get(name)
        return parse_iso_date(value) if value else None

    @app.route("/api/work-reports/submit", methods=["POST"], endpoint="submit_work_report")
    def submit_work_report():
        try:
            queue_id = container.work_report_service.submit_queued(request.get_json(silent=True) or {})
        except ValidationError as e:
            return api_error(str(e), 400)
        except DuplicateReportError as e:
            return api_error(str(e), 409)
        except Exception:
            logger.exception("Queue work report error")
            return api_error("Failed to queue work report", 500)

        return api_ok({"queueId": queue_id}, message="Work report queued for processing", status=202)

    @app.route("/api/work-reports", methods=["POST"], endpoint="create_work_report")
    def create_work_report():
        try:
            report = container.work_report_service.submit_direct(request.get_json(silent=True) or {})
        except ValidationError as e:
            return api_error(str(e), 400)
        except DuplicateReportError as e:
            return api_error(str(e), 409)
        except Exception:
            logger.exception("Create work report error")
            return api_error("Failed to create work report", 500)

        return api_ok(report.to_dict(), message="Work report submitted", status=201)

    @app.route("/api/work-reports", methods=["GET"], endpoint="list_work_reports")
    @login_required
    def list_work_reports():
        role = _current_role()
        if role is None:
            return api_error("Forbidden", 403)
        try:
            data = container.work_report_service.list_reports(
                current_role=role,
                current_employee_id=session.get("employee_id"),
                employee_id=request.args.get("employeeId") or None,
                start_date=_optional_date("startDate"),
                end_date=_optional_date("endDate"),
                limit=request.args.get("limit", constants.DEFAULT_REPORT_LIMIT, type=int),
                offset=request.args.get("offset", 0, type=int),
            )
        except ValidationError as e:
            return api_error(str(e), 400)
        except AuthorizationError as e:
            return api_error(str(e), 403)
        except Exception:
            logger.exception("Fetch work reports error")
            return api_error("Failed to fetch work reports", 500)

        return api_ok(data)

    @app.route("/api/work-reports/status", methods=["GET"], endpoint="work_report_statuses")
    @login_required
    def work_report_statuses():
        employee_ids = request.args.get("employeeIds")
        report_date = request.args.get("date")
        if not employee_ids or not report_date:
            return api_error("Missing required parameters: employeeIds and date", 400)

        try:
            data = container.work_report_service.statuses_for(employee_ids.split(","), parse_iso_date(report_date))
        except ValidationError as e:
            return api_error(str(e), 400)
        except Exception:
            logger.exception("Get work report statuses error")
            return api_error("Failed to fetch work report statuses", 500)

        return api_ok(data)
