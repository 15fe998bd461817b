from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_iso_date
from ..common.validators import as_bool, optional_text
from ..core import constants
from ..core.enums import Role, WorkStatus
from ..core.exceptions import AuthorizationError, DuplicateReportError, ValidationError
from ..submission_queue.service import WorkReportQueue
from .model import NewWorkReport, WorkReport
from .repository import WorkReportRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("employeeId", "date", "name", "email", "department", "status")
ALREADY_SUBMITTED = "You have already submitted a work report for today"
VIEW_ALL_ROLES = {Role.MANAGER, Role.ADMIN, Role.SUPERADMIN}


class WorkReportService:
    """Use cases around daily work reports: validation, queued and direct submission, reads."""

    def __init__(self, reports: WorkReportRepository, queue: WorkReportQueue):
        self._reports = reports
        self._queue = queue

    @staticmethod
    def validate_submission(data: Mapping[str, Any]) -> NewWorkReport:
        if not isinstance(data, Mapping):
            raise ValidationError("Invalid request body")

        values = {name: optional_text(data.get(name)) for name in REQUIRED_FIELDS}
        if any(v is None for v in values.values()):
            raise ValidationError("Missing required fields")

        try:
            status = WorkStatus(values["status"])
        except ValueError:
            raise ValidationError('Invalid status. Must be "working" or "leave"')

        work_report = optional_text(data.get("workReport"))
        if status == WorkStatus.WORKING and not work_report:
            raise ValidationError('Work report is required when status is "working"')

        return NewWorkReport(
            employee_id=values["employeeId"],
            report_date=parse_iso_date(values["date"]),
            name=values["name"],
            email=values["email"],
            department=values["department"],
            status=status,
            work_report=work_report,
            on_duty=as_bool(data.get("onDuty")) if status == WorkStatus.WORKING else False,
        )

    def submit_queued(self, data: Mapping[str, Any]) -> str:
        """Validate and enqueue; returns the tracking id.

        The existence check here only spares the queue an obvious duplicate. Two
        requests can both pass it; the queue processor's own check settles the race.
        """

        report = self.validate_submission(data)
        if self._reports.find_by_key(report.employee_id, report.report_date):
            raise DuplicateReportError(ALREADY_SUBMITTED)
        return self._queue.enqueue(report)

    def submit_direct(self, data: Mapping[str, Any]) -> WorkReport:
        """Synchronous write path that bypasses the queue."""

        report = self.validate_submission(data)
        if self._reports.find_by_key(report.employee_id, report.report_date):
            raise DuplicateReportError(ALREADY_SUBMITTED)
        created = self._reports.create(report)
        logger.info("Created work report %s for %s on %s", created.report_id, report.employee_id, report.report_date)
        return created

    def list_reports(
        self,
        *,
        current_role: Role,
        current_employee_id: Optional[str],
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = constants.DEFAULT_REPORT_LIMIT,
        offset: int = 0,
    ) -> dict:
        if current_role not in VIEW_ALL_ROLES:
            if employee_id and employee_id != current_employee_id:
                raise AuthorizationError("You can only view your own reports")
            if not current_employee_id:
                raise AuthorizationError("You can only view your own reports")
            employee_id = current_employee_id

        if start_date and end_date and end_date < start_date:
            raise ValidationError("End date must be on or after start date")

        limit = min(max(int(limit), 1), constants.MAX_REPORT_LIMIT)
        offset = max(int(offset), 0)

        reports = self._reports.list_reports(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )
        total = self._reports.count_reports(employee_id=employee_id, start_date=start_date, end_date=end_date)
        return {"reports": [r.to_dict() for r in reports], "total": total}

    def statuses_for(self, employee_ids: Sequence[str], report_date: date) -> Dict[str, dict]:
        ids = [e.strip() for e in employee_ids if e and e.strip()]
        if not ids:
            raise ValidationError("No employee IDs provided")

        found = self._reports.find_for_employees_on(ids, report_date)
        return {
            employee_id: {
                "status": found[employee_id].status.value if employee_id in found else None,
                "exists": employee_id in found,
            }
            for employee_id in ids
        }
