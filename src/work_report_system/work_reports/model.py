from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..common.datetime_utils import isoformat
from ..core.enums import WorkStatus


@dataclass(frozen=True)
class NewWorkReport:
    """Validated submission, ready to persist.

    Built only by WorkReportService.validate_submission; the queue trusts it as-is.
    """

    employee_id: str
    report_date: date
    name: str
    email: str
    department: str
    status: WorkStatus
    work_report: Optional[str] = None
    on_duty: bool = False

    @property
    def key(self) -> Tuple[str, date]:
        return self.employee_id, self.report_date

    def to_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "date": self.report_date.strftime("%Y-%m-%d"),
            "name": self.name,
            "email": self.email,
            "department": self.department,
            "status": self.status.value,
            "workReport": self.work_report,
            "onDuty": self.on_duty,
        }


@dataclass(frozen=True)
class WorkReport:
    """Persisted daily report (one per employee per day)."""

    report_id: int
    employee_id: str
    report_date: date
    name: str
    email: str
    department: str
    status: WorkStatus
    work_report: Optional[str]
    on_duty: bool
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.report_id,
            "employeeId": self.employee_id,
            "date": self.report_date.strftime("%Y-%m-%d"),
            "name": self.name,
            "email": self.email,
            "department": self.department,
            "status": self.status.value,
            "workReport": self.work_report,
            "onDuty": self.on_duty,
            "createdAt": isoformat(self.created_at),
        }
