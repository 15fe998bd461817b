from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Protocol, Sequence

from .model import NewWorkReport, WorkReport


class WorkReportRepository(Protocol):
    """Storage collaborator for work reports.

    `create` must raise TransientStorageError for failures worth retrying and a plain
    StorageError (DuplicateReportError for unique-key violations) for everything else.
    """

    def find_by_key(self, employee_id: str, report_date: date) -> Optional[WorkReport]:
        raise NotImplementedError

    def create(self, report: NewWorkReport) -> WorkReport:
        raise NotImplementedError

    def list_reports(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[WorkReport]:
        raise NotImplementedError

    def count_reports(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> int:
        raise NotImplementedError

    def find_for_employees_on(self, employee_ids: Sequence[str], report_date: date) -> Dict[str, WorkReport]:
        raise NotImplementedError
