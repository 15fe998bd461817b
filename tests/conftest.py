from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from work_report_system.core.enums import WorkStatus
from work_report_system.core.exceptions import DuplicateReportError
from work_report_system.submission_queue.model import QueueSettings
from work_report_system.submission_queue.service import WorkReportQueue
from work_report_system.work_reports.model import NewWorkReport, WorkReport


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryWorkReports:
    """Storage collaborator double with scripted failures.

    `failures[employee_id]` is a list of exceptions raised by successive `create`
    calls for that employee; `always_fail[employee_id]` is raised on every call.
    """

    def __init__(self):
        self._rows: Dict[tuple, WorkReport] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.failures: Dict[str, List[Exception]] = {}
        self.always_fail: Dict[str, Exception] = {}
        self.lookup_failures: Dict[str, List[Exception]] = {}
        self.create_calls: List[str] = []
        self.lookup_calls: List[str] = []

    def find_by_key(self, employee_id: str, report_date: date) -> Optional[WorkReport]:
        self.lookup_calls.append(employee_id)
        planned = self.lookup_failures.get(employee_id)
        if planned:
            raise planned.pop(0)
        return self._rows.get((employee_id, report_date))

    def create(self, report: NewWorkReport) -> WorkReport:
        self.create_calls.append(report.employee_id)
        if report.employee_id in self.always_fail:
            raise self.always_fail[report.employee_id]
        planned = self.failures.get(report.employee_id)
        if planned:
            raise planned.pop(0)

        with self._lock:
            if report.key in self._rows:
                raise DuplicateReportError("A work report already exists for this employee on this date")
            row = WorkReport(
                report_id=self._next_id,
                employee_id=report.employee_id,
                report_date=report.report_date,
                name=report.name,
                email=report.email,
                department=report.department,
                status=report.status,
                work_report=report.work_report,
                on_duty=report.on_duty,
                created_at=datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc),
            )
            self._next_id += 1
            self._rows[report.key] = row
            return row

    def list_reports(self, *, employee_id=None, start_date=None, end_date=None, limit=50, offset=0):
        rows = [
            r
            for r in self._rows.values()
            if (employee_id is None or r.employee_id == employee_id)
            and (start_date is None or r.report_date >= start_date)
            and (end_date is None or r.report_date <= end_date)
        ]
        rows.sort(key=lambda r: r.report_date, reverse=True)
        return rows[offset : offset + limit]

    def count_reports(self, *, employee_id=None, start_date=None, end_date=None):
        return len(self.list_reports(employee_id=employee_id, start_date=start_date, end_date=end_date, limit=10**6))

    def find_for_employees_on(self, employee_ids, report_date):
        return {e: self._rows[(e, report_date)] for e in employee_ids if (e, report_date) in self._rows}

    @property
    def rows(self) -> List[WorkReport]:
        return list(self._rows.values())


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def reports() -> InMemoryWorkReports:
    return InMemoryWorkReports()


@pytest.fixture
def settings() -> QueueSettings:
    return QueueSettings(max_retries=3, backoff_base_ms=0)


@pytest.fixture
def queue(reports, settings, clock):
    q = WorkReportQueue(reports, settings, clock=clock)
    yield q
    q.stop()


@pytest.fixture
def make_report():
    def _make(employee_id: str = "E1", report_date: date = date(2025, 3, 1), **overrides) -> NewWorkReport:
        values = dict(
            employee_id=employee_id,
            report_date=report_date,
            name=f"Employee {employee_id}",
            email=f"{employee_id.lower()}@example.com",
            department="Engineering",
            status=WorkStatus.WORKING,
            work_report="did X",
            on_duty=False,
        )
        values.update(overrides)
        return NewWorkReport(**values)

    return _make


@pytest.fixture
def submission() -> dict:
    return {
        "employeeId": "E1",
        "date": "2025-03-01",
        "name": "Employee E1",
        "email": "e1@example.com",
        "department": "Engineering",
        "status": "working",
        "workReport": "did X",
    }
