from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Sequence

from ..core.enums import WorkStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, translate_errors
from .model import NewWorkReport, WorkReport
from .repository import WorkReportRepository

_COLUMNS = """
    report_id, employee_id, report_date, name, email, department,
    status, work_report, on_duty, created_at
"""


def _to_model(r: dict) -> WorkReport:
    return WorkReport(
        report_id=int(r["report_id"]),
        employee_id=str(r["employee_id"]),
        report_date=r["report_date"],
        name=r["name"],
        email=r["email"],
        department=r["department"],
        status=WorkStatus(r["status"]),
        work_report=r.get("work_report"),
        on_duty=bool(r.get("on_duty")),
        created_at=r.get("created_at"),
    )


def _filters(
    employee_id: Optional[str], start_date: Optional[date], end_date: Optional[date]
) -> tuple[str, list[object]]:
    clauses = ["1=1"]
    params: list[object] = []
    if employee_id is not None:
        clauses.append("employee_id=%s")
        params.append(employee_id)
    if start_date is not None:
        clauses.append("report_date>=%s")
        params.append(start_date)
    if end_date is not None:
        clauses.append("report_date<=%s")
        params.append(end_date)
    return " AND ".join(clauses), params


class MySQLWorkReportRepository(WorkReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_key(self, employee_id: str, report_date: date) -> Optional[WorkReport]:
        with translate_errors("Work report lookup"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_reports
                WHERE employee_id=%s AND report_date=%s
                LIMIT 1
                """,
                (employee_id, report_date),
            )
            r = fetchone(cur)
            return _to_model(r) if r else None

    def create(self, report: NewWorkReport) -> WorkReport:
        with translate_errors("Work report insert"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_reports(
                    employee_id, report_date, name, email, department, status, work_report, on_duty
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    report.employee_id,
                    report.report_date,
                    report.name,
                    report.email,
                    report.department,
                    report.status.value,
                    report.work_report,
                    1 if report.on_duty else 0,
                ),
            )
            report_id = int(cur.lastrowid)
            cur.execute(f"SELECT {_COLUMNS} FROM work_reports WHERE report_id=%s", (report_id,))
            r = fetchone(cur)
            if not r:
                raise RuntimeError("Failed to create work report")
            return _to_model(r)

    def list_reports(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[WorkReport]:
        where, params = _filters(employee_id, start_date, end_date)
        with translate_errors("Work report listing"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_reports
                WHERE {where}
                ORDER BY report_date DESC, created_at DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_model(r) for r in fetchall(cur)]

    def count_reports(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> int:
        where, params = _filters(employee_id, start_date, end_date)
        with translate_errors("Work report count"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM work_reports WHERE {where}", tuple(params))
            r = fetchone(cur)
            return int(r["total"]) if r else 0

    def find_for_employees_on(self, employee_ids: Sequence[str], report_date: date) -> Dict[str, WorkReport]:
        if not employee_ids:
            return {}

        placeholders = ",".join(["%s"] * len(employee_ids))
        with translate_errors("Work report status lookup"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_reports
                WHERE report_date=%s AND employee_id IN ({placeholders})
                """,
                tuple([report_date] + list(employee_ids)),
            )
            return {str(r["employee_id"]): _to_model(r) for r in fetchall(cur)}
