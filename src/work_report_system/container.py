from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .database.connection import DBConfig, DatabaseConnection
from .database.mysql_base import ping
from .submission_queue.model import QueueSettings
from .submission_queue.service import WorkReportQueue
from .work_reports.mysql_work_report_repository import MySQLWorkReportRepository
from .work_reports.repository import WorkReportRepository
from .work_reports.service import WorkReportService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection | None

    work_reports_repo: WorkReportRepository

    report_queue: WorkReportQueue
    work_report_service: WorkReportService

    db_health: Callable[[], dict]


def build_container(*, db_config: dict, queue_settings: QueueSettings | None = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    work_reports_repo = MySQLWorkReportRepository(conn)

    report_queue = WorkReportQueue(work_reports_repo, queue_settings or QueueSettings())
    work_report_service = WorkReportService(work_reports_repo, report_queue)

    return Container(
        conn=conn,
        work_reports_repo=work_reports_repo,
        report_queue=report_queue,
        work_report_service=work_report_service,
        db_health=lambda: ping(conn),
    )
