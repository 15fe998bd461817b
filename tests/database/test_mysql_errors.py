from __future__ import annotations

from datetime import date, datetime

import mysql.connector
import pytest
from mysql.connector import errorcode

from work_report_system.core.enums import WorkStatus
from work_report_system.core.exceptions import DuplicateReportError, StorageError, TransientStorageError
from work_report_system.database.mysql_base import classify_mysql_error, ping, translate_errors
from work_report_system.work_reports.mysql_work_report_repository import MySQLWorkReportRepository
from work_report_system.work_reports.model import NewWorkReport


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self.lastrowid = None
        self._result = []

    def execute(self, sql, params=()):
        self._conn.statements.append((" ".join(sql.split()), params))
        if self._conn.error is not None:
            raise self._conn.error
        if sql.lstrip().upper().startswith("INSERT"):
            self.lastrowid = 7
            self._result = []
        else:
            self._result = list(self._conn.rows)

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)

    def close(self):
        pass


class FakeConnection:
    def __init__(self, rows=(), error=None):
        self.rows = list(rows)
        self.error = error
        self.statements = []
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=True):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeConnFactory:
    def __init__(self, conn):
        self.conn = conn

    def connect(self):
        return self.conn


ROW = {
    "report_id": 7,
    "employee_id": "E1",
    "report_date": date(2025, 3, 1),
    "name": "Employee E1",
    "email": "e1@example.com",
    "department": "Engineering",
    "status": "working",
    "work_report": "did X",
    "on_duty": 1,
    "created_at": datetime(2025, 3, 1, 9, 0),
}


def test_duplicate_key_maps_to_duplicate_report():
    exc = mysql.connector.errors.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)
    assert isinstance(classify_mysql_error(exc, "Work report insert"), DuplicateReportError)


@pytest.mark.parametrize(
    "exc",
    [
        mysql.connector.errors.DatabaseError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK),
        mysql.connector.errors.DatabaseError(msg="Lock wait timeout", errno=errorcode.ER_LOCK_WAIT_TIMEOUT),
        mysql.connector.errors.InterfaceError(msg="Lost connection", errno=errorcode.CR_SERVER_LOST),
        mysql.connector.errors.OperationalError(msg="MySQL server has gone away"),
    ],
)
def test_connection_and_lock_errors_are_transient(exc):
    mapped = classify_mysql_error(exc, "Work report insert")
    assert isinstance(mapped, TransientStorageError)
    assert str(mapped).startswith("Work report insert failed: ")


def test_other_errors_are_permanent():
    exc = mysql.connector.errors.ProgrammingError(msg="You have an error in your SQL syntax", errno=1064)
    mapped = classify_mysql_error(exc, "Work report lookup")
    assert type(mapped) is StorageError
    assert "SQL syntax" in str(mapped)


def test_translate_errors_chains_the_driver_error():
    original = mysql.connector.errors.DatabaseError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK)
    with pytest.raises(TransientStorageError) as info:
        with translate_errors("Work report insert"):
            raise original
    assert info.value.__cause__ is original


def test_translate_errors_leaves_other_exceptions_alone():
    with pytest.raises(KeyError):
        with translate_errors("Work report insert"):
            raise KeyError("x")


def test_repository_create_reads_back_inserted_row():
    conn = FakeConnection(rows=[ROW])
    repo = MySQLWorkReportRepository(FakeConnFactory(conn))

    created = repo.create(
        NewWorkReport(
            employee_id="E1",
            report_date=date(2025, 3, 1),
            name="Employee E1",
            email="e1@example.com",
            department="Engineering",
            status=WorkStatus.WORKING,
            work_report="did X",
            on_duty=True,
        )
    )

    assert created.report_id == 7
    assert created.on_duty is True
    assert conn.statements[0][0].startswith("INSERT INTO work_reports")
    assert conn.statements[0][1][5] == "working"
    assert conn.statements[1][1] == (7,)
    assert conn.committed and conn.closed


def test_repository_error_rolls_back_and_is_translated():
    conn = FakeConnection(
        error=mysql.connector.errors.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)
    )
    repo = MySQLWorkReportRepository(FakeConnFactory(conn))

    with pytest.raises(DuplicateReportError):
        repo.find_by_key("E1", date(2025, 3, 1))
    assert conn.rolled_back and conn.closed


def test_repository_list_builds_filters():
    conn = FakeConnection(rows=[ROW])
    repo = MySQLWorkReportRepository(FakeConnFactory(conn))

    rows = repo.list_reports(employee_id="E1", start_date=date(2025, 3, 1), limit=10, offset=5)

    assert [r.employee_id for r in rows] == ["E1"]
    sql, params = conn.statements[0]
    assert "employee_id=%s AND report_date>=%s" in sql
    assert params == ("E1", date(2025, 3, 1), 10, 5)


def test_ping_reports_unhealthy_database():
    conn = FakeConnection(error=mysql.connector.errors.InterfaceError(msg="Can't connect", errno=2003))
    result = ping(FakeConnFactory(conn))

    assert result["healthy"] is False
    assert "Can't connect" in result["error"]
    assert result["responseTimeMs"] >= 0
