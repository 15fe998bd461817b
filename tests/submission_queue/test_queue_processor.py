from __future__ import annotations

import threading
import time

import pytest

from work_report_system.core.enums import QueueItemState
from work_report_system.core.exceptions import DuplicateReportError, StorageError, TransientStorageError
from work_report_system.submission_queue.model import QueueEvent, QueueSettings
from work_report_system.submission_queue.service import WorkReportQueue


def _completion_order(queue):
    order = []
    queue.subscribe(QueueEvent.COMPLETED, lambda item: order.append(item.payload.employee_id))
    return order


def test_concurrent_duplicates_persist_a_single_row(queue, reports, make_report):
    payload = make_report("E1")
    ids = []
    ids_lock = threading.Lock()

    def submit():
        item_id = queue.enqueue(payload)
        with ids_lock:
            ids.append(item_id)

    threads = [threading.Thread(target=submit) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    queue.drain(timeout=5)

    assert len(reports.rows) == 1
    assert reports.create_calls == ["E1"]

    items = [queue.get_status(i) for i in ids]
    assert all(i.state == QueueItemState.COMPLETED for i in items)
    assert {i.result.report_id for i in items} == {reports.rows[0].report_id}
    assert sum(1 for i in items if not i.deduplicated) == 1


def test_transient_failure_moves_item_behind_later_submissions(queue, reports, make_report):
    reports.failures["A"] = [TransientStorageError("connection reset")]
    order = _completion_order(queue)

    a = queue.enqueue(make_report("A"))
    queue.enqueue(make_report("B"))
    queue.enqueue(make_report("C"))
    queue.drain(timeout=5)

    assert order == ["B", "C", "A"]
    item = queue.get_status(a)
    assert item.state == QueueItemState.COMPLETED
    assert item.retries == 1
    assert item.attempts == 2
    assert item.error is None


def test_retries_exhaust_after_max_attempts(queue, reports, make_report):
    reports.always_fail["E1"] = TransientStorageError("lock wait timeout")

    item_id = queue.enqueue(make_report("E1"))
    queue.drain(timeout=5)

    item = queue.get_status(item_id)
    assert item.state == QueueItemState.FAILED
    assert item.retries == 3
    assert item.attempts == 3
    assert item.error == "lock wait timeout"
    assert reports.create_calls == ["E1", "E1", "E1"]


def test_non_transient_failure_is_not_retried(queue, reports, make_report):
    reports.always_fail["E1"] = DuplicateReportError("Duplicate entry 'E1-2025-03-01'")

    item_id = queue.enqueue(make_report("E1"))
    queue.drain(timeout=5)

    item = queue.get_status(item_id)
    assert item.state == QueueItemState.FAILED
    assert item.retries == 0
    assert item.attempts == 1
    assert item.error == "Duplicate entry 'E1-2025-03-01'"


def test_unexpected_error_fails_without_retry(queue, reports, make_report):
    reports.always_fail["E1"] = RuntimeError("driver bug")

    item_id = queue.enqueue(make_report("E1"))
    queue.drain(timeout=5)

    item = queue.get_status(item_id)
    assert item.state == QueueItemState.FAILED
    assert item.retries == 0
    assert item.error == "driver bug"


def test_existing_row_from_direct_write_completes_without_insert(queue, reports, make_report):
    existing = reports.create(make_report("E1"))
    reports.create_calls.clear()

    item_id = queue.enqueue(make_report("E1", work_report="second attempt"))
    queue.drain(timeout=5)

    item = queue.get_status(item_id)
    assert item.state == QueueItemState.COMPLETED
    assert item.deduplicated is True
    assert item.result.report_id == existing.report_id
    assert reports.create_calls == []


def test_transient_lookup_failure_is_retried(queue, reports, make_report):
    reports.lookup_failures["E1"] = [TransientStorageError("server has gone away")]

    item_id = queue.enqueue(make_report("E1"))
    queue.drain(timeout=5)

    item = queue.get_status(item_id)
    assert item.state == QueueItemState.COMPLETED
    assert item.retries == 1
    assert len(reports.rows) == 1


def test_terminal_state_never_regresses(queue, reports, make_report):
    done = queue.enqueue(make_report("E1"))
    reports.always_fail["E2"] = StorageError("bad data")
    failed = queue.enqueue(make_report("E2"))
    queue.drain(timeout=5)

    reports.always_fail.pop("E2")
    queue.enqueue(make_report("E3"))
    queue.enqueue(make_report("E2"))
    queue.drain(timeout=5)

    assert queue.get_status(done).state == QueueItemState.COMPLETED
    assert queue.get_status(failed).state == QueueItemState.FAILED
    assert queue.get_status(failed).error == "bad data"


def test_listener_errors_do_not_touch_item_state(queue, make_report):
    def broken(_item):
        raise ValueError("listener exploded")

    queue.subscribe(QueueEvent.COMPLETED, broken)
    queue.subscribe(QueueEvent.ENQUEUED, broken)

    item_id = queue.enqueue(make_report("E1"))
    queue.drain(timeout=5)

    assert queue.get_status(item_id).state == QueueItemState.COMPLETED


def test_failed_event_carries_final_error(queue, reports, make_report):
    seen = []
    queue.subscribe(QueueEvent.FAILED, seen.append)
    reports.always_fail["E1"] = StorageError("rejected")

    queue.enqueue(make_report("E1"))
    queue.drain(timeout=5)

    assert [i.error for i in seen] == ["rejected"]


def test_backoff_grows_exponentially():
    settings = QueueSettings(max_retries=3, backoff_base_ms=500)
    assert [settings.backoff_seconds(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]


def test_settings_reject_nonsense_retry_limit():
    with pytest.raises(ValueError):
        QueueSettings(max_retries=0)


def test_background_worker_processes_submissions(reports, make_report):
    queue = WorkReportQueue(reports, QueueSettings(backoff_base_ms=10))
    reports.failures["E2"] = [TransientStorageError("timeout")]
    queue.start()
    try:
        ids = [queue.enqueue(make_report("E1")), queue.enqueue(make_report("E2"))]

        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            if all(queue.get_status(i).state.is_terminal for i in ids):
                break
            time.sleep(0.01)

        assert [queue.get_status(i).state for i in ids] == [QueueItemState.COMPLETED, QueueItemState.COMPLETED]
        with pytest.raises(RuntimeError):
            queue.drain()
    finally:
        queue.stop()

    assert not queue.is_running
    assert len(reports.rows) == 2
