from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from ..common.datetime_utils import utc_now
from ..core.exceptions import StorageError, TransientStorageError
from ..work_reports.repository import WorkReportRepository
from .model import QueueEvent, QueueItem, QueueSettings
from .store import QueueStore

logger = logging.getLogger(__name__)

Listener = Callable[[QueueItem], None]


class QueueProcessor:
    """Single consumer that turns pending submissions into persisted reports.

    Per item: mark processing, look for an existing report with the same
    (employee, date) key, create one if absent, then record the outcome. Because
    only this loop reads-then-writes a key, two queued submissions for the same
    day can never both insert.

    Transient storage errors put the item back at the tail after an exponential
    backoff, so one failing submission does not hold up the ones behind it.
    """

    def __init__(
        self,
        store: QueueStore,
        reports: WorkReportRepository,
        settings: QueueSettings,
        *,
        clock: Callable = utc_now,
        thread_name: str = "work-report-queue",
    ):
        self._store = store
        self._reports = reports
        self._settings = settings
        self._clock = clock
        self._thread_name = thread_name
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        self._listeners: Dict[QueueEvent, List[Listener]] = {event: [] for event in QueueEvent}
        self._listeners_lock = threading.Lock()

    # -------- lifecycle --------
    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name=self._thread_name, daemon=True)
        self._thread.start()
        logger.info("Work report queue worker started")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stopping.set()
        self._store.wake()
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Work report queue worker did not stop within %ss", timeout)
        else:
            self._thread = None
            logger.info("Work report queue worker stopped")

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                self._process_next(timeout=None, should_stop=self._stopping.is_set)
            except Exception:
                # Keep the worker alive; the item (if any) already carries its own error.
                logger.exception("Work report queue worker loop error")

    # -------- synchronous driving --------
    def process_next(self, timeout: Optional[float] = 0.0) -> bool:
        """Process one item if one is ready within `timeout`. Returns True if it did."""

        self._ensure_single_consumer()
        return self._process_next(timeout=timeout, should_stop=None)

    def drain(self, timeout: Optional[float] = None) -> int:
        """Process until no pending, processing or retrying items remain.

        Used by tests and maintenance scripts when the background worker is not running.
        """

        self._ensure_single_consumer()
        deadline = None if timeout is None else time.monotonic() + timeout
        processed = 0
        while self._store.has_work():
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError("Queue did not drain in time")
            if self._process_next(timeout=remaining if remaining is not None else 1.0, should_stop=None):
                processed += 1
        return processed

    def _ensure_single_consumer(self) -> None:
        if self.is_running and threading.current_thread() is not self._thread:
            raise RuntimeError("The background worker is running; it is the only allowed consumer")

    # -------- events --------
    def add_listener(self, event: QueueEvent, callback: Listener) -> None:
        with self._listeners_lock:
            self._listeners[QueueEvent(event)].append(callback)

    def emit(self, event: QueueEvent, item: QueueItem) -> None:
        with self._listeners_lock:
            callbacks = list(self._listeners[event])
        for callback in callbacks:
            try:
                callback(item)
            except Exception:
                logger.exception("Queue listener for %s failed (item %s)", event.value, item.id)

    # -------- core algorithm --------
    def _process_next(self, *, timeout: Optional[float], should_stop) -> bool:
        item_id = self._store.take(timeout, should_stop=should_stop)
        if item_id is None:
            return False
        self._process(item_id)
        return True

    def _process(self, item_id: str) -> None:
        item = self._store.mark_processing(item_id, now=self._clock())
        payload = item.payload
        logger.debug("Processing queue item %s (attempt %s)", item.id, item.attempts)

        try:
            existing = self._reports.find_by_key(payload.employee_id, payload.report_date)
            if existing is not None:
                done = self._store.complete(item.id, result=existing, now=self._clock(), deduplicated=True)
                logger.info(
                    "Queue item %s matched existing report %s for %s on %s",
                    item.id,
                    existing.report_id,
                    payload.employee_id,
                    payload.report_date,
                )
                self.emit(QueueEvent.COMPLETED, done)
                return

            created = self._reports.create(payload)
        except TransientStorageError as exc:
            self._retry_or_fail(item, str(exc))
            return
        except StorageError as exc:
            self._fail(item, str(exc), retries=item.retries)
            return
        except Exception as exc:
            logger.exception("Unexpected error while processing queue item %s", item.id)
            self._fail(item, str(exc) or exc.__class__.__name__, retries=item.retries)
            return

        done = self._store.complete(item.id, result=created, now=self._clock())
        logger.info("Queue item %s completed: report %s", item.id, created.report_id)
        self.emit(QueueEvent.COMPLETED, done)

    def _retry_or_fail(self, item: QueueItem, error: str) -> None:
        retries = item.retries + 1
        if retries < self._settings.max_retries:
            delay = self._settings.backoff_seconds(retries)
            self._store.schedule_retry(item.id, error=error, retries=retries, delay_seconds=delay)
            logger.warning(
                "Queue item %s will be retried (attempt %s/%s) in %.2fs: %s",
                item.id,
                retries,
                self._settings.max_retries,
                delay,
                error,
            )
            return
        self._fail(item, error, retries=retries)

    def _fail(self, item: QueueItem, error: str, *, retries: int) -> None:
        failed = self._store.fail(item.id, error=error, retries=retries, now=self._clock())
        logger.error("Queue item %s failed after %s retries: %s", item.id, retries, error)
        self.emit(QueueEvent.FAILED, failed)
