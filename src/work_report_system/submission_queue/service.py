from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from ..common.datetime_utils import utc_now
from ..core import constants
from ..core.enums import QueueItemState
from ..work_reports.model import NewWorkReport
from ..work_reports.repository import WorkReportRepository
from .model import QueueEvent, QueueItem, QueueSettings, QueueStatus
from .processor import Listener, QueueProcessor
from .store import QueueStore

logger = logging.getLogger(__name__)


class WorkReportQueue:
    """In-process submission queue for daily work reports.

    Owned by the container (one per process) and shared by the HTTP handlers and
    the background worker. `enqueue` only appends; every later change to an item
    is made by the QueueProcessor.
    """

    def __init__(
        self,
        reports: WorkReportRepository,
        settings: QueueSettings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self._settings = settings or QueueSettings()
        self._clock = clock
        self._id_factory = id_factory
        self._store = QueueStore()
        self._processor = QueueProcessor(self._store, reports, self._settings, clock=clock)

    @property
    def settings(self) -> QueueSettings:
        return self._settings

    # -------- worker lifecycle --------
    def start(self) -> None:
        self._processor.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._processor.stop(timeout)

    @property
    def is_running(self) -> bool:
        return self._processor.is_running

    def drain(self, timeout: Optional[float] = None) -> int:
        return self._processor.drain(timeout)

    def subscribe(self, event: QueueEvent, callback: Listener) -> None:
        self._processor.add_listener(event, callback)

    # -------- public surface --------
    def enqueue(self, payload: NewWorkReport) -> str:
        """Append a validated submission and return its tracking id. Never blocks on storage."""

        item = QueueItem(id=self._id_factory(), payload=payload, enqueued_at=self._clock())
        self._store.append(item)
        logger.info(
            "Enqueued item %s for %s on %s (queue size %s)",
            item.id,
            payload.employee_id,
            payload.report_date,
            len(self._store),
        )
        self._processor.emit(QueueEvent.ENQUEUED, item)
        return item.id

    def get_status(self, item_id: str) -> Optional[QueueItem]:
        """Snapshot of one item; None when unknown or already cleaned up."""
        return self._store.get(item_id)

    def get_queue_status(self, *, now: Optional[datetime] = None) -> QueueStatus:
        now = now or self._clock()
        items = self._store.items()

        counts = {state: 0 for state in QueueItemState}
        durations: List[int] = []
        oldest_pending: Optional[datetime] = None
        for item in items:
            counts[item.state] += 1
            if item.state == QueueItemState.COMPLETED and item.processing_time_ms is not None:
                durations.append(item.processing_time_ms)
            if item.state == QueueItemState.PENDING:
                if oldest_pending is None or item.enqueued_at < oldest_pending:
                    oldest_pending = item.enqueued_at

        oldest_pending_age_ms = 0
        if oldest_pending is not None:
            oldest_pending_age_ms = max(int((now - oldest_pending).total_seconds() * 1000), 0)

        completed = counts[QueueItemState.COMPLETED]
        failed = counts[QueueItemState.FAILED]
        reasons = []
        processed = completed + failed
        if processed and failed / processed > self._settings.max_failed_ratio:
            reasons.append("failed_ratio")
        if oldest_pending_age_ms > self._settings.max_pending_age.total_seconds() * 1000:
            reasons.append("pending_age")

        return QueueStatus(
            pending=counts[QueueItemState.PENDING],
            processing=counts[QueueItemState.PROCESSING],
            completed=completed,
            failed=failed,
            avg_processing_time_ms=int(sum(durations) / len(durations)) if durations else 0,
            oldest_pending_age_ms=oldest_pending_age_ms,
            queue_healthy=not reasons,
            unhealthy_reasons=tuple(reasons),
        )

    def get_recent_failures(self, n: int = constants.DEFAULT_RECENT_FAILURES) -> List[QueueItem]:
        """Most recently enqueued failed items first."""

        if n <= 0:
            return []
        failures = [i for i in reversed(self._store.items()) if i.state == QueueItemState.FAILED]
        return failures[:n]

    def clear_history(self) -> None:
        """Forget every completed and failed item; pending/processing ones stay."""

        removed = self._store.remove_terminal()
        logger.info("Cleared %s finished items from queue history", removed)

    def prune_history(self, *, now: Optional[datetime] = None) -> int:
        """Apply the retention policy: drop finished items past max age, then beyond max count."""

        now = now or self._clock()
        max_age = self._settings.history_max_age

        def expired(item: QueueItem) -> bool:
            finished = item.finished_at or item.enqueued_at
            return now - finished > max_age

        removed = self._store.remove_terminal(expired)

        finished = [i for i in self._store.items() if i.state.is_terminal]
        overflow = len(finished) - self._settings.history_max_items
        if overflow > 0:
            doomed = {i.id for i in finished[:overflow]}
            removed += self._store.remove_terminal(lambda item: item.id in doomed)

        if removed:
            logger.info("Pruned %s finished items from queue history", removed)
        return removed
