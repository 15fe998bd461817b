from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from ..common.datetime_utils import isoformat
from ..core import constants
from ..core.enums import QueueItemState
from ..work_reports.model import NewWorkReport, WorkReport


class QueueEvent(str, Enum):
    ENQUEUED = "enqueued"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class QueueSettings:
    """Retry and retention policy for the submission queue."""

    max_retries: int = constants.DEFAULT_MAX_RETRIES
    backoff_base_ms: int = constants.DEFAULT_BACKOFF_BASE_MS
    history_max_age: timedelta = timedelta(seconds=constants.DEFAULT_HISTORY_MAX_AGE_SECONDS)
    history_max_items: int = constants.DEFAULT_HISTORY_MAX_ITEMS
    max_pending_age: timedelta = timedelta(seconds=constants.DEFAULT_MAX_PENDING_AGE_SECONDS)
    max_failed_ratio: float = constants.DEFAULT_MAX_FAILED_RATIO

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.backoff_base_ms < 0:
            raise ValueError("backoff_base_ms must be >= 0")

    def backoff_seconds(self, retry_number: int) -> float:
        """Exponential delay before retry `retry_number` (1-based)."""
        return self.backoff_base_ms * (2 ** max(retry_number - 1, 0)) / 1000.0


@dataclass
class QueueItem:
    """One submission attempt, tracked from enqueue to a terminal state.

    Only the queue processor mutates an item after it is appended to the store.
    """

    id: str
    payload: NewWorkReport
    enqueued_at: datetime
    state: QueueItemState = QueueItemState.PENDING
    retries: int = 0
    attempts: int = 0
    error: Optional[str] = None
    result: Optional[WorkReport] = None
    deduplicated: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def processing_time_ms(self) -> Optional[int]:
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.enqueued_at).total_seconds() * 1000)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.state.value,
            "error": self.error,
            "result": self.result.to_dict() if self.result else None,
            "deduplicated": self.deduplicated,
            "timestamp": isoformat(self.enqueued_at),
            "startedAt": isoformat(self.started_at),
            "finishedAt": isoformat(self.finished_at),
            "retries": self.retries,
            "attempts": self.attempts,
        }

    def to_failure_dict(self) -> dict:
        return {
            "id": self.id,
            "error": self.error,
            "timestamp": isoformat(self.enqueued_at),
            "retries": self.retries,
        }


@dataclass(frozen=True)
class QueueStatus:
    """Aggregate view over the store; derived on request, never stored."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    avg_processing_time_ms: int = 0
    oldest_pending_age_ms: int = 0
    queue_healthy: bool = True
    unhealthy_reasons: tuple = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.failed

    @property
    def total_processed(self) -> int:
        return self.completed + self.failed

    def to_dict(self) -> dict:
        return {
            "pending": self.pending,
            "processing": self.processing,
            "completed": self.completed,
            "failed": self.failed,
            "total": self.total,
            "totalProcessed": self.total_processed,
            "avgProcessingTimeMs": self.avg_processing_time_ms,
            "oldestPendingAgeMs": self.oldest_pending_age_ms,
            "queueHealthy": self.queue_healthy,
            "unhealthyReasons": list(self.unhealthy_reasons),
        }
