from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional, Tuple

from ..core.enums import QueueItemState
from ..work_reports.model import WorkReport
from .model import QueueItem


class QueueStore:
    """Thread-safe home of every QueueItem plus the ordered work list.

    One lock guards three structures:
    - `_items`: id -> item, in enqueue order (dicts keep insertion order)
    - `_pending`: FIFO of ids ready to process
    - `_delayed`: heap of (due, seq, id) for retries waiting out their backoff

    Readers always get copies, so a snapshot never changes under the caller.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._items: Dict[str, QueueItem] = {}
        self._pending: Deque[str] = deque()
        self._delayed: List[Tuple[float, int, str]] = []
        self._seq = itertools.count()

    # -------- enqueue side --------
    def append(self, item: QueueItem) -> None:
        with self._changed:
            if item.id in self._items:
                raise ValueError(f"Duplicate queue item id: {item.id}")
            self._items[item.id] = item
            self._pending.append(item.id)
            self._changed.notify_all()

    # -------- processor side --------
    def take(self, timeout: Optional[float] = None, *, should_stop: Callable[[], bool] | None = None) -> Optional[str]:
        """Pop the next ready id, blocking up to `timeout` seconds (None = until woken).

        Retries whose backoff has elapsed are moved to the tail first.
        Returns None on timeout or when `should_stop()` turns true.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._changed:
            while True:
                if should_stop is not None and should_stop():
                    return None

                self._promote_due_locked()
                if self._pending:
                    return self._pending.popleft()

                now = time.monotonic()
                wait: Optional[float] = None
                if deadline is not None:
                    wait = deadline - now
                    if wait <= 0:
                        return None
                if self._delayed:
                    until_due = max(self._delayed[0][0] - now, 0.0)
                    wait = until_due if wait is None else min(wait, until_due)
                self._changed.wait(wait)

    def mark_processing(self, item_id: str, *, now: datetime) -> QueueItem:
        with self._lock:
            item = self._require_live_locked(item_id)
            item.state = QueueItemState.PROCESSING
            item.started_at = now
            item.attempts += 1
            return replace(item)

    def complete(self, item_id: str, *, result: WorkReport, now: datetime, deduplicated: bool = False) -> QueueItem:
        with self._lock:
            item = self._require_live_locked(item_id)
            item.state = QueueItemState.COMPLETED
            item.result = result
            item.error = None
            item.deduplicated = deduplicated
            item.finished_at = now
            return replace(item)

    def fail(self, item_id: str, *, error: str, retries: int, now: datetime) -> QueueItem:
        with self._lock:
            item = self._require_live_locked(item_id)
            item.state = QueueItemState.FAILED
            item.error = error
            item.retries = retries
            item.finished_at = now
            return replace(item)

    def schedule_retry(self, item_id: str, *, error: str, retries: int, delay_seconds: float) -> QueueItem:
        """Put the item back to pending; it re-enters at the tail once the delay elapses."""

        with self._changed:
            item = self._require_live_locked(item_id)
            item.state = QueueItemState.PENDING
            item.error = error
            item.retries = retries
            due = time.monotonic() + max(delay_seconds, 0.0)
            heapq.heappush(self._delayed, (due, next(self._seq), item_id))
            self._changed.notify_all()
            return replace(item)

    def wake(self) -> None:
        with self._changed:
            self._changed.notify_all()

    # -------- readers --------
    def get(self, item_id: str) -> Optional[QueueItem]:
        with self._lock:
            item = self._items.get(item_id)
            return replace(item) if item else None

    def items(self) -> List[QueueItem]:
        with self._lock:
            return [replace(i) for i in self._items.values()]

    def has_work(self) -> bool:
        with self._lock:
            return any(not i.state.is_terminal for i in self._items.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    # -------- maintenance --------
    def remove_terminal(self, predicate: Callable[[QueueItem], bool] | None = None) -> int:
        """Drop completed/failed items matching `predicate` (all of them when None)."""

        with self._lock:
            doomed = [
                item_id
                for item_id, item in self._items.items()
                if item.state.is_terminal and (predicate is None or predicate(item))
            ]
            for item_id in doomed:
                del self._items[item_id]
            return len(doomed)

    # -------- internals --------
    def _promote_due_locked(self) -> None:
        now = time.monotonic()
        while self._delayed and self._delayed[0][0] <= now:
            _, _, item_id = heapq.heappop(self._delayed)
            if item_id in self._items:
                self._pending.append(item_id)

    def _require_live_locked(self, item_id: str) -> QueueItem:
        item = self._items.get(item_id)
        if item is None:
            raise KeyError(item_id)
        if item.state.is_terminal:
            raise RuntimeError(f"Queue item {item_id} is already {item.state.value}")
        return item
