from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles stored in the session by the auth layer."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class WorkStatus(str, Enum):
    """Daily status an employee reports."""

    WORKING = "working"
    LEAVE = "leave"


class QueueItemState(str, Enum):
    """Lifecycle of a queued submission."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (QueueItemState.COMPLETED, QueueItemState.FAILED)
