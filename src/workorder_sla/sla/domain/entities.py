"""
SLA Domain Entities
====================

Pure Python domain entities for work-order SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List

from workorder_sla.config import (
    WorkOrderStatus, UserRole,
    AWAITING_DEPENDENCY_STATUSES, DONE_STATUSES, PAUSE_MANAGER_ROLES, VALID_ROLES
)
from workorder_sla.core import CompletionBlockedException, ValidationException
from workorder_sla.sla.domain.timestamps import utc_now
from workorder_sla.sla.domain.value_objects import PauseInterval, PauseLedger

WATERMARK_TOLERANCE = timedelta(seconds=60)


def normalize_status(status: Optional[str]) -> str:
    """Trim and upper-case a free-form status."""
    return str(status or "").strip().upper()


@dataclass
class WorkOrder:
    """
    Work order entity, limited to the fields the SLA engine touches.

    The record itself lives in the external document store; this entity
    holds one snapshot of it.
    """

    # Core attributes
    id: str
    status: str = WorkOrderStatus.OPEN
    created_at: Optional[datetime] = None
    sla_hours: Optional[float] = None
    kind: Optional[str] = None

    # Pause tracking
    status_before_pause: Optional[str] = None
    pauses: List[PauseInterval] = field(default_factory=list)

    # Execution
    completed_at: Optional[datetime] = None
    evidence_urls: List[str] = field(default_factory=list)
    updated_at: Optional[datetime] = None

    @property
    def is_done(self) -> bool:
        """Check if the work order has been executed."""
        return normalize_status(self.status) in DONE_STATUSES

    @property
    def is_awaiting_dependency(self) -> bool:
        """Check if the status says the order waits on an external party."""
        return normalize_status(self.status) in AWAITING_DEPENDENCY_STATUSES

    @property
    def has_open_dependency_pause(self) -> bool:
        """Check if the pause ledger holds an open dependency pause."""
        return PauseLedger.has_open_dependency_pause(self.pauses)

    @property
    def is_completion_blocked(self) -> bool:
        """
        Status and ledger are checked independently since the status field
        may lag behind the pause list.
        """
        return self.is_awaiting_dependency or self.has_open_dependency_pause

    def mark_waiting(
        self,
        reason: Optional[str],
        note: Optional[str],
        timestamp: Optional[datetime] = None
    ) -> None:
        """Stop the SLA clock while the order waits on an external dependency."""
        timestamp = timestamp or utc_now()

        if self.status_before_pause is None:
            current = normalize_status(self.status)
            if current and current not in AWAITING_DEPENDENCY_STATUSES:
                self.status_before_pause = self.status
            else:
                self.status_before_pause = WorkOrderStatus.OPEN

        self.pauses = PauseLedger.open_dependency_pause(
            self.pauses, reason=reason, note=note, started_at=timestamp
        )
        self.status = WorkOrderStatus.AWAITING_DEPENDENCY
        self.updated_at = timestamp

    def resume(self, timestamp: Optional[datetime] = None) -> None:
        """Restart the SLA clock and restore the status held before the pause."""
        timestamp = timestamp or utc_now()
        self.pauses = PauseLedger.close_dependency_pause(self.pauses, ended_at=timestamp)
        self.status = self.status_before_pause or WorkOrderStatus.OPEN
        self.status_before_pause = None
        self.updated_at = timestamp

    def mark_completed(
        self,
        evidence_urls: List[str],
        timestamp: Optional[datetime] = None
    ) -> None:
        """Mark the order as executed with photo evidence."""
        if self.is_completion_blocked:
            raise CompletionBlockedException(self.id)

        urls = [url for url in self.evidence_urls + list(evidence_urls or []) if url]
        if not urls:
            raise ValidationException(
                "At least one photo of the executed service is required",
                {"order_id": self.id}
            )

        timestamp = timestamp or utc_now()
        self.evidence_urls = list(dict.fromkeys(urls))
        self.status = WorkOrderStatus.DONE
        self.completed_at = timestamp
        self.updated_at = timestamp


@dataclass(frozen=True)
class UserSession:
    """
    Identity of the caller, threaded explicitly through the services.

    Holds the role used by the pause workflows and the "last seen"
    watermark of the current user.
    """

    user_id: str
    role: str = UserRole.OPERATOR
    last_seen_at: Optional[datetime] = None

    def __post_init__(self):
        """Unknown roles fall back to operator."""
        role = str(self.role or "").strip().lower()
        object.__setattr__(self, "role", role if role in VALID_ROLES else UserRole.OPERATOR)

    @property
    def can_manage_pauses(self) -> bool:
        """Directors only read; everyone else may pause, resume and complete."""
        return self.role in PAUSE_MANAGER_ROLES

    def clamp_watermark(self, server_now: datetime) -> "UserSession":
        """
        Pull a watermark set in the future (fast client clock) back to server time.
        """
        if self.last_seen_at is not None and self.last_seen_at > server_now + WATERMARK_TOLERANCE:
            return UserSession(self.user_id, self.role, server_now)
        return self
