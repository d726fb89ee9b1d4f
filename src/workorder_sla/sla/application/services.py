"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from abc import ABC, abstractmethod

from workorder_sla.sla.domain import (
    WorkOrder, UserSession, SLAClock, SLAConfig, SLAStatus, utc_now
)
from workorder_sla.config import SLAState
from workorder_sla.core import PermissionDeniedException, ResourceNotFoundException
from workorder_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IWorkOrderRepository(ABC):
    """Interface for work-order data access (the external document store)."""

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[WorkOrder]:
        """Get work order by ID."""

    @abstractmethod
    async def list(self, filters: Optional[dict] = None) -> List[WorkOrder]:
        """List work orders, optionally filtered by status or kind."""

    @abstractmethod
    async def save(self, order: WorkOrder) -> WorkOrder:
        """Create or replace a work order snapshot."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


# ========== Results ==========

Evaluated = Tuple[WorkOrder, SLAStatus]


@dataclass
class DashboardSnapshot:
    """Evaluated orders plus the counts shown on the dashboard cards."""
    orders: List[Evaluated]
    counts: Dict[str, int]

    @property
    def overdue_rate(self) -> float:
        open_orders = self.counts.get("open", 0)
        if open_orders == 0:
            return 0.0
        return self.counts.get(SLAState.OVERDUE, 0) / open_orders * 100


@dataclass
class AlertSnapshot:
    """Open orders past the SLA or close to it, most elapsed first."""
    evaluated_at: datetime
    total_open: int
    overdue: List[Evaluated] = field(default_factory=list)
    near_due: List[Evaluated] = field(default_factory=list)


# ========== Application Services ==========

class SLAService:
    """
    Service for SLA evaluation of work orders.

    A new clock is built from the provider on every call so configuration
    reloads apply immediately.
    """

    def __init__(
        self,
        order_repository: IWorkOrderRepository,
        config_provider: ISLAConfigProvider
    ):
        self._order_repo = order_repository
        self._config_provider = config_provider

    @property
    def clock(self) -> SLAClock:
        return SLAClock(self._config_provider.get_config())

    def evaluate(self, order: WorkOrder, now: Optional[datetime] = None) -> SLAStatus:
        """Evaluate a single work order snapshot."""
        return self.clock.evaluate(order, now)

    async def get_order_status(
        self,
        order_id: str,
        now: Optional[datetime] = None
    ) -> Evaluated:
        """
        Load a work order and evaluate it.

        Raises:
            ResourceNotFoundException: if the order does not exist
        """
        order = await self._order_repo.get_by_id(order_id)
        if order is None:
            raise ResourceNotFoundException("WorkOrder", order_id)
        return order, self.evaluate(order, now)

    async def dashboard(
        self,
        filters: Optional[dict] = None,
        sla_state: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> DashboardSnapshot:
        """
        Evaluate every matching order.

        Counts cover open orders only; done orders are listed but never
        classified as late.
        """
        now = now or utc_now()
        clock = self.clock
        orders = await self._order_repo.list(filters)

        counts = {
            "total": 0, "open": 0, "done": 0, "paused": 0,
            SLAState.OVERDUE: 0, SLAState.NEAR_DUE: 0, SLAState.ON_TRACK: 0,
        }
        results: List[Evaluated] = []

        for order in orders:
            status = clock.evaluate(order, now)
            if sla_state and (order.is_done or status.state != sla_state):
                continue

            results.append((order, status))
            counts["total"] += 1
            if order.is_done:
                counts["done"] += 1
                continue
            counts["open"] += 1
            counts[status.state] += 1
            if status.is_paused:
                counts["paused"] += 1

        return DashboardSnapshot(orders=results, counts=counts)

    async def alerts(self, now: Optional[datetime] = None) -> AlertSnapshot:
        """Build the overdue / near-due panel for open orders."""
        now = now or utc_now()
        clock = self.clock
        open_orders = [o for o in await self._order_repo.list() if not o.is_done and o.created_at]

        snapshot = AlertSnapshot(evaluated_at=now, total_open=len(open_orders))
        for order in open_orders:
            status = clock.evaluate(order, now)
            if status.elapsed_ms <= 0:
                continue
            if status.state == SLAState.OVERDUE:
                snapshot.overdue.append((order, status))
            elif status.state == SLAState.NEAR_DUE:
                snapshot.near_due.append((order, status))

        snapshot.overdue.sort(key=lambda item: item[1].elapsed_ms, reverse=True)
        snapshot.near_due.sort(key=lambda item: item[1].elapsed_ms, reverse=True)
        return snapshot


class PauseService:
    """
    Service for the "waiting on dependency" workflow.

    Computes the next state of a work order and writes it back; resolving
    concurrent writes is left to the store.
    """

    def __init__(self, order_repository: IWorkOrderRepository):
        self._order_repo = order_repository

    @staticmethod
    def _require_pause_manager(session: UserSession, action: str) -> None:
        if not session.can_manage_pauses:
            raise PermissionDeniedException(session.role, action)

    async def _load(self, order_id: str) -> WorkOrder:
        order = await self._order_repo.get_by_id(order_id)
        if order is None:
            raise ResourceNotFoundException("WorkOrder", order_id)
        return order

    async def mark_waiting(
        self,
        order_id: str,
        session: UserSession,
        reason: Optional[str],
        note: Optional[str],
        now: Optional[datetime] = None
    ) -> WorkOrder:
        """Mark an order as waiting on an external dependency (SLA paused)."""
        self._require_pause_manager(session, "pause work orders")
        order = await self._load(order_id)

        already_open = order.has_open_dependency_pause
        order.mark_waiting(reason, note, now)
        saved = await self._order_repo.save(order)

        logger.info(
            "Dependency pause refreshed" if already_open else "Dependency pause opened",
            extra={"order_id": order_id, "reason": reason, "user_id": session.user_id}
        )
        return saved

    async def resume(
        self,
        order_id: str,
        session: UserSession,
        now: Optional[datetime] = None
    ) -> WorkOrder:
        """Close the dependency pause and restore the previous status."""
        self._require_pause_manager(session, "resume work orders")
        order = await self._load(order_id)

        if not order.has_open_dependency_pause:
            logger.info("Resume requested without an open pause", extra={"order_id": order_id})

        order.resume(now)
        saved = await self._order_repo.save(order)

        logger.info(
            "Work order resumed",
            extra={"order_id": order_id, "status": saved.status, "user_id": session.user_id}
        )
        return saved

    async def complete(
        self,
        order_id: str,
        session: UserSession,
        evidence_urls: List[str],
        now: Optional[datetime] = None
    ) -> WorkOrder:
        """
        Mark an order as executed.

        Raises:
            CompletionBlockedException: while the order waits on a dependency
            ValidationException: when no photo evidence is given
        """
        self._require_pause_manager(session, "complete work orders")
        order = await self._load(order_id)

        order.mark_completed(evidence_urls, now)
        saved = await self._order_repo.save(order)

        logger.info(
            "Work order completed",
            extra={"order_id": order_id, "evidence_count": len(saved.evidence_urls)}
        )
        return saved
