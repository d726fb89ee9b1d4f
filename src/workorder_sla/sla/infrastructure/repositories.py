"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces.

The production record store is a managed document database owned by the
host application; the in-memory repository here keeps the same snapshot
semantics for development and tests.
"""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Dict, List, Optional

from workorder_sla.sla.application import IWorkOrderRepository, ISLAConfigProvider
from workorder_sla.sla.domain import SLAConfig, WorkOrder, normalize_status, to_datetime
from workorder_sla.core import RepositoryException
from workorder_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryWorkOrderRepository(IWorkOrderRepository):
    """
    In-memory implementation of the work-order repository.

    Reads and writes copy the entity, so callers always hold a snapshot
    and never share state with the store.
    """

    def __init__(self, orders: Optional[List[WorkOrder]] = None):
        self._orders: Dict[str, WorkOrder] = {}
        self._lock = asyncio.Lock()
        for order in orders or []:
            self._orders[order.id] = copy.deepcopy(order)

    async def get_by_id(self, order_id: str) -> Optional[WorkOrder]:
        """Get work order by ID."""
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order is not None else None

    async def list(self, filters: Optional[dict] = None) -> List[WorkOrder]:
        """
        List work orders, newest first.

        Supported filters: ``status`` (value or list) and ``kind``.
        """
        filters = filters or {}
        orders = list(self._orders.values())

        if filters.get("status"):
            wanted = filters["status"]
            if not isinstance(wanted, (list, tuple, set)):
                wanted = [wanted]
            wanted = {normalize_status(s) for s in wanted}
            orders = [o for o in orders if normalize_status(o.status) in wanted]

        if filters.get("kind"):
            kind = normalize_status(filters["kind"])
            orders = [o for o in orders if normalize_status(o.kind) == kind]

        orders.sort(key=lambda o: to_datetime(o.created_at) or _OLDEST, reverse=True)
        return [copy.deepcopy(o) for o in orders]

    async def save(self, order: WorkOrder) -> WorkOrder:
        """Create or replace a work order snapshot."""
        if not order.id:
            raise RepositoryException("Work order must have an id to be saved")

        async with self._lock:
            self._orders[order.id] = copy.deepcopy(order)

        logger.debug("Work order saved", extra={"order_id": order.id, "status": order.status})
        return copy.deepcopy(order)

    async def count(self) -> int:
        """Number of stored work orders."""
        return len(self._orders)


class StaticConfigProvider(ISLAConfigProvider):
    """Configuration provider returning a fixed SLAConfig."""

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config = config or SLAConfig()

    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""
        return self._config
