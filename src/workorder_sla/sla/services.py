"""
SLA Background Evaluation
=========================

Periodic re-evaluation of open work orders.

The SLA state of an order changes with the passage of time alone, so the
host re-runs the clock on a fixed interval. This evaluator keeps the last
state seen per order and logs every order that becomes near due or overdue.
"""

from datetime import datetime
from typing import Dict, Optional

from workorder_sla.config import SLAState
from workorder_sla.sla.application import AlertSnapshot, SLAService
from workorder_sla.sla.domain import utc_now
from workorder_sla.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


class SLAEvaluator:
    """
    Evaluates SLA compliance for all open work orders.

    This service:
    1. Builds the overdue / near-due snapshot
    2. Compares each order with its previous state
    3. Logs transitions into near due or overdue
    """

    def __init__(self, sla_service: SLAService):
        self._sla_service = sla_service
        self._last_states: Dict[str, str] = {}
        self._latest: Optional[AlertSnapshot] = None

    @staticmethod
    def transition(current_state: str, previous_state: Optional[str] = None) -> Optional[str]:
        """
        Determine whether a state change deserves an alert.

        Returns:
            The new state when the order just became near due or overdue,
            None otherwise
        """
        if current_state == SLAState.OVERDUE:
            if previous_state != SLAState.OVERDUE:
                return SLAState.OVERDUE
        elif current_state == SLAState.NEAR_DUE:
            if previous_state not in (SLAState.NEAR_DUE, SLAState.OVERDUE):
                return SLAState.NEAR_DUE
        return None

    async def evaluate(self, now: Optional[datetime] = None) -> dict:
        """
        Evaluate all open work orders.

        Returns:
            Summary of evaluation results
        """
        now = now or utc_now()

        with log_latency(logger, "sla_evaluation"):
            snapshot = await self._sla_service.alerts(now)

        current: Dict[str, str] = {}
        alerts_raised = 0

        for order, status in snapshot.overdue + snapshot.near_due:
            current[order.id] = status.state
            alert = self.transition(status.state, self._last_states.get(order.id))
            if alert is None:
                continue

            alerts_raised += 1
            logger.warning(
                "Work order overdue" if alert == SLAState.OVERDUE else "Work order near due",
                extra={
                    "order_id": order.id,
                    "order_kind": order.kind,
                    "elapsed_hours": round(status.elapsed_hours, 2),
                    "sla_hours": status.sla_hours,
                }
            )

        self._last_states = current
        self._latest = snapshot

        return {
            "orders_evaluated": snapshot.total_open,
            "overdue": len(snapshot.overdue),
            "near_due": len(snapshot.near_due),
            "alerts_raised": alerts_raised,
        }

    @property
    def latest(self) -> Optional[AlertSnapshot]:
        """Most recent snapshot, if any evaluation ran."""
        return self._latest
