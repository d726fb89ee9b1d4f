"""
SLA Application Layer
======================

Application layer for the work-order SLA module.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from workorder_sla.sla.application.dto import (
    PauseIntervalDTO,
    WorkOrderDTO,
    MarkWaitingRequest,
    CompleteRequest,
    SLAStatusResponse,
    WorkOrderSLAResponse,
    DashboardSummary,
    DashboardResponse,
    AlertEntry,
    AlertsResponse,
)
from workorder_sla.sla.application.services import (
    SLAService,
    PauseService,
    DashboardSnapshot,
    AlertSnapshot,
    IWorkOrderRepository,
    ISLAConfigProvider,
)

__all__ = [
    # DTOs
    "PauseIntervalDTO",
    "WorkOrderDTO",
    "MarkWaitingRequest",
    "CompleteRequest",
    "SLAStatusResponse",
    "WorkOrderSLAResponse",
    "DashboardSummary",
    "DashboardResponse",
    "AlertEntry",
    "AlertsResponse",
    # Services
    "SLAService",
    "PauseService",
    "DashboardSnapshot",
    "AlertSnapshot",
    # Repository Interfaces
    "IWorkOrderRepository",
    "ISLAConfigProvider",
]
