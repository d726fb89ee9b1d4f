"""
SLA Domain Layer
================

Domain layer for the work-order SLA module.

Contains:
- Entities: Core business objects with identity (WorkOrder, UserSession)
- Value Objects: Immutable objects defined by attributes (PauseInterval, SLAConfig, SLAStatus)
- Domain Services: Stateless business logic (SLAClock, PauseLedger)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from workorder_sla.sla.domain.entities import WorkOrder, UserSession, normalize_status
from workorder_sla.sla.domain.value_objects import (
    PauseInterval,
    PauseLedger,
    SLAClock,
    SLAConfig,
    SLAStatus,
    MS_PER_HOUR,
)
from workorder_sla.sla.domain.timestamps import to_datetime, utc_now

__all__ = [
    # Entities
    "WorkOrder",
    "UserSession",
    "normalize_status",
    # Value Objects & Services
    "PauseInterval",
    "PauseLedger",
    "SLAClock",
    "SLAConfig",
    "SLAStatus",
    "MS_PER_HOUR",
    # Time
    "to_datetime",
    "utc_now",
]
