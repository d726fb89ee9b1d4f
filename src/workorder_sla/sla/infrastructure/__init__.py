"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA monitoring:
- Repositories: In-memory work-order store, static config provider
- External: YAML config watcher and evaluation scheduler
"""

from workorder_sla.sla.infrastructure.repositories import (
    InMemoryWorkOrderRepository,
    StaticConfigProvider,
)
from workorder_sla.sla.infrastructure.external import (
    SLAConfigManager,
    SLAScheduler,
)

__all__ = [
    "InMemoryWorkOrderRepository",
    "StaticConfigProvider",
    "SLAConfigManager",
    "SLAScheduler",
]
