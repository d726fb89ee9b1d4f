"""
Work-Order SLA Module
=====================

Bounded context for service-level tracking of public-works orders.

Responsibilities:
- Compute chargeable elapsed time (business days, minus dependency pauses)
- Classify orders as on track, near due or overdue
- Open and close dependency pauses ("Aguardando SANEAR")
- Block completion while an order waits on a dependency
- Provide dashboard and alert-panel views of SLA compliance
"""

__version__ = "1.0.0"
