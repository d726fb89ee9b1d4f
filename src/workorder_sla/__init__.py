"""
Work-Order SLA Service
======================

SLA clock and pause ledger for municipal public-works orders.
"""

__version__ = "1.0.0"
