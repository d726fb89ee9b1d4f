"""
Shared Kernel Module
====================

Shared infrastructure used by the SLA module: structured logging and
HTTP middleware.

DO NOT add SLA business logic to the shared kernel.
"""
