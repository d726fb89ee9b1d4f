"""Shared fixtures for the work-order SLA tests.

Reference week used throughout (America/Sao_Paulo, UTC-3, no DST):
    Mon 2024-03-04 ... Fri 2024-03-08, Sat 09, Sun 10, Mon 2024-03-11
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from workorder_sla.sla.domain import SLAClock, SLAConfig, WorkOrder, PauseInterval
from workorder_sla.sla.infrastructure import InMemoryWorkOrderRepository, StaticConfigProvider

SAO_PAULO = ZoneInfo("America/Sao_Paulo")

# Monday 2024-03-04 12:00 UTC
T0 = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)


def hours(n: float) -> timedelta:
    return timedelta(hours=n)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def calendar_config():
    return SLAConfig(elapsed_mode="calendar")


@pytest.fixture
def business_config():
    return SLAConfig(elapsed_mode="business", timezone="America/Sao_Paulo")


@pytest.fixture
def calendar_clock(calendar_config):
    return SLAClock(calendar_config)


@pytest.fixture
def business_clock(business_config):
    return SLAClock(business_config)


@pytest.fixture
def repository():
    return InMemoryWorkOrderRepository()


@pytest.fixture
def config_provider(calendar_config):
    return StaticConfigProvider(calendar_config)


@pytest.fixture
def make_order():
    """Factory for work orders created relative to T0."""

    def _make(order_id="OS-001", age_hours=None, **kwargs):
        if age_hours is not None:
            kwargs.setdefault("created_at", T0 - hours(age_hours))
        kwargs.setdefault("created_at", T0)
        return WorkOrder(id=order_id, **kwargs)

    return _make


@pytest.fixture
def dependency_pause():
    """Factory for dependency pauses."""

    def _make(started_at, ended_at=None, reason="SERVICO_PREVIO", note="Rede em manutencao", kind="EXTERNAL_DEPENDENCY"):
        return PauseInterval(kind=kind, reason=reason, note=note, started_at=started_at, ended_at=ended_at)

    return _make
