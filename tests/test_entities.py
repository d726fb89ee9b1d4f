"""Tests for the work-order entity workflows and the user session."""

from datetime import timedelta

import pytest

from conftest import T0, hours

from workorder_sla.config import WorkOrderStatus, UserRole
from workorder_sla.core import CompletionBlockedException, ValidationException
from workorder_sla.sla.domain import UserSession


class TestMarkWaiting:

    def test_remembers_previous_status(self, make_order):
        order = make_order(status="EM_ANDAMENTO")
        order.mark_waiting("SERVICO_PREVIO", "Rede em manutencao", T0 + hours(1))

        assert order.status == WorkOrderStatus.AWAITING_DEPENDENCY
        assert order.status_before_pause == "EM_ANDAMENTO"
        assert order.has_open_dependency_pause
        assert order.pauses[0].started_at == T0 + hours(1)
        assert order.updated_at == T0 + hours(1)

    def test_repeated_pause_keeps_original_status_and_single_pause(self, make_order):
        order = make_order(status="EM_ANDAMENTO")
        order.mark_waiting("SERVICO_PREVIO", "Primeira", T0)
        order.mark_waiting("RISCO", "Segunda", T0 + hours(2))

        assert len(order.pauses) == 1
        assert order.pauses[0].reason == "RISCO"
        assert order.pauses[0].started_at == T0
        assert order.status_before_pause == "EM_ANDAMENTO"

    def test_already_waiting_status_restores_to_open(self, make_order):
        order = make_order(status="aguardando sanear")
        order.mark_waiting("SERVICO_PREVIO", "Legado", T0)

        assert order.status_before_pause == WorkOrderStatus.OPEN


class TestResume:

    def test_restores_status_and_closes_pause(self, make_order):
        order = make_order(status="EM_ANDAMENTO")
        order.mark_waiting("SERVICO_PREVIO", "Rede em manutencao", T0)
        order.resume(T0 + hours(5))

        assert order.status == "EM_ANDAMENTO"
        assert order.status_before_pause is None
        assert not order.has_open_dependency_pause
        assert order.pauses[0].ended_at == T0 + hours(5)

    def test_without_previous_status_falls_back_to_open(self, make_order):
        order = make_order(status=WorkOrderStatus.AWAITING_DEPENDENCY)
        order.resume(T0)

        assert order.status == WorkOrderStatus.OPEN
        assert order.pauses == []


class TestMarkCompleted:

    def test_blocked_by_waiting_status(self, make_order):
        order = make_order(status="AGUARDANDO_SANEAR")

        with pytest.raises(CompletionBlockedException):
            order.mark_completed(["https://storage/foto.jpg"], T0)
        assert order.status == "AGUARDANDO_SANEAR"

    def test_blocked_by_open_pause_even_if_status_lags(self, make_order, dependency_pause):
        order = make_order(status="ABERTA", pauses=[dependency_pause(T0)])

        assert order.is_completion_blocked
        with pytest.raises(CompletionBlockedException):
            order.mark_completed(["https://storage/foto.jpg"], T0)

    def test_requires_evidence(self, make_order):
        order = make_order()

        with pytest.raises(ValidationException):
            order.mark_completed([], T0)
        with pytest.raises(ValidationException):
            order.mark_completed(["", None], T0)
        assert not order.is_done

    def test_completes_with_unique_evidence(self, make_order):
        order = make_order(evidence_urls=["https://storage/a.jpg"])
        order.mark_completed(["https://storage/a.jpg", "https://storage/b.jpg"], T0 + hours(30))

        assert order.status == WorkOrderStatus.DONE
        assert order.is_done
        assert order.completed_at == T0 + hours(30)
        assert order.evidence_urls == ["https://storage/a.jpg", "https://storage/b.jpg"]

    def test_full_cycle(self, make_order):
        order = make_order(status="EM_ANDAMENTO")
        order.mark_waiting("SERVICO_PREVIO", "Rede em manutencao", T0 + hours(1))
        order.resume(T0 + hours(3))
        order.mark_completed(["https://storage/foto.jpg"], T0 + hours(4))

        assert order.status == WorkOrderStatus.DONE
        assert len(order.pauses) == 1


@pytest.mark.parametrize("status", ["CONCLUIDA", "concluido", " Concluida "])
def test_done_statuses(make_order, status):
    assert make_order(status=status).is_done


class TestUserSession:

    def test_unknown_role_falls_back_to_operator(self):
        assert UserSession("u1", "visitante").role == UserRole.OPERATOR
        assert UserSession("u1", None).role == UserRole.OPERATOR

    def test_role_is_normalized(self):
        session = UserSession("u1", " DIRETOR ")
        assert session.role == UserRole.DIRECTOR
        assert not session.can_manage_pauses

    @pytest.mark.parametrize("role", ["operador", "terceirizada", "adm"])
    def test_pause_managers(self, role):
        assert UserSession("u1", role).can_manage_pauses

    def test_future_watermark_is_clamped(self):
        session = UserSession("u1", "adm", T0 + timedelta(minutes=5))
        clamped = session.clamp_watermark(T0)

        assert clamped.last_seen_at == T0
        assert clamped.role == "adm"

    def test_small_skew_is_tolerated(self):
        session = UserSession("u1", "adm", T0 + timedelta(seconds=30))
        assert session.clamp_watermark(T0) is session

    def test_missing_watermark(self):
        session = UserSession("u1")
        assert session.clamp_watermark(T0) is session
