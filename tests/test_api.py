"""Tests for the HTTP interface.

Verifies that:
1. Document-store payloads (camelCase, legacy pause kinds) are accepted
2. Pause workflows enforce roles and completion rules
3. Errors come back as clean JSON with the right status codes
"""

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from conftest import T0

from workorder_sla.main import create_app
from workorder_sla.sla.infrastructure import InMemoryWorkOrderRepository, StaticConfigProvider
from workorder_sla.sla.interfaces.controllers import get_user_session

OPERATOR = {"X-User-Id": "op-1", "X-User-Role": "operador"}
DIRECTOR = {"X-User-Id": "dir-1", "X-User-Role": "diretor"}

# Calendar-mode reference instant: 75h after ORDER's createdAt
AT = {"at": "2024-03-07T15:00:00Z"}

ORDER = {
    "id": "ignored-body-id",
    "status": "EM_ANDAMENTO",
    "tipo": "BURACO_NA_RUA",
    "createdAt": "2024-03-04T09:00:00-03:00",
    "slaHoras": 72,
    "slaPausas": [
        {
            "tipo": "SANEAR",
            "motivo": "SERVICO_PREVIO",
            "descricao": "Rede em manutencao",
            "inicioEm": "2024-03-04T14:00:00-03:00",
            "fimEm": "2024-03-05T10:00:00-03:00",
        },
        None,
    ],
}


@pytest.fixture
def app(calendar_config):
    return create_app(
        order_repository=InMemoryWorkOrderRepository(),
        config_provider=StaticConfigProvider(calendar_config),
        evaluation_interval=0,
    )


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def stored(client):
    response = await client.put("/sla/work-orders/OS-1", json=ORDER, params=AT)
    assert response.status_code == 200
    return response.json()


class TestWorkOrders:

    @pytest.mark.anyio
    async def test_put_accepts_document_payload(self, stored):
        assert stored["order_id"] == "OS-1"
        assert stored["kind"] == "BURACO_NA_RUA"
        assert stored["pauses"][0]["kind"] == "EXTERNAL_DEPENDENCY"
        assert len(stored["pauses"]) == 1

        sla = stored["sla"]
        assert sla["elapsed_hours"] == pytest.approx(55)
        assert sla["state"] == "near_due"
        assert sla["mode"] == "calendar"

    @pytest.mark.anyio
    async def test_get_order(self, client, stored):
        response = await client.get("/sla/work-orders/OS-1", params=AT)

        assert response.status_code == 200
        assert response.json()["sla"] == stored["sla"]

    @pytest.mark.anyio
    async def test_get_unknown_order(self, client):
        response = await client.get("/sla/work-orders/NOPE", headers={"X-Correlation-ID": "req-42"})

        assert response.status_code == 404
        data = response.json()
        assert data["error_type"] == "ResourceNotFoundException"
        assert data["correlation_id"] == "req-42"
        assert response.headers["X-Correlation-ID"] == "req-42"

    @pytest.mark.anyio
    async def test_evaluate_is_stateless(self, client, app):
        response = await client.post("/sla/evaluate", json={"id": "tmp", "slaHoras": "abc"})

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "on_track"
        assert data["elapsed_hours"] == 0
        assert data["sla_hours"] == 72
        assert await app.state.order_repository.count() == 0


    @pytest.mark.anyio
    async def test_naive_query_and_body_share_local_zone(self, client):
        response = await client.post(
            "/sla/evaluate",
            json={"id": "tmp", "createdAt": "2024-03-04T09:00:00"},
            params={"at": "2024-03-04T12:00:00"},
        )

        assert response.status_code == 200
        assert response.json()["elapsed_hours"] == pytest.approx(3)

    def test_naive_last_seen_header_is_local_time(self):
        session = get_user_session("op-1", "operador", "2024-03-04T09:00:00")
        assert session.last_seen_at == T0


class TestPauseWorkflow:

    @pytest.mark.anyio
    async def test_pause_resume_complete(self, client, stored):
        paused = await client.post(
            "/sla/work-orders/OS-1/pause",
            json={"reason": "BLOQUEIO_ACESSO", "note": "Rua interditada"},
            headers=OPERATOR,
            params=AT,
        )
        assert paused.status_code == 200
        body = paused.json()
        assert body["status"] == "AGUARDANDO_SANEAR"
        assert body["completion_blocked"] is True
        assert body["sla"]["is_paused"] is True

        blocked = await client.post(
            "/sla/work-orders/OS-1/complete",
            json={"evidence_urls": ["https://storage/foto.jpg"]},
            headers=OPERATOR,
        )
        assert blocked.status_code == 409

        resumed = await client.post("/sla/work-orders/OS-1/resume", headers=OPERATOR)
        assert resumed.status_code == 200
        assert resumed.json()["status"] == "EM_ANDAMENTO"

        no_photo = await client.post("/sla/work-orders/OS-1/complete", json={}, headers=OPERATOR)
        assert no_photo.status_code == 422

        done = await client.post(
            "/sla/work-orders/OS-1/complete",
            json={"evidence_urls": ["https://storage/foto.jpg"]},
            headers=OPERATOR,
        )
        assert done.status_code == 200
        assert done.json()["status"] == "CONCLUIDA"
        assert done.json()["completed_at"] is not None

    @pytest.mark.anyio
    async def test_director_is_read_only(self, client, stored):
        response = await client.post(
            "/sla/work-orders/OS-1/pause",
            json={"reason": "RISCO", "note": "Area isolada"},
            headers=DIRECTOR,
        )

        assert response.status_code == 403
        assert response.json()["error_type"] == "PermissionDeniedException"

    @pytest.mark.anyio
    async def test_pause_note_too_short(self, client, stored):
        response = await client.post(
            "/sla/work-orders/OS-1/pause",
            json={"reason": "RISCO", "note": " a "},
            headers=OPERATOR,
        )
        assert response.status_code == 422


class TestPanels:

    @pytest.mark.anyio
    async def test_dashboard(self, client, stored):
        await client.put(
            "/sla/work-orders/OS-2",
            json={"status": "CONCLUIDA", "createdAt": "2024-03-01T12:00:00Z"},
        )

        response = await client.get("/sla/dashboard", params=AT)

        assert response.status_code == 200
        data = response.json()
        assert data["total_count"] == 2
        assert data["summary"]["done_orders"] == 1
        assert data["summary"]["near_due_count"] == 1

        filtered = await client.get("/sla/dashboard", params={**AT, "status": "CONCLUIDA"})
        assert [o["order_id"] for o in filtered.json()["orders"]] == ["OS-2"]

    @pytest.mark.anyio
    async def test_alerts(self, client, stored):
        await client.put("/sla/work-orders/OS-3", json={"createdAt": "2024-03-01T12:00:00Z"})

        response = await client.get("/sla/alerts", params=AT)

        assert response.status_code == 200
        data = response.json()
        assert [a["order_id"] for a in data["overdue"]] == ["OS-3"]
        assert [a["order_id"] for a in data["near_due"]] == ["OS-1"]
        assert data["total_open"] == 2


class TestServiceEndpoints:

    @pytest.mark.anyio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "Work-Order SLA Service"

    @pytest.mark.anyio
    async def test_health_without_lifespan(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"]["sla_scheduler"] == "stopped"


def test_lifespan_wires_defaults(tmp_path, monkeypatch):
    """Startup builds the store, config manager and evaluator when none are injected."""
    monkeypatch.chdir(tmp_path)

    with TestClient(create_app(evaluation_interval=0)) as client:
        response = client.put("/sla/work-orders/OS-1", json={"createdAt": "2024-03-04T12:00:00Z"})
        assert response.status_code == 200

        health = client.get("/health").json()
        assert health["status"] == "healthy"
        assert health["checks"]["last_evaluation"] is None
