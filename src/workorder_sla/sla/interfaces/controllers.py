"""
SLA Controllers (API Routes)
=============================

FastAPI routes for work-order SLA endpoints.

Controllers are thin - they delegate to application services. Domain and
application exceptions are turned into HTTP responses by the handlers
registered in the shared middleware module.
"""

from typing import Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Query, Request

from workorder_sla.config import UserRole, settings
from workorder_sla.sla.application import (
    SLAService, PauseService, IWorkOrderRepository,
    WorkOrderDTO, MarkWaitingRequest, CompleteRequest,
    WorkOrderSLAResponse, DashboardResponse, DashboardSummary,
    AlertEntry, AlertsResponse, SLAStatusResponse,
)
from workorder_sla.sla.domain import UserSession, to_datetime, utc_now
from workorder_sla.sla.domain.timestamps import get_zone
from workorder_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["Work-Order SLA"])


# ========== Example payloads for Swagger ==========

WORK_ORDER_EXAMPLE = {
    "id": "OS-2024-0001",
    "status": "ABERTA",
    "tipo": "BURACO_NA_RUA",
    "createdAt": "2024-03-04T09:00:00-03:00",
    "slaHoras": 72,
    "slaPausas": [
        {
            "tipo": "SANEAR",
            "motivo": "SERVICO_PREVIO",
            "descricao": "SANEAR precisa fazer manutenção na rede antes da execução.",
            "inicioEm": "2024-03-04T14:00:00-03:00",
            "fimEm": "2024-03-05T10:00:00-03:00"
        }
    ]
}

WORK_ORDER_SLA_EXAMPLE = {
    "order_id": "OS-2024-0001",
    "status": "ABERTA",
    "kind": "BURACO_NA_RUA",
    "created_at": "2024-03-04T12:00:00Z",
    "completed_at": None,
    "awaiting_dependency": False,
    "completion_blocked": False,
    "sla": {
        "state": "near_due",
        "sla_hours": 72.0,
        "elapsed_hours": 56.0,
        "paused_ms": 72000000.0,
        "remaining_hours": 16.0,
        "percentage_used": 77.8,
        "is_overdue": False,
        "is_paused": False,
        "elapsed_display": "2d 8h úteis",
        "mode": "business",
        "evaluated_at": "2024-03-07T13:00:00Z"
    },
    "pauses": []
}


# ========== Dependencies ==========

def get_order_repository(request: Request) -> IWorkOrderRepository:
    """Get the work-order repository configured at startup."""
    return request.app.state.order_repository


def get_sla_service(
    request: Request,
    repository: IWorkOrderRepository = Depends(get_order_repository)
) -> SLAService:
    """Get SLA service instance."""
    return SLAService(repository, request.app.state.config_provider)


def get_pause_service(
    repository: IWorkOrderRepository = Depends(get_order_repository)
) -> PauseService:
    """Get pause workflow service instance."""
    return PauseService(repository)


def local_zone():
    """Zone for naive query and header timestamps, same as request bodies."""
    return get_zone(settings.sla_timezone)


def get_user_session(
    x_user_id: str = Header("anonymous", description="Authenticated user id"),
    x_user_role: str = Header(UserRole.OPERATOR, description="diretor, operador, terceirizada or adm"),
    x_last_seen: Optional[str] = Header(None, description="Last-seen watermark (ISO-8601)")
) -> UserSession:
    """Build the caller's session from headers set by the auth proxy."""
    session = UserSession(
        user_id=x_user_id,
        role=x_user_role,
        last_seen_at=to_datetime(x_last_seen, local_zone())
    )
    return session.clamp_watermark(utc_now())


def reference_time(
    at: Optional[datetime] = Query(None, description="Evaluate at this instant instead of now")
) -> datetime:
    """Reference instant for SLA evaluation."""
    return to_datetime(at, local_zone()) or utc_now()


def _alert_entry(order, status) -> AlertEntry:
    return AlertEntry(
        order_id=order.id,
        kind=order.kind,
        status=order.status,
        state=status.state,
        elapsed_hours=status.elapsed_hours,
        sla_hours=status.sla_hours,
        elapsed_display=status.elapsed_display
    )


# ========== Route Handlers ==========

@router.put(
    "/work-orders/{order_id}",
    response_model=WorkOrderSLAResponse,
    summary="Push a work-order snapshot",
    description="""
    Store the latest snapshot of a work order as read from the record store.

    Accepts both snake_case fields and the camelCase document fields
    (`createdAt`, `slaHoras`, `slaPausas`, `statusAntesAguardandoSanear`).
    The path id wins over any id in the body.
    """,
    responses={200: {"content": {"application/json": {"example": WORK_ORDER_SLA_EXAMPLE}}}}
)
async def put_work_order(
    order_id: str,
    payload: WorkOrderDTO,
    now: datetime = Depends(reference_time),
    repository: IWorkOrderRepository = Depends(get_order_repository),
    sla_service: SLAService = Depends(get_sla_service)
):
    order = payload.to_domain()
    order.id = order_id
    saved = await repository.save(order)

    logger.info("Work order snapshot stored", extra={"order_id": order_id})
    return WorkOrderSLAResponse.build(saved, sla_service.evaluate(saved, now))


@router.get(
    "/work-orders/{order_id}",
    response_model=WorkOrderSLAResponse,
    summary="Get work-order SLA status",
    responses={
        200: {"content": {"application/json": {"example": WORK_ORDER_SLA_EXAMPLE}}},
        404: {"description": "Work order not found"}
    }
)
async def get_work_order(
    order_id: str,
    now: datetime = Depends(reference_time),
    sla_service: SLAService = Depends(get_sla_service)
):
    order, status = await sla_service.get_order_status(order_id, now)
    return WorkOrderSLAResponse.build(order, status)


@router.post(
    "/work-orders/{order_id}/pause",
    response_model=WorkOrderSLAResponse,
    summary="Mark as waiting on external dependency",
    description="""
    Stop the SLA clock while the order waits on the sanitation company.

    Calling it again while the order is already waiting only updates the
    reason and note of the open pause.
    """,
    responses={403: {"description": "Role may not pause orders"}, 404: {"description": "Work order not found"}}
)
async def pause_work_order(
    order_id: str,
    request: MarkWaitingRequest,
    now: datetime = Depends(reference_time),
    session: UserSession = Depends(get_user_session),
    pause_service: PauseService = Depends(get_pause_service),
    sla_service: SLAService = Depends(get_sla_service)
):
    order = await pause_service.mark_waiting(order_id, session, request.reason, request.note, now)
    return WorkOrderSLAResponse.build(order, sla_service.evaluate(order, now))


@router.post(
    "/work-orders/{order_id}/resume",
    response_model=WorkOrderSLAResponse,
    summary="Resume after the dependency is released",
    responses={403: {"description": "Role may not resume orders"}, 404: {"description": "Work order not found"}}
)
async def resume_work_order(
    order_id: str,
    now: datetime = Depends(reference_time),
    session: UserSession = Depends(get_user_session),
    pause_service: PauseService = Depends(get_pause_service),
    sla_service: SLAService = Depends(get_sla_service)
):
    order = await pause_service.resume(order_id, session, now)
    return WorkOrderSLAResponse.build(order, sla_service.evaluate(order, now))


@router.post(
    "/work-orders/{order_id}/complete",
    response_model=WorkOrderSLAResponse,
    summary="Mark a work order as executed",
    description="""
    Requires at least one evidence photo URL. Rejected with 409 while the
    order is waiting on a dependency (by status or by an open pause).
    """,
    responses={
        403: {"description": "Role may not complete orders"},
        404: {"description": "Work order not found"},
        409: {"description": "Order is waiting on a dependency"},
        422: {"description": "No evidence photo given"}
    }
)
async def complete_work_order(
    order_id: str,
    request: CompleteRequest,
    now: datetime = Depends(reference_time),
    session: UserSession = Depends(get_user_session),
    pause_service: PauseService = Depends(get_pause_service),
    sla_service: SLAService = Depends(get_sla_service)
):
    order = await pause_service.complete(order_id, session, request.evidence_urls, now)
    return WorkOrderSLAResponse.build(order, sla_service.evaluate(order, now))


@router.post(
    "/evaluate",
    response_model=SLAStatusResponse,
    summary="Evaluate a work order without storing it"
)
async def evaluate_work_order(
    payload: WorkOrderDTO,
    now: datetime = Depends(reference_time),
    sla_service: SLAService = Depends(get_sla_service)
):
    status = sla_service.evaluate(payload.to_domain(), now)
    return SLAStatusResponse.from_status(status)


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Get SLA dashboard",
    description="""
    All work orders with their SLA status and summary counts.

    **Query Parameters:**
    - `status`: Filter by work-order status (e.g. ABERTA, AGUARDANDO_SANEAR, CONCLUIDA)
    - `kind`: Filter by service kind
    - `sla_state`: Only open orders in this SLA state (on_track, near_due, overdue)
    - `at`: Reference instant (defaults to now)
    """
)
async def get_dashboard(
    order_status: Optional[str] = Query(None, alias="status", description="Filter by work-order status"),
    kind: Optional[str] = Query(None, description="Filter by service kind"),
    sla_state: Optional[str] = Query(None, description="Filter by SLA state"),
    now: datetime = Depends(reference_time),
    sla_service: SLAService = Depends(get_sla_service)
):
    filters = {}
    if order_status:
        filters["status"] = order_status
    if kind:
        filters["kind"] = kind

    snapshot = await sla_service.dashboard(filters, sla_state=sla_state, now=now)
    counts = snapshot.counts

    return DashboardResponse(
        orders=[WorkOrderSLAResponse.build(order, status) for order, status in snapshot.orders],
        total_count=len(snapshot.orders),
        summary=DashboardSummary(
            total_orders=counts["total"],
            open_orders=counts["open"],
            done_orders=counts["done"],
            paused_orders=counts["paused"],
            overdue_count=counts["overdue"],
            near_due_count=counts["near_due"],
            on_track_count=counts["on_track"],
            overdue_rate=snapshot.overdue_rate
        )
    )


@router.get(
    "/alerts",
    response_model=AlertsResponse,
    summary="Get the SLA alert panel",
    description="Open orders past their SLA and orders close to it, most elapsed first."
)
async def get_alerts(
    now: datetime = Depends(reference_time),
    sla_service: SLAService = Depends(get_sla_service)
):
    snapshot = await sla_service.alerts(now)
    return AlertsResponse(
        overdue=[_alert_entry(order, status) for order, status in snapshot.overdue],
        near_due=[_alert_entry(order, status) for order, status in snapshot.near_due],
        total_open=snapshot.total_open,
        evaluated_at=snapshot.evaluated_at
    )


# Export router for inclusion in main app
sla_router = router
