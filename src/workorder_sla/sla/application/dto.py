"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Work-order payloads accept both the
snake_case names used here and the camelCase names stored in the document
database (``createdAt``, ``slaHoras``, ``slaPausas``, ``inicioEm`` ...).
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Any, Literal
from datetime import datetime

from workorder_sla.config import PauseKind, PauseReason, WorkOrderStatus, settings


# ========== Type Aliases for Literals ==========
SLAStateStr = Literal["on_track", "near_due", "overdue"]
ElapsedModeStr = Literal["business", "calendar"]


def _coerce_timestamp(value: Any) -> Optional[datetime]:
    """Timestamps that cannot be read become None instead of failing validation."""
    from workorder_sla.sla.domain import to_datetime
    from workorder_sla.sla.domain.timestamps import get_zone

    return to_datetime(value, get_zone(settings.sla_timezone))


# ========== Work order payloads ==========

class PauseIntervalDTO(BaseModel):
    """DTO for one pause interval."""
    model_config = ConfigDict(populate_by_name=True)

    kind: str = Field(
        default="",
        validation_alias=AliasChoices("kind", "tipo"),
        description="Pause kind (legacy 'SANEAR' means EXTERNAL_DEPENDENCY); "
                    "entries without a kind never stop the clock"
    )
    reason: Optional[str] = Field(None, validation_alias=AliasChoices("reason", "motivo"))
    note: Optional[str] = Field(None, validation_alias=AliasChoices("note", "descricao"))
    started_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("started_at", "startedAt", "inicioEm")
    )
    ended_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("ended_at", "endedAt", "fimEm")
    )

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> str:
        """Map legacy names onto the pause kind enum."""
        parsed = PauseKind.parse(v)
        return parsed.value if isinstance(parsed, PauseKind) else parsed

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[datetime]:
        return _coerce_timestamp(v)

    def to_domain(self) -> Any:
        """Convert to domain value object."""
        from workorder_sla.sla.domain import PauseInterval

        return PauseInterval(
            kind=PauseKind.parse(self.kind),
            reason=self.reason,
            note=self.note,
            started_at=self.started_at,
            ended_at=self.ended_at
        )

    @classmethod
    def from_domain(cls, pause: Any) -> "PauseIntervalDTO":
        """Create from domain value object."""
        kind = pause.kind.value if isinstance(pause.kind, PauseKind) else str(pause.kind)
        return cls(
            kind=kind,
            reason=pause.reason,
            note=pause.note,
            started_at=pause.started_at,
            ended_at=pause.ended_at
        )


class WorkOrderDTO(BaseModel):
    """
    DTO representing a work-order snapshot from the record store.

    Bridges the document shape and the domain entity.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default="", description="Work order ID")
    status: str = Field(default=WorkOrderStatus.OPEN, description="Free-form status")
    kind: Optional[str] = Field(None, validation_alias=AliasChoices("kind", "tipo"))
    created_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    sla_hours: Optional[float] = Field(
        None, validation_alias=AliasChoices("sla_hours", "slaHours", "slaHoras")
    )
    status_before_pause: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "status_before_pause", "statusBeforePause", "statusAntesAguardandoSanear"
        )
    )
    pauses: List[PauseIntervalDTO] = Field(
        default_factory=list, validation_alias=AliasChoices("pauses", "slaPausas")
    )
    completed_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("completed_at", "completedAt", "dataExecucao")
    )
    evidence_urls: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("evidence_urls", "evidenceUrls")
    )

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> str:
        return str(v) if v else WorkOrderStatus.OPEN

    @field_validator("created_at", "completed_at", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[datetime]:
        return _coerce_timestamp(v)

    @field_validator("sla_hours", mode="before")
    @classmethod
    def parse_sla_hours(cls, v: Any) -> Optional[float]:
        """Non-numeric SLAs are dropped so the default applies."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v

    @field_validator("pauses", mode="before")
    @classmethod
    def drop_empty_pauses(cls, v: Any) -> List[Any]:
        """Absent lists and null entries are tolerated."""
        if not isinstance(v, list):
            return []
        return [p for p in v if p]

    def to_domain(self) -> Any:
        """Convert to domain entity."""
        from workorder_sla.sla.domain import WorkOrder

        return WorkOrder(
            id=self.id,
            status=self.status,
            created_at=self.created_at,
            sla_hours=self.sla_hours,
            kind=self.kind,
            status_before_pause=self.status_before_pause,
            pauses=[p.to_domain() for p in self.pauses],
            completed_at=self.completed_at,
            evidence_urls=list(self.evidence_urls)
        )

    @classmethod
    def from_domain(cls, order: Any) -> "WorkOrderDTO":
        """Create from domain entity."""
        return cls(
            id=order.id,
            status=order.status,
            kind=order.kind,
            created_at=order.created_at,
            sla_hours=order.sla_hours,
            status_before_pause=order.status_before_pause,
            pauses=[PauseIntervalDTO.from_domain(p) for p in order.pauses if p is not None],
            completed_at=order.completed_at,
            evidence_urls=list(order.evidence_urls)
        )


# ========== Request DTOs ==========

class MarkWaitingRequest(BaseModel):
    """Request model for marking an order as waiting on a dependency."""
    reason: str = Field(
        default=PauseReason.PRIOR_SERVICE,
        min_length=1,
        description="Reason code (SERVICO_PREVIO, BLOQUEIO_ACESSO, SEM_MATERIAL, RISCO, OUTRO)"
    )
    note: str = Field(..., description="Short justification (at least 3 characters)")

    @field_validator("reason")
    @classmethod
    def normalize_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason must not be empty")
        return v

    @field_validator("note")
    @classmethod
    def validate_note(cls, v: str) -> str:
        """Require a short but meaningful description."""
        v = v.strip()
        if len(v) < 3:
            raise ValueError("note must have at least 3 characters")
        return v


class CompleteRequest(BaseModel):
    """Request model for marking an order as executed."""
    evidence_urls: List[str] = Field(
        default_factory=list,
        description="Public URLs of photos already uploaded to object storage"
    )


# ========== Response DTOs ==========

class SLAStatusResponse(BaseModel):
    """Response model for the SLA status of a work order."""
    state: SLAStateStr = Field(..., description="Current SLA state")
    sla_hours: float = Field(..., description="Effective SLA in hours")
    elapsed_hours: float = Field(..., description="Chargeable elapsed hours")
    paused_ms: float = Field(..., description="Time excluded by pauses")
    remaining_hours: float = Field(..., description="Hours left (0 once overdue)")
    percentage_used: float = Field(..., description="Elapsed time as a percentage of the SLA")
    is_overdue: bool
    is_paused: bool = Field(..., description="Whether a dependency pause is open")
    elapsed_display: str = Field(..., description="Human-readable elapsed time")
    mode: ElapsedModeStr
    evaluated_at: datetime

    @classmethod
    def from_status(cls, status: Any) -> "SLAStatusResponse":
        data = status.to_dict()
        data.pop("order_id")
        data.pop("elapsed_ms")
        return cls(**data)


class WorkOrderSLAResponse(BaseModel):
    """Response model for a work order with its SLA information."""
    order_id: str
    status: str
    kind: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    awaiting_dependency: bool = Field(..., description="Status says the order waits on a dependency")
    completion_blocked: bool = Field(..., description="Order cannot be marked complete yet")
    sla: SLAStatusResponse
    pauses: List[PauseIntervalDTO] = Field(default_factory=list)

    @classmethod
    def build(cls, order: Any, status: Any) -> "WorkOrderSLAResponse":
        return cls(
            order_id=order.id,
            status=order.status,
            kind=order.kind,
            created_at=order.created_at,
            completed_at=order.completed_at,
            awaiting_dependency=order.is_awaiting_dependency,
            completion_blocked=order.is_completion_blocked,
            sla=SLAStatusResponse.from_status(status),
            pauses=[PauseIntervalDTO.from_domain(p) for p in order.pauses if p is not None]
        )


class DashboardSummary(BaseModel):
    """Summary statistics for dashboard."""
    total_orders: int
    open_orders: int
    done_orders: int
    paused_orders: int
    overdue_count: int
    near_due_count: int
    on_track_count: int
    overdue_rate: float = Field(..., description="Percentage of open orders overdue")


class DashboardResponse(BaseModel):
    """Response model for dashboard."""
    orders: List[WorkOrderSLAResponse] = Field(..., description="Work orders with SLA status")
    total_count: int = Field(..., description="Number of orders returned")
    summary: DashboardSummary


class AlertEntry(BaseModel):
    """One row of the SLA alert panel."""
    order_id: str
    kind: Optional[str] = None
    status: str
    state: SLAStateStr
    elapsed_hours: float
    sla_hours: float
    elapsed_display: str


class AlertsResponse(BaseModel):
    """Response model for the SLA alert panel."""
    overdue: List[AlertEntry] = Field(default_factory=list)
    near_due: List[AlertEntry] = Field(default_factory=list)
    total_open: int
    evaluated_at: datetime
