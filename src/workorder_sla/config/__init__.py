"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List
from enum import Enum


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="workorder-sla", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA configuration YAML file"
    )
    sla_evaluation_interval: int = Field(
        default=60,
        description="Seconds between SLA re-evaluations (0 disables the scheduler)",
        ge=0
    )
    sla_default_hours: float = Field(
        default=72.0,
        description="SLA applied to work orders without a positive slaHours",
        gt=0
    )
    sla_near_due_ratio: float = Field(
        default=0.75,
        description="Fraction of the SLA after which an order is near due",
        gt=0,
        lt=1
    )
    sla_timezone: str = Field(
        default="America/Sao_Paulo",
        description="IANA timezone used to decide which calendar days are weekends"
    )
    sla_elapsed_mode: str = Field(
        default="business",
        description="Elapsed-time semantic: 'business' (weekdays only) or 'calendar'"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("sla_elapsed_mode")
    @classmethod
    def validate_elapsed_mode(cls, v: str) -> str:
        """Ensure elapsed mode is one of the supported semantics."""
        v = v.lower().strip()
        if v not in VALID_ELAPSED_MODES:
            raise ValueError(f"sla_elapsed_mode must be one of {VALID_ELAPSED_MODES}")
        return v


# ========== Constants ==========

class WorkOrderStatus(str):
    """Well-known work order statuses (the field itself is free-form)."""
    OPEN = "ABERTA"
    IN_PROGRESS = "EM_ANDAMENTO"
    AWAITING_DEPENDENCY = "AGUARDANDO_SANEAR"
    DONE = "CONCLUIDA"
    DONE_ALT = "CONCLUIDO"
    CANCELLED = "CANCELADA"


class PauseKind(str, Enum):
    """Pause types that can stop the SLA clock."""
    EXTERNAL_DEPENDENCY = "EXTERNAL_DEPENDENCY"

    @classmethod
    def parse(cls, value) -> "PauseKind | str":
        """
        Normalize a stored pause kind.

        Legacy records use "SANEAR" for dependency pauses. Unknown kinds are
        returned as their normalized string so they survive a round trip.
        """
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().upper()
        if raw in PAUSE_KIND_ALIASES:
            return PAUSE_KIND_ALIASES[raw]
        return raw


class PauseReason(str):
    """Suggested reason codes for a dependency pause."""
    PRIOR_SERVICE = "SERVICO_PREVIO"
    ACCESS_BLOCKED = "BLOQUEIO_ACESSO"
    NO_MATERIAL = "SEM_MATERIAL"
    RISK = "RISCO"
    OTHER = "OUTRO"


class SLAState(str):
    """SLA classification states."""
    ON_TRACK = "on_track"
    NEAR_DUE = "near_due"
    OVERDUE = "overdue"


class ElapsedMode(str):
    """Elapsed-time semantics."""
    BUSINESS = "business"
    CALENDAR = "calendar"


class UserRole(str):
    """Roles known to the SLA engine."""
    DIRECTOR = "diretor"
    OPERATOR = "operador"
    CONTRACTOR = "terceirizada"
    ADMIN = "adm"


# ========== Lists for validation ==========

PAUSE_KIND_ALIASES = {
    "EXTERNAL_DEPENDENCY": PauseKind.EXTERNAL_DEPENDENCY,
    "SANEAR": PauseKind.EXTERNAL_DEPENDENCY,
}
AWAITING_DEPENDENCY_STATUSES = {"AGUARDANDO_SANEAR", "AGUARDANDO SANEAR"}
DONE_STATUSES = {WorkOrderStatus.DONE, WorkOrderStatus.DONE_ALT}
VALID_PAUSE_REASONS = [
    PauseReason.PRIOR_SERVICE, PauseReason.ACCESS_BLOCKED,
    PauseReason.NO_MATERIAL, PauseReason.RISK, PauseReason.OTHER
]
VALID_SLA_STATES = [SLAState.ON_TRACK, SLAState.NEAR_DUE, SLAState.OVERDUE]
VALID_ELAPSED_MODES = [ElapsedMode.BUSINESS, ElapsedMode.CALENDAR]
VALID_ROLES = [UserRole.DIRECTOR, UserRole.OPERATOR, UserRole.CONTRACTOR, UserRole.ADMIN]
PAUSE_MANAGER_ROLES = {UserRole.OPERATOR, UserRole.CONTRACTOR, UserRole.ADMIN}


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
