"""
SLA Value Objects
==================

Immutable value objects and stateless services for the SLA domain.

- PauseInterval: one stop of the SLA clock
- PauseLedger: open/close/query operations on a pause sequence
- SLAConfig: SLA defaults and the per-kind pause policy table
- SLAClock: elapsed-time arithmetic and overdue/near-due classification
- SLAStatus: the result of evaluating one work order at one instant

Nothing here raises on bad data: absent or malformed inputs contribute zero.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from workorder_sla.config import (
    PauseKind, SLAState, ElapsedMode, VALID_ELAPSED_MODES
)
from workorder_sla.sla.domain.timestamps import get_zone, to_datetime, utc_now

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE


def _ms(delta: timedelta) -> float:
    return delta.total_seconds() * 1000.0


@dataclass(frozen=True)
class PauseInterval:
    """
    A single interval during which the SLA clock may be stopped.

    ``ended_at`` is None while the pause is open. ``started_at`` may be None
    for malformed legacy entries, which are carried along but never counted.
    """
    kind: Any = PauseKind.EXTERNAL_DEPENDENCY
    reason: Optional[str] = None
    note: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        """Check if the pause has not been closed yet."""
        return self.ended_at is None

    @property
    def is_dependency(self) -> bool:
        """Check if this is an external-dependency pause."""
        return PauseKind.parse(self.kind) == PauseKind.EXTERNAL_DEPENDENCY

    def close(self, ended_at: datetime) -> "PauseInterval":
        """Return a closed copy. An already closed pause keeps its end time."""
        if self.ended_at is not None:
            return self
        return replace(self, ended_at=ended_at)


class PauseLedger:
    """
    Pure operations over a work order's pause sequence.

    Every operation returns a new list; the input sequence is never mutated.
    """

    @staticmethod
    def _latest_open_dependency_index(pauses: Sequence[Optional[PauseInterval]]) -> int:
        for index in range(len(pauses) - 1, -1, -1):
            pause = pauses[index]
            if pause is None or not pause.is_dependency:
                continue
            if pause.is_open:
                return index
        return -1

    @staticmethod
    def open_dependency_pause(
        pauses: Optional[Sequence[PauseInterval]],
        reason: Optional[str] = None,
        note: Optional[str] = None,
        started_at: Optional[datetime] = None
    ) -> List[PauseInterval]:
        """
        Open a dependency pause, or refresh the one already open.

        Repeated calls while a pause is open update its reason/note in place
        and keep its original start time, so double submits never stack
        pauses. An open pause stored without a start time gets one.

        Args:
            pauses: Current pause sequence (None is treated as empty)
            reason: Reason code; None keeps the previous value on refresh
            note: Free-text justification; None keeps the previous value
            started_at: Start of a new pause (defaults to now)

        Returns:
            New pause sequence
        """
        result = list(pauses or [])
        index = PauseLedger._latest_open_dependency_index(result)

        if index >= 0:
            previous = result[index]
            result[index] = replace(
                previous,
                reason=reason if reason is not None else previous.reason,
                note=note if note is not None else previous.note,
                started_at=previous.started_at or started_at or utc_now(),
            )
            return result

        result.append(PauseInterval(
            kind=PauseKind.EXTERNAL_DEPENDENCY,
            reason=reason,
            note=note,
            started_at=started_at or utc_now(),
            ended_at=None,
        ))
        return result

    @staticmethod
    def close_dependency_pause(
        pauses: Optional[Sequence[PauseInterval]],
        ended_at: Optional[datetime] = None
    ) -> List[PauseInterval]:
        """
        Close the latest open dependency pause.

        Closing when nothing is open returns an unchanged copy.
        """
        result = list(pauses or [])
        index = PauseLedger._latest_open_dependency_index(result)
        if index == -1:
            return result

        result[index] = result[index].close(ended_at or utc_now())
        return result

    @staticmethod
    def has_open_dependency_pause(pauses: Optional[Sequence[PauseInterval]]) -> bool:
        """Check if any dependency pause is still open."""
        return PauseLedger._latest_open_dependency_index(list(pauses or [])) >= 0


class SLAConfig(BaseModel):
    """
    SLA configuration loaded from YAML.

    ``pause_kind_policy`` states, per pause kind, whether an interval of that
    kind stops the clock. Kinds missing from the table do not.
    """
    default_sla_hours: float = Field(default=72.0, gt=0, description="SLA when an order has none")
    near_due_ratio: float = Field(default=0.75, gt=0, lt=1, description="Near-due threshold as a fraction of the SLA")
    elapsed_mode: str = Field(default=ElapsedMode.BUSINESS, description="'business' or 'calendar'")
    timezone: str = Field(default="America/Sao_Paulo", description="Zone used to find weekends")
    pause_kind_policy: Dict[str, bool] = Field(
        default_factory=lambda: {PauseKind.EXTERNAL_DEPENDENCY.value: True},
        description="Whether each pause kind stops the SLA clock"
    )

    @field_validator("elapsed_mode")
    @classmethod
    def validate_elapsed_mode(cls, v: str) -> str:
        """Validate the elapsed-time semantic."""
        v = str(v).lower().strip()
        if v not in VALID_ELAPSED_MODES:
            raise ValueError(f"elapsed_mode must be one of {VALID_ELAPSED_MODES}")
        return v

    @field_validator("pause_kind_policy")
    @classmethod
    def validate_pause_kind_policy(cls, v: Dict[str, bool]) -> Dict[str, bool]:
        """Normalize kind names and make sure dependency pauses are listed."""
        normalized = {}
        for kind, stops in v.items():
            parsed = PauseKind.parse(kind)
            key = parsed.value if isinstance(parsed, PauseKind) else parsed
            normalized[key] = bool(stops)

        normalized.setdefault(PauseKind.EXTERNAL_DEPENDENCY.value, True)
        return normalized

    @classmethod
    def from_settings(cls, settings: Any) -> "SLAConfig":
        """Build the base configuration from application settings."""
        return cls(
            default_sla_hours=settings.sla_default_hours,
            near_due_ratio=settings.sla_near_due_ratio,
            elapsed_mode=settings.sla_elapsed_mode,
            timezone=settings.sla_timezone,
        )

    @property
    def zone(self) -> tzinfo:
        """Resolved timezone object."""
        return get_zone(self.timezone)

    def stops_clock(self, kind: Any) -> bool:
        """Check whether pauses of the given kind stop the SLA clock."""
        parsed = PauseKind.parse(kind)
        key = parsed.value if isinstance(parsed, PauseKind) else parsed
        return self.pause_kind_policy.get(key, False)


@dataclass(frozen=True)
class SLAStatus:
    """
    SLA evaluation of a work order at a reference instant.
    """
    order_id: str
    state: str
    sla_hours: float
    elapsed_ms: float
    paused_ms: float
    evaluated_at: datetime
    mode: str
    is_paused: bool = False
    elapsed_display: str = ""

    @property
    def elapsed_hours(self) -> float:
        return self.elapsed_ms / MS_PER_HOUR

    @property
    def remaining_hours(self) -> float:
        """Hours left before the order is overdue (0 once overdue)."""
        return max(0.0, self.sla_hours - self.elapsed_hours)

    @property
    def percentage_used(self) -> float:
        return (self.elapsed_hours / self.sla_hours) * 100 if self.sla_hours > 0 else 0.0

    @property
    def is_overdue(self) -> bool:
        return self.state == SLAState.OVERDUE

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "order_id": self.order_id,
            "state": self.state,
            "sla_hours": self.sla_hours,
            "elapsed_ms": self.elapsed_ms,
            "elapsed_hours": self.elapsed_hours,
            "paused_ms": self.paused_ms,
            "remaining_hours": self.remaining_hours,
            "percentage_used": self.percentage_used,
            "is_overdue": self.is_overdue,
            "is_paused": self.is_paused,
            "elapsed_display": self.elapsed_display,
            "mode": self.mode,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


class SLAClock:
    """
    Elapsed-time arithmetic and SLA classification.

    Stateless apart from its configuration; safe to share between threads
    and requests. Every method is total over its inputs.
    """

    def __init__(self, config: Optional[SLAConfig] = None):
        self.config = config or SLAConfig()

    # ========== Helpers ==========

    def _as_datetime(self, value: Any) -> Optional[datetime]:
        return to_datetime(value, self.config.zone)

    def _now(self, now: Any) -> datetime:
        return self._as_datetime(now) or utc_now()

    def _stopping_intervals(self, pauses: Optional[Sequence[PauseInterval]], now: datetime):
        """Yield (start, end) for every well-formed pause whose kind stops the clock."""
        for pause in pauses or []:
            if pause is None or not self.config.stops_clock(pause.kind):
                continue
            started = self._as_datetime(pause.started_at)
            if started is None:
                continue
            ended = self._as_datetime(pause.ended_at) or now
            yield started, ended

    def resolve_sla_hours(self, sla_hours: Any) -> float:
        """Use the given SLA when it is a positive finite number, else the default."""
        if isinstance(sla_hours, (int, float)) and not isinstance(sla_hours, bool):
            if math.isfinite(sla_hours) and sla_hours > 0:
                return float(sla_hours)
        return self.config.default_sla_hours

    # ========== Calendar time ==========

    def paused_duration_ms(self, pauses: Optional[Sequence[PauseInterval]], now: Any = None) -> float:
        """
        Total wall-clock time of clock-stopping pauses.

        Open pauses are charged up to ``now``.
        """
        now = self._now(now)
        return sum(
            max(0.0, _ms(ended - started))
            for started, ended in self._stopping_intervals(pauses, now)
        )

    def chargeable_elapsed_ms(
        self,
        created_at: Any,
        pauses: Optional[Sequence[PauseInterval]],
        now: Any = None
    ) -> float:
        """Wall-clock time since creation minus paused time, never negative."""
        created = self._as_datetime(created_at)
        if created is None:
            return 0.0
        now = self._now(now)
        return max(0.0, _ms(now - created) - self.paused_duration_ms(pauses, now))

    # ========== Business time ==========

    def business_elapsed_ms(self, start: Any, end: Any = None) -> float:
        """
        Time between two instants counting only Monday to Friday.

        Walks the span one local calendar day at a time and adds each day's
        portion unless that day is a Saturday or Sunday.
        """
        start = self._as_datetime(start)
        end = self._now(end)
        if start is None or end <= start:
            return 0.0

        zone = self.config.zone
        cursor = start.astimezone(timezone.utc)
        end = end.astimezone(timezone.utc)
        total = 0.0

        while cursor < end:
            local = cursor.astimezone(zone)
            next_midnight = datetime.combine(
                local.date() + timedelta(days=1), time.min, tzinfo=zone
            ).astimezone(timezone.utc)
            segment_end = min(end, next_midnight)

            if local.weekday() < 5:
                total += max(0.0, _ms(segment_end - cursor))

            cursor = segment_end

        return total

    def business_paused_duration_ms(
        self,
        pauses: Optional[Sequence[PauseInterval]],
        now: Any = None
    ) -> float:
        """Clock-stopping pause time measured in business time."""
        now = self._now(now)
        return sum(
            self.business_elapsed_ms(started, ended)
            for started, ended in self._stopping_intervals(pauses, now)
        )

    def business_chargeable_elapsed_ms(
        self,
        created_at: Any,
        pauses: Optional[Sequence[PauseInterval]],
        now: Any = None
    ) -> float:
        """Business time since creation minus business time spent paused."""
        created = self._as_datetime(created_at)
        if created is None:
            return 0.0
        now = self._now(now)
        return max(
            0.0,
            self.business_elapsed_ms(created, now) - self.business_paused_duration_ms(pauses, now)
        )

    # ========== Classification ==========

    @property
    def is_business_mode(self) -> bool:
        return self.config.elapsed_mode == ElapsedMode.BUSINESS

    def elapsed_ms(
        self,
        created_at: Any,
        pauses: Optional[Sequence[PauseInterval]],
        now: Any = None
    ) -> float:
        """Chargeable time using the configured elapsed mode."""
        if self.is_business_mode:
            return self.business_chargeable_elapsed_ms(created_at, pauses, now)
        return self.chargeable_elapsed_ms(created_at, pauses, now)

    def classify(self, elapsed_hours: float, sla_hours: Any) -> str:
        """
        Classify elapsed time against an SLA.

        Overdue at or past the SLA, near due from ``near_due_ratio`` of it.
        """
        sla_hours = self.resolve_sla_hours(sla_hours)
        if elapsed_hours >= sla_hours:
            return SLAState.OVERDUE
        if elapsed_hours >= sla_hours * self.config.near_due_ratio:
            return SLAState.NEAR_DUE
        return SLAState.ON_TRACK

    def is_overdue(
        self,
        sla_hours: Any,
        created_at: Any,
        pauses: Optional[Sequence[PauseInterval]],
        now: Any = None
    ) -> tuple[bool, float]:
        """
        Check whether chargeable time has reached the SLA.

        Returns:
            Tuple of (overdue, elapsed_hours)
        """
        elapsed_hours = self.elapsed_ms(created_at, pauses, now) / MS_PER_HOUR
        return elapsed_hours >= self.resolve_sla_hours(sla_hours), elapsed_hours

    def evaluate(self, order: Any, now: Any = None) -> SLAStatus:
        """
        Evaluate a work order-like object.

        Reads ``id``, ``created_at``, ``sla_hours`` and ``pauses`` attributes;
        any of them may be missing.
        """
        now = self._now(now)
        created_at = getattr(order, "created_at", None)
        pauses = getattr(order, "pauses", None) or []
        sla_hours = self.resolve_sla_hours(getattr(order, "sla_hours", None))

        if self.is_business_mode:
            paused = self.business_paused_duration_ms(pauses, now)
        else:
            paused = self.paused_duration_ms(pauses, now)
        elapsed = self.elapsed_ms(created_at, pauses, now)

        return SLAStatus(
            order_id=str(getattr(order, "id", "") or ""),
            state=self.classify(elapsed / MS_PER_HOUR, sla_hours),
            sla_hours=sla_hours,
            elapsed_ms=elapsed,
            paused_ms=paused,
            evaluated_at=now,
            mode=self.config.elapsed_mode,
            is_paused=PauseLedger.has_open_dependency_pause(pauses),
            elapsed_display=self.format_duration(elapsed, business=self.is_business_mode),
        )

    @staticmethod
    def format_duration(ms: float, business: bool = False) -> str:
        """
        Human-readable duration, e.g. "3d 4h", "5h 12m" or "7m".

        Business durations get the " úteis" suffix shown on the alert panels.
        """
        total_minutes = max(0, int(ms // MS_PER_MINUTE))
        total_hours = total_minutes // 60
        minutes = total_minutes % 60
        days = total_hours // 24
        hours = total_hours % 24
        suffix = " úteis" if business else ""

        if days > 0:
            return f"{days}d {hours}h{suffix}"
        if total_hours > 0:
            return f"{total_hours}h {minutes}m{suffix}"
        return f"{minutes}m{suffix}"
