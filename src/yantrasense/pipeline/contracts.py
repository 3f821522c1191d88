"""Capability contracts for collaborators outside the analytics core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol, Sequence

from yantrasense.domain.models import (
    Alert,
    AnomalyEvent,
    FailureRiskRecord,
    HealthScoreRecord,
    MaintenanceRecommendation,
    SensorReading,
    Severity,
)

DerivedRecord = (
    AnomalyEvent | HealthScoreRecord | FailureRiskRecord | Alert | MaintenanceRecommendation
)


class ReadingStore(Protocol):
    """Read access to raw readings; every call is scoped to one tenant."""

    def get_window(
        self,
        tenant_id: str,
        machine_id: str,
        start_ms: int,
        end_ms: int,
    ) -> Sequence[SensorReading]:
        """Readings with `start_ms <= timestamp <= end_ms`, ordered by timestamp."""
        ...

    def get_historical_window(
        self,
        tenant_id: str,
        machine_id: str,
        days: float,
        *,
        end_ms: int,
    ) -> Sequence[SensorReading]:
        """Readings from the `days` days ending at `end_ms`, ordered by timestamp."""
        ...


class RecordSink(Protocol):
    """Fire-and-forget persistence; writes are idempotent on the record key."""

    def put(self, record: DerivedRecord) -> None: ...

    def anomalies_between(
        self,
        tenant_id: str,
        machine_id: str,
        start_ms: int,
        end_ms: int,
    ) -> Sequence[AnomalyEvent]: ...

    def recommendation_for(self, alert_id: str) -> MaintenanceRecommendation | None:
        """The recommendation bound to `alert_id`, including its completion state."""
        ...


def _default_channels_by_severity() -> dict[Severity, tuple[str, ...]]:
    return {
        Severity.HIGH: ("sms", "email", "in_app"),
        Severity.MEDIUM: ("email", "in_app"),
        Severity.LOW: ("in_app",),
    }


@dataclass(frozen=True, slots=True)
class NotificationPreferences:
    """Per-user delivery channels by alert severity."""

    user_id: str
    channels_by_severity: Mapping[Severity, tuple[str, ...]] = field(
        default_factory=_default_channels_by_severity
    )

    def channel_hint(self, severity: Severity) -> tuple[str, ...]:
        return tuple(self.channels_by_severity.get(severity, ()))


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    """Fully formed alert handed to the external dispatcher."""

    alert: Alert
    recommendation: MaintenanceRecommendation
    severity: Severity
    channel_hint: tuple[str, ...]
    recipients: tuple[str, ...]
    message_en: str
    message_hi: str


class NotificationDispatcher(Protocol):
    """Delivers notifications; retry with backoff is the dispatcher's concern."""

    def dispatch(self, request: NotificationRequest) -> None: ...
