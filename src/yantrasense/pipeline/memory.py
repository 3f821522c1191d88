"""In-memory adapters for the reading store, record sink and dispatcher."""

from __future__ import annotations

import bisect
import threading
from typing import Iterable, TypeVar

from yantrasense.domain.models import (
    Alert,
    AnomalyEvent,
    FailureRiskRecord,
    HealthScoreRecord,
    MaintenanceRecommendation,
    SensorReading,
)
from yantrasense.pipeline.contracts import DerivedRecord, NotificationRequest

_MS_PER_DAY = 86_400_000

MachineKey = tuple[str, str]
_TimestampedT = TypeVar("_TimestampedT", AnomalyEvent, HealthScoreRecord, FailureRiskRecord)


class InMemoryReadingStore:
    """Readings per (tenant, machine), kept sorted by timestamp.

    A second reading with an already-stored timestamp is ignored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timestamps: dict[MachineKey, list[int]] = {}
        self._readings: dict[MachineKey, dict[int, SensorReading]] = {}

    def add(self, reading: SensorReading) -> bool:
        key = (reading.tenant_id, reading.machine_id)
        with self._lock:
            by_ts = self._readings.setdefault(key, {})
            if reading.timestamp_ms in by_ts:
                return False
            by_ts[reading.timestamp_ms] = reading
            bisect.insort(self._timestamps.setdefault(key, []), reading.timestamp_ms)
            return True

    def add_many(self, readings: Iterable[SensorReading]) -> int:
        return sum(1 for reading in readings if self.add(reading))

    def machines(self, tenant_id: str) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(machine for tenant, machine in self._readings if tenant == tenant_id))

    def get_window(
        self,
        tenant_id: str,
        machine_id: str,
        start_ms: int,
        end_ms: int,
    ) -> tuple[SensorReading, ...]:
        key = (tenant_id, machine_id)
        with self._lock:
            timestamps = self._timestamps.get(key, [])
            lo = bisect.bisect_left(timestamps, start_ms)
            hi = bisect.bisect_right(timestamps, end_ms)
            by_ts = self._readings.get(key, {})
            return tuple(by_ts[ts] for ts in timestamps[lo:hi])

    def get_historical_window(
        self,
        tenant_id: str,
        machine_id: str,
        days: float,
        *,
        end_ms: int,
    ) -> tuple[SensorReading, ...]:
        if days <= 0:
            raise ValueError("days must be > 0")
        return self.get_window(tenant_id, machine_id, end_ms - int(days * _MS_PER_DAY), end_ms)


class InMemoryRecordSink:
    """Derived-record store keyed the way a persistence layer would de-duplicate."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._anomalies: dict[tuple[str, str, int], AnomalyEvent] = {}
        self._health: dict[tuple[str, str, int], HealthScoreRecord] = {}
        self._risk: dict[tuple[str, str, int], FailureRiskRecord] = {}
        self._alerts: dict[str, Alert] = {}
        self._recommendations: dict[str, MaintenanceRecommendation] = {}

    def put(self, record: DerivedRecord) -> None:
        with self._lock:
            if isinstance(record, AnomalyEvent):
                self._anomalies[(record.tenant_id, record.machine_id, record.timestamp_ms)] = record
            elif isinstance(record, HealthScoreRecord):
                self._health[(record.tenant_id, record.machine_id, record.timestamp_ms)] = record
            elif isinstance(record, FailureRiskRecord):
                self._risk[(record.tenant_id, record.machine_id, record.timestamp_ms)] = record
            elif isinstance(record, Alert):
                self._alerts[record.alert_id] = record
            elif isinstance(record, MaintenanceRecommendation):
                self._recommendations[record.recommendation_id] = record
            else:
                raise TypeError(f"unsupported record type: {type(record).__name__}")

    def anomalies_between(
        self,
        tenant_id: str,
        machine_id: str,
        start_ms: int,
        end_ms: int,
    ) -> tuple[AnomalyEvent, ...]:
        with self._lock:
            return tuple(
                sorted(
                    (
                        event
                        for (tenant, machine, ts), event in self._anomalies.items()
                        if tenant == tenant_id and machine == machine_id and start_ms <= ts <= end_ms
                    ),
                    key=lambda event: event.timestamp_ms,
                )
            )

    def anomalies(self, tenant_id: str) -> tuple[AnomalyEvent, ...]:
        with self._lock:
            return _sorted_for_tenant(self._anomalies.values(), tenant_id)

    def health_scores(self, tenant_id: str) -> tuple[HealthScoreRecord, ...]:
        with self._lock:
            return _sorted_for_tenant(self._health.values(), tenant_id)

    def failure_risks(self, tenant_id: str) -> tuple[FailureRiskRecord, ...]:
        with self._lock:
            return _sorted_for_tenant(self._risk.values(), tenant_id)

    def alerts(self, tenant_id: str) -> tuple[Alert, ...]:
        with self._lock:
            return tuple(
                sorted(
                    (alert for alert in self._alerts.values() if alert.tenant_id == tenant_id),
                    key=lambda alert: (alert.machine_id, alert.created_at_ms),
                )
            )

    def recommendations_for(self, alert_id: str) -> tuple[MaintenanceRecommendation, ...]:
        with self._lock:
            return tuple(
                recommendation
                for recommendation in self._recommendations.values()
                if recommendation.alert_id == alert_id
            )

    def recommendation_for(self, alert_id: str) -> MaintenanceRecommendation | None:
        with self._lock:
            for recommendation in self._recommendations.values():
                if recommendation.alert_id == alert_id:
                    return recommendation
        return None


class RecordingDispatcher:
    """Dispatcher that keeps requests in memory instead of delivering them."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests: list[NotificationRequest] = []

    def dispatch(self, request: NotificationRequest) -> None:
        with self._lock:
            self._requests.append(request)

    @property
    def requests(self) -> tuple[NotificationRequest, ...]:
        with self._lock:
            return tuple(self._requests)


def _sorted_for_tenant(records: Iterable[_TimestampedT], tenant_id: str) -> tuple[_TimestampedT, ...]:
    return tuple(
        sorted(
            (record for record in records if record.tenant_id == tenant_id),
            key=lambda record: (record.machine_id, record.timestamp_ms),
        )
    )
