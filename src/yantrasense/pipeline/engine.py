"""Per-machine analytics pipeline orchestration."""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Mapping, Sequence

from yantrasense.alerts.consolidator import AlertConsolidator, ConsolidationResult
from yantrasense.alerts.rules import evaluate_alert_rules
from yantrasense.alerts.system import SystemAlertKind, SystemAlertLog
from yantrasense.anomaly.detector import AnomalyDetector
from yantrasense.domain.errors import (
    InsufficientDataError,
    MachineDeactivatedError,
    PredictionUnavailableError,
)
from yantrasense.domain.models import (
    Alert,
    AnomalyEvent,
    FailureRiskRecord,
    HealthScoreRecord,
    MaintenanceRecommendation,
    SensorReading,
)
from yantrasense.features.extractor import FeatureWindowConfig, extract_features
from yantrasense.health.calculator import HealthScoreCalculator
from yantrasense.pipeline.contracts import (
    NotificationDispatcher,
    NotificationPreferences,
    NotificationRequest,
    ReadingStore,
    RecordSink,
)
from yantrasense.recommendations.resolver import RecommendationResolver
from yantrasense.risk.predictor import FailureRiskPredictor

logger = logging.getLogger(__name__)

MachineKey = tuple[str, str]

_MS_PER_DAY = 86_400_000
_SEVERITY_LABEL_HI = {"HIGH": "उच्च", "MEDIUM": "मध्यम", "LOW": "निम्न"}


@dataclass(frozen=True, slots=True)
class PipelineOutcome:
    """Everything one pipeline run produced for a machine.

    `anomalies` holds one event per newly checked reading that breached its
    baseline; `anomaly` is the largest of them and is the one alerted on.
    `actioned` is false when the machine was deactivated mid-run; derived
    records are then neither persisted nor alerted on.
    """

    tenant_id: str
    machine_id: str
    timestamp_ms: int
    anomaly: AnomalyEvent | None = None
    anomalies: tuple[AnomalyEvent, ...] = ()
    health: HealthScoreRecord | None = None
    risk: FailureRiskRecord | None = None
    alert: Alert | None = None
    recommendation: MaintenanceRecommendation | None = None
    skipped: tuple[str, ...] = ()
    actioned: bool = True


@dataclass(slots=True)
class _MachineSlot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    running: bool = False
    pending_ms: int | None = None
    detected_through_ms: int | None = None


@dataclass(frozen=True, slots=True)
class _RiskBranch:
    record: FailureRiskRecord | None
    skipped: str | None


class AnalyticsEngine:
    """Run feature extraction, detection, scoring, prediction and alerting per machine.

    Machines run independently and in parallel. For one machine at most one
    recompute is in flight; triggers arriving meanwhile coalesce into a single
    follow-up run at the latest requested time.
    """

    def __init__(
        self,
        *,
        reading_store: ReadingStore,
        sink: RecordSink,
        detector: AnomalyDetector,
        health_calculator: HealthScoreCalculator,
        predictor: FailureRiskPredictor,
        consolidator: AlertConsolidator,
        resolver: RecommendationResolver,
        system_alerts: SystemAlertLog,
        feature_config: FeatureWindowConfig | None = None,
        dispatcher: NotificationDispatcher | None = None,
        preferences: Mapping[str, Sequence[NotificationPreferences]] | None = None,
        max_workers: int = 8,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        self._store = reading_store
        self._sink = sink
        self._detector = detector
        self._health = health_calculator
        self._predictor = predictor
        self._consolidator = consolidator
        self._resolver = resolver
        self._system_alerts = system_alerts
        self._feature_config = FeatureWindowConfig() if feature_config is None else feature_config
        self._dispatcher = dispatcher
        self._preferences = {} if preferences is None else dict(preferences)

        self._slots_lock = threading.Lock()
        self._slots: dict[MachineKey, _MachineSlot] = {}
        self._inactive: set[MachineKey] = set()
        self._machine_pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="machine")
        self._branch_pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="risk-branch")

    def close(self) -> None:
        self._machine_pool.shutdown(wait=True)
        self._branch_pool.shutdown(wait=True)

    def deactivate(self, tenant_id: str, machine_id: str) -> None:
        with self._slots_lock:
            self._inactive.add((tenant_id, machine_id))
        logger.info("machine %s/%s deactivated", tenant_id, machine_id)

    def activate(self, tenant_id: str, machine_id: str) -> None:
        with self._slots_lock:
            self._inactive.discard((tenant_id, machine_id))

    def is_active(self, tenant_id: str, machine_id: str) -> bool:
        with self._slots_lock:
            return (tenant_id, machine_id) not in self._inactive

    def trigger(self, tenant_id: str, machine_id: str, *, now_ms: int) -> PipelineOutcome | None:
        """Recompute the machine at `now_ms`.

        Returns `None` when a run is already in flight for the machine; that run
        picks up the request once it finishes.
        """
        if not self.is_active(tenant_id, machine_id):
            raise MachineDeactivatedError(f"machine {tenant_id}/{machine_id} is deactivated")

        slot = self._slot((tenant_id, machine_id))
        with slot.lock:
            if slot.running:
                slot.pending_ms = now_ms if slot.pending_ms is None else max(slot.pending_ms, now_ms)
                logger.debug("coalesced trigger for %s/%s at %d", tenant_id, machine_id, now_ms)
                return None
            slot.running = True

        current_ms = now_ms
        try:
            while True:
                with slot.lock:
                    detected_through_ms = slot.detected_through_ms
                outcome, covered_ms = self._run_once(tenant_id, machine_id, current_ms, detected_through_ms)
                with slot.lock:
                    if covered_ms is not None and (
                        slot.detected_through_ms is None or covered_ms > slot.detected_through_ms
                    ):
                        slot.detected_through_ms = covered_ms
                    if slot.pending_ms is None:
                        slot.running = False
                        return outcome
                    current_ms = max(current_ms, slot.pending_ms)
                    slot.pending_ms = None
        except BaseException:
            with slot.lock:
                slot.running = False
                slot.pending_ms = None
            raise

    def trigger_many(
        self,
        requests: Sequence[tuple[str, str, int]],
    ) -> dict[MachineKey, PipelineOutcome | None]:
        """Fan out `(tenant_id, machine_id, now_ms)` triggers across machines.

        A failing machine raises a system alert and yields `None`; it never
        blocks the others.
        """
        futures: list[tuple[MachineKey, int, Future[PipelineOutcome | None]]] = [
            (
                (tenant_id, machine_id),
                now_ms,
                self._machine_pool.submit(self.trigger, tenant_id, machine_id, now_ms=now_ms),
            )
            for tenant_id, machine_id, now_ms in requests
        ]

        outcomes: dict[MachineKey, PipelineOutcome | None] = {}
        for key, now_ms, future in futures:
            try:
                outcome = future.result()
            except MachineDeactivatedError as exc:
                logger.info("%s", exc)
                outcome = None
            except Exception as exc:
                logger.exception("pipeline failed for %s/%s", key[0], key[1])
                self._system_alerts.raise_alert(
                    SystemAlertKind.PIPELINE_FAILURE,
                    f"pipeline failed for {key[0]}/{key[1]}: {exc}",
                    timestamp_ms=now_ms,
                    details={"tenant_id": key[0], "machine_id": key[1]},
                )
                outcome = None
            if outcome is not None or key not in outcomes:
                outcomes[key] = outcome
        return outcomes

    def _slot(self, key: MachineKey) -> _MachineSlot:
        with self._slots_lock:
            return self._slots.setdefault(key, _MachineSlot())

    def _run_once(
        self,
        tenant_id: str,
        machine_id: str,
        now_ms: int,
        detected_through_ms: int | None,
    ) -> tuple[PipelineOutcome, int | None]:
        """Run every stage once; also return the newest timestamp checked for anomalies."""
        feature_window = self._store.get_window(
            tenant_id,
            machine_id,
            now_ms - self._feature_config.window_ms,
            now_ms,
        )
        if not feature_window:
            empty = PipelineOutcome(
                tenant_id=tenant_id,
                machine_id=machine_id,
                timestamp_ms=now_ms,
                skipped=("no readings in window",),
            )
            return empty, None

        latest = feature_window[-1]
        risk_future = self._branch_pool.submit(self._risk_branch, feature_window, latest.timestamp_ms)

        skipped: list[str] = []
        anomalies = self._detect_new(feature_window, detected_through_ms)
        health = self._score_health(latest, anomalies, skipped)
        risk_branch = risk_future.result()
        if risk_branch.skipped is not None:
            skipped.append(risk_branch.skipped)

        outcome = PipelineOutcome(
            tenant_id=tenant_id,
            machine_id=machine_id,
            timestamp_ms=latest.timestamp_ms,
            anomaly=max(anomalies, key=lambda event: (event.magnitude, event.timestamp_ms), default=None),
            anomalies=anomalies,
            health=health,
            risk=risk_branch.record,
            skipped=tuple(skipped),
        )
        if not self.is_active(tenant_id, machine_id):
            logger.info("machine %s/%s deactivated mid-run; output not actioned", tenant_id, machine_id)
            return replace(outcome, actioned=False), None

        for record in (*anomalies, health, risk_branch.record):
            if record is not None:
                self._sink.put(record)
        return self._raise_alert(outcome), latest.timestamp_ms

    def _detect_new(
        self,
        feature_window: Sequence[SensorReading],
        detected_through_ms: int | None,
    ) -> tuple[AnomalyEvent, ...]:
        """Check every reading newer than the last one already checked."""
        latest = feature_window[-1]
        if detected_through_ms is None:
            pending: Sequence[SensorReading] = feature_window
        elif detected_through_ms >= latest.timestamp_ms:
            pending = ()
        else:
            pending = self._store.get_window(
                latest.tenant_id,
                latest.machine_id,
                detected_through_ms + 1,
                latest.timestamp_ms,
            )
        events = (self._detector.detect(reading) for reading in pending)
        return tuple(event for event in events if event is not None)

    def _score_health(
        self,
        latest: SensorReading,
        detected: Sequence[AnomalyEvent],
        skipped: list[str],
    ) -> HealthScoreRecord | None:
        start_ms = latest.timestamp_ms - self._health.policy.scoring_window_ms
        readings = self._store.get_window(latest.tenant_id, latest.machine_id, start_ms, latest.timestamp_ms)
        by_ts = {
            event.timestamp_ms: event
            for event in self._sink.anomalies_between(
                latest.tenant_id, latest.machine_id, start_ms, latest.timestamp_ms
            )
        }
        for event in detected:
            if event.timestamp_ms >= start_ms:
                by_ts.setdefault(event.timestamp_ms, event)
        anomalies = [by_ts[ts] for ts in sorted(by_ts)]
        try:
            return self._health.calculate(readings, anomalies)
        except InsufficientDataError as exc:
            skipped.append(f"health: {exc}")
            return None

    def _risk_branch(self, window: Sequence[SensorReading], end_ms: int) -> _RiskBranch:
        latest = window[-1]
        try:
            features = extract_features(window, self._feature_config)
        except InsufficientDataError as exc:
            return _RiskBranch(record=None, skipped=f"risk: {exc}")

        min_days = self._predictor.policy.min_history_days
        history = self._store.get_historical_window(
            latest.tenant_id,
            latest.machine_id,
            max(1.0, math.ceil(min_days) + 1.0),
            end_ms=end_ms,
        )
        span_days = (end_ms - history[0].timestamp_ms) / _MS_PER_DAY if history else 0.0
        try:
            return _RiskBranch(record=self._predictor.predict(features, history_span_days=span_days), skipped=None)
        except PredictionUnavailableError as exc:
            return _RiskBranch(record=None, skipped=f"risk: {exc}")

    def _raise_alert(self, outcome: PipelineOutcome) -> PipelineOutcome:
        candidate = evaluate_alert_rules(
            tenant_id=outcome.tenant_id,
            machine_id=outcome.machine_id,
            timestamp_ms=outcome.timestamp_ms,
            health=outcome.health,
            risk=outcome.risk,
            anomaly=outcome.anomaly,
            policy=self._consolidator.policy,
        )
        if candidate is None:
            return outcome

        result = self._consolidator.submit(candidate)
        if not result.changed:
            return replace(outcome, alert=result.alert)

        recommendation = self._recommendation_for(result)
        self._sink.put(result.alert)
        self._sink.put(recommendation)
        if result.escalated:
            self._notify(result, recommendation)
        return replace(outcome, alert=result.alert, recommendation=recommendation)

    def _recommendation_for(self, result: ConsolidationResult) -> MaintenanceRecommendation:
        # One recommendation per alert; merges refresh its guidance in place.
        if not result.created:
            existing = self._sink.recommendation_for(result.alert.alert_id)
            if existing is not None:
                return self._resolver.refresh(existing, result.alert)
        return self._resolver.resolve(result.alert)

    def _notify(self, result: ConsolidationResult, recommendation: MaintenanceRecommendation) -> None:
        if self._dispatcher is None:
            return
        alert = result.alert
        preferences = self._preferences.get(alert.tenant_id, ())
        hint: list[str] = []
        for preference in preferences:
            for channel in preference.channel_hint(alert.severity):
                if channel not in hint:
                    hint.append(channel)

        summary = "; ".join(trigger.description for trigger in alert.triggers)
        self._dispatcher.dispatch(
            NotificationRequest(
                alert=alert,
                recommendation=recommendation,
                severity=alert.severity,
                channel_hint=tuple(hint),
                recipients=tuple(preference.user_id for preference in preferences),
                message_en=f"[{alert.severity.name}] machine {alert.machine_id}: {summary}. {recommendation.text_en}",
                message_hi=(
                    f"[{_SEVERITY_LABEL_HI[alert.severity.name]}] मशीन {alert.machine_id}: "
                    f"{recommendation.text_hi}"
                ),
            )
        )

