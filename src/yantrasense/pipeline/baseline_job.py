"""Weekly baseline recompute across machines."""

from __future__ import annotations

import logging
from typing import Iterable

from yantrasense.alerts.system import SystemAlertKind, SystemAlertLog
from yantrasense.anomaly.baseline import BaselineStore
from yantrasense.anomaly.detector import AnomalyDetector, BaselineUpdateResult
from yantrasense.pipeline.contracts import ReadingStore

logger = logging.getLogger(__name__)

MachineKey = tuple[str, str]

WEEK_MS = 7 * 86_400_000


class BaselineRecomputeJob:
    """Recompute baselines on a fixed interval, plus any machine flagged as corrupt."""

    def __init__(
        self,
        *,
        reading_store: ReadingStore,
        detector: AnomalyDetector,
        baseline_store: BaselineStore,
        system_alerts: SystemAlertLog,
        interval_ms: int = WEEK_MS,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self._readings = reading_store
        self._detector = detector
        self._baselines = baseline_store
        self._system_alerts = system_alerts
        self._interval_ms = interval_ms
        self._last_run_ms: int | None = None

    @property
    def last_run_ms(self) -> int | None:
        return self._last_run_ms

    def is_due(self, now_ms: int) -> bool:
        if self._baselines.pending_recomputes():
            return True
        return self._last_run_ms is None or now_ms - self._last_run_ms >= self._interval_ms

    def run(self, machines: Iterable[MachineKey], *, now_ms: int) -> tuple[BaselineUpdateResult, ...]:
        """Recompute each listed machine and every pending recompute request."""
        keys = sorted(set(machines) | set(self._baselines.pending_recomputes()))
        history_days = self._detector.baseline_policy.history_days

        results: list[BaselineUpdateResult] = []
        for tenant_id, machine_id in keys:
            history = self._readings.get_historical_window(
                tenant_id,
                machine_id,
                float(history_days),
                end_ms=now_ms,
            )
            result = self._detector.update_baseline(tenant_id, machine_id, history, now_ms=now_ms)
            if not result.installed:
                self._system_alerts.raise_alert(
                    SystemAlertKind.BASELINE_RECOMPUTE_SKIPPED,
                    result.warning or f"baseline recompute skipped for {tenant_id}/{machine_id}",
                    timestamp_ms=now_ms,
                    details={"tenant_id": tenant_id, "machine_id": machine_id},
                )
            results.append(result)

        self._last_run_ms = now_ms
        logger.info(
            "baseline recompute finished: %d machine(s), %d installed",
            len(results),
            sum(1 for result in results if result.installed),
        )
        return tuple(results)
