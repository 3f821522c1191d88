"""Failure-risk prediction through the active registered model."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, replace
from math import isfinite
from typing import Mapping

from yantrasense.alerts.system import SystemAlertKind, SystemAlertLog
from yantrasense.domain.errors import ModelCapabilityError, PredictionUnavailableError
from yantrasense.domain.models import FailureRiskRecord, FeatureVector
from yantrasense.risk.contracts import RISK_OUTPUT_KEYS
from yantrasense.risk.registry import ModelRegistry, RegisteredModel

logger = logging.getLogger(__name__)

MachineKey = tuple[str, str]


@dataclass(frozen=True, slots=True)
class RiskPredictorPolicy:
    """History requirement and call budget for model inference."""

    min_history_days: float = 30.0
    timeout_seconds: float = 5.0
    retries: int = 1
    max_workers: int = 4

    def __post_init__(self) -> None:
        if self.min_history_days < 0.0:
            raise ValueError("min_history_days must be >= 0")
        if self.timeout_seconds <= 0.0:
            raise ValueError("timeout_seconds must be > 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be > 0")


class FailureRiskPredictor:
    """Produce `FailureRiskRecord`s without ever failing the calling pipeline.

    A failed or malformed model call is retried once; after that the last good
    record for the machine is served tagged `stale` and a system alert is
    raised. Without a cached record, `PredictionUnavailableError` is raised.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        *,
        system_alerts: SystemAlertLog,
        policy: RiskPredictorPolicy | None = None,
    ) -> None:
        self._registry = registry
        self._system_alerts = system_alerts
        self._policy = RiskPredictorPolicy() if policy is None else policy
        self._executor = ThreadPoolExecutor(
            max_workers=self._policy.max_workers,
            thread_name_prefix="risk-model",
        )
        self._cache_lock = threading.Lock()
        self._last_good: dict[MachineKey, FailureRiskRecord] = {}

    @property
    def policy(self) -> RiskPredictorPolicy:
        return self._policy

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def cached(self, tenant_id: str, machine_id: str) -> FailureRiskRecord | None:
        with self._cache_lock:
            return self._last_good.get((tenant_id, machine_id))

    def predict(self, features: FeatureVector, *, history_span_days: float) -> FailureRiskRecord:
        """Estimate 24h/7d/30d failure risk for the machine owning `features`."""
        if history_span_days < self._policy.min_history_days:
            raise PredictionUnavailableError(
                f"{features.tenant_id}/{features.machine_id} has {history_span_days:.1f} days of history, "
                f"requires {self._policy.min_history_days:.1f}"
            )

        registered = self._registry.active()
        if registered is None:
            raise PredictionUnavailableError("no active risk model registered")
        if len(features.values) != registered.model.input_length:
            raise ValueError(
                f"feature vector length {len(features.values)} does not match model "
                f"{registered.version} input length {registered.model.input_length}"
            )

        attempts = 1 + self._policy.retries
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                raw = self._call_model(registered, features)
                record = _to_record(features, raw, registered.version)
            except (ModelCapabilityError, TimeoutError, OSError) as exc:
                last_error = exc
                logger.warning(
                    "risk model %s attempt %d/%d failed for %s/%s: %s",
                    registered.version,
                    attempt,
                    attempts,
                    features.tenant_id,
                    features.machine_id,
                    exc,
                )
                continue

            with self._cache_lock:
                self._last_good[(features.tenant_id, features.machine_id)] = record
            return record

        return self._fallback(features, registered.version, last_error)

    def _call_model(self, registered: RegisteredModel, features: FeatureVector) -> Mapping[str, float]:
        future = self._executor.submit(registered.model.infer, features.values, registered.version)
        try:
            return future.result(timeout=self._policy.timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            raise TimeoutError(
                f"risk model {registered.version} timed out after {self._policy.timeout_seconds}s"
            ) from exc
        except (ModelCapabilityError, OSError):
            raise
        except Exception as exc:
            raise ModelCapabilityError(
                f"risk model {registered.version} raised {type(exc).__name__}: {exc}"
            ) from exc

    def _fallback(
        self,
        features: FeatureVector,
        version: str,
        error: Exception | None,
    ) -> FailureRiskRecord:
        self._system_alerts.raise_alert(
            SystemAlertKind.MODEL_UNAVAILABLE,
            f"risk model {version} unavailable for {features.tenant_id}/{features.machine_id}: {error}",
            timestamp_ms=features.window_end_ms,
            details={
                "tenant_id": features.tenant_id,
                "machine_id": features.machine_id,
                "version": version,
            },
        )
        cached = self.cached(features.tenant_id, features.machine_id)
        if cached is None:
            raise PredictionUnavailableError(
                f"risk model {version} failed and no cached prediction exists for "
                f"{features.tenant_id}/{features.machine_id}"
            ) from error
        return replace(cached, stale=True)


def _to_record(features: FeatureVector, raw: Mapping[str, float], version: str) -> FailureRiskRecord:
    try:
        risks = [float(raw[key]) for key in RISK_OUTPUT_KEYS]
        confidence = float(raw["confidence"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ModelCapabilityError(f"malformed model output: {exc!r}") from exc

    for value in risks:
        if not isfinite(value) or value < 0.0 or value > 100.0:
            raise ModelCapabilityError(f"risk percentage out of range: {value}")
    if not isfinite(confidence) or confidence < 0.0 or confidence > 1.0:
        raise ModelCapabilityError(f"confidence out of range: {confidence}")

    return FailureRiskRecord(
        tenant_id=features.tenant_id,
        machine_id=features.machine_id,
        timestamp_ms=features.window_end_ms,
        risk_24h=risks[0],
        risk_7d=risks[1],
        risk_30d=risks[2],
        confidence=confidence,
        model_version=version,
    )
