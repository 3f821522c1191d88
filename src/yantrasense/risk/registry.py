"""Versioned registry of risk models with gated promotion."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from yantrasense.alerts.system import SystemAlertKind, SystemAlertLog
from yantrasense.risk.contracts import RiskModel
from yantrasense.risk.promotion import PromotionEvaluation, PromotionTargets, evaluate_promotion

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegisteredModel:
    """One registered model version."""

    version: str
    model: RiskModel
    holdout_accuracy: float | None = None


class ModelRegistry:
    """Resolve the active risk model by version.

    Candidates are registered alongside the active version, which keeps
    serving until a candidate passes the promotion gate.
    """

    def __init__(
        self,
        *,
        system_alerts: SystemAlertLog,
        targets: PromotionTargets | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._models: dict[str, RegisteredModel] = {}
        self._active_version: str | None = None
        self._system_alerts = system_alerts
        self._targets = PromotionTargets() if targets is None else targets

    def register(
        self,
        version: str,
        model: RiskModel,
        *,
        holdout_accuracy: float | None = None,
    ) -> None:
        if not version.strip():
            raise ValueError("version must not be empty")
        with self._lock:
            if version in self._models:
                raise ValueError(f"model version already registered: {version}")
            self._models[version] = RegisteredModel(
                version=version,
                model=model,
                holdout_accuracy=holdout_accuracy,
            )

    def activate(self, version: str) -> None:
        """Pin the active version directly, e.g. from configuration at startup."""
        with self._lock:
            if version not in self._models:
                raise KeyError(f"unknown model version: {version}")
            self._active_version = version
        logger.info("active risk model version set to %s", version)

    def active(self) -> RegisteredModel | None:
        with self._lock:
            if self._active_version is None:
                return None
            return self._models[self._active_version]

    @property
    def versions(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._models))

    def evaluate_candidate(
        self,
        version: str,
        *,
        holdout_accuracy: float,
        timestamp_ms: int | None = None,
    ) -> PromotionEvaluation:
        """Promote `version` if its held-out accuracy passes the gate."""
        with self._lock:
            if version not in self._models:
                raise KeyError(f"unknown model version: {version}")
            active = self._models.get(self._active_version) if self._active_version else None
            evaluation = evaluate_promotion(
                candidate_version=version,
                candidate_accuracy=holdout_accuracy,
                active_version=None if active is None else active.version,
                active_accuracy=None if active is None else active.holdout_accuracy,
                targets=self._targets,
            )
            self._models[version] = RegisteredModel(
                version=version,
                model=self._models[version].model,
                holdout_accuracy=holdout_accuracy,
            )
            if evaluation.passed:
                self._active_version = version

        if evaluation.passed:
            logger.info("promoted risk model %s (accuracy %.4f)", version, holdout_accuracy)
        else:
            logger.info("risk model %s not promoted: %s", version, ", ".join(evaluation.failed_checks))
        if evaluation.below_minimum:
            self._system_alerts.raise_alert(
                SystemAlertKind.MODEL_ACCURACY_BELOW_MINIMUM,
                f"candidate model {version} accuracy {holdout_accuracy:.4f} below minimum "
                f"{self._targets.min_accuracy:.4f}",
                timestamp_ms=timestamp_ms,
                details={"version": version},
            )
        return evaluation

    def record_deployed_accuracy(
        self,
        version: str,
        accuracy: float,
        *,
        timestamp_ms: int | None = None,
    ) -> bool:
        """Track live accuracy; returns `False` and raises a system alert below the minimum."""
        with self._lock:
            if version not in self._models:
                raise KeyError(f"unknown model version: {version}")
        if accuracy >= self._targets.min_accuracy:
            return True
        self._system_alerts.raise_alert(
            SystemAlertKind.MODEL_ACCURACY_BELOW_MINIMUM,
            f"deployed model {version} accuracy {accuracy:.4f} below minimum "
            f"{self._targets.min_accuracy:.4f}",
            timestamp_ms=timestamp_ms,
            details={"version": version},
        )
        return False
