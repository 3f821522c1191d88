"""Unit tests for the model promotion gate and version registry."""

from __future__ import annotations

from typing import Mapping, Sequence

import pytest

from yantrasense.alerts import SystemAlertKind, SystemAlertLog
from yantrasense.risk import ModelRegistry, PromotionTargets, evaluate_promotion


class _ConstantModel:
    def __init__(self, risk: float) -> None:
        self._risk = risk

    @property
    def input_length(self) -> int:
        return 3

    def infer(self, values: Sequence[float], model_version: str) -> Mapping[str, float]:
        return {"risk_24h": self._risk, "risk_7d": self._risk, "risk_30d": self._risk, "confidence": 0.9}


def test_first_candidate_passes_on_minimum_accuracy() -> None:
    evaluation = evaluate_promotion(
        candidate_version="v1",
        candidate_accuracy=0.80,
        active_version=None,
        active_accuracy=None,
        targets=PromotionTargets(),
    )

    assert evaluation.passed
    assert evaluation.failed_checks == ()


def test_candidate_must_match_active_accuracy() -> None:
    evaluation = evaluate_promotion(
        candidate_version="v2",
        candidate_accuracy=0.81,
        active_version="v1",
        active_accuracy=0.83,
        targets=PromotionTargets(),
    )

    assert not evaluation.passed
    assert evaluation.failed_checks == ("accuracy_regressed:0.8100<0.8300",)
    assert not evaluation.below_minimum


def test_equal_accuracy_is_enough() -> None:
    evaluation = evaluate_promotion(
        candidate_version="v2",
        candidate_accuracy=0.83,
        active_version="v1",
        active_accuracy=0.83,
        targets=PromotionTargets(),
    )

    assert evaluation.passed


def test_below_minimum_is_flagged() -> None:
    evaluation = evaluate_promotion(
        candidate_version="v2",
        candidate_accuracy=0.70,
        active_version=None,
        active_accuracy=None,
        targets=PromotionTargets(min_accuracy=0.75),
    )

    assert not evaluation.passed
    assert evaluation.below_minimum


def test_invalid_accuracy_values_raise() -> None:
    with pytest.raises(ValueError, match="candidate_accuracy"):
        evaluate_promotion(
            candidate_version="v2",
            candidate_accuracy=1.2,
            active_version=None,
            active_accuracy=None,
            targets=PromotionTargets(),
        )
    with pytest.raises(ValueError, match="min_accuracy"):
        PromotionTargets(min_accuracy=-0.1)


def test_registry_keeps_active_version_serving_until_candidate_passes() -> None:
    alerts = SystemAlertLog()
    registry = ModelRegistry(system_alerts=alerts)
    registry.register("v1", _ConstantModel(10.0), holdout_accuracy=0.82)
    registry.activate("v1")
    registry.register("v2", _ConstantModel(20.0))

    rejected = registry.evaluate_candidate("v2", holdout_accuracy=0.80, timestamp_ms=1_000)
    active = registry.active()
    assert not rejected.passed
    assert active is not None and active.version == "v1"

    promoted = registry.evaluate_candidate("v2", holdout_accuracy=0.85, timestamp_ms=2_000)
    active = registry.active()
    assert promoted.passed
    assert active is not None and active.version == "v2"
    assert registry.versions == ("v1", "v2")
    assert alerts.alerts() == ()


def test_registry_raises_system_alert_for_low_accuracy() -> None:
    alerts = SystemAlertLog()
    registry = ModelRegistry(system_alerts=alerts)
    registry.register("v1", _ConstantModel(10.0))

    evaluation = registry.evaluate_candidate("v1", holdout_accuracy=0.60, timestamp_ms=5_000)
    healthy = registry.record_deployed_accuracy("v1", 0.9)
    degraded = registry.record_deployed_accuracy("v1", 0.7, timestamp_ms=6_000)

    assert not evaluation.passed
    assert registry.active() is None
    assert healthy
    assert not degraded
    raised = alerts.alerts(SystemAlertKind.MODEL_ACCURACY_BELOW_MINIMUM)
    assert [alert.timestamp_ms for alert in raised] == [5_000, 6_000]
    assert raised[0].details == {"version": "v1"}


def test_registry_rejects_duplicates_and_unknown_versions() -> None:
    registry = ModelRegistry(system_alerts=SystemAlertLog())
    registry.register("v1", _ConstantModel(10.0))

    with pytest.raises(ValueError, match="already registered"):
        registry.register("v1", _ConstantModel(5.0))
    with pytest.raises(KeyError, match="unknown model version"):
        registry.activate("v9")
    with pytest.raises(KeyError, match="unknown model version"):
        registry.evaluate_candidate("v9", holdout_accuracy=0.9)
