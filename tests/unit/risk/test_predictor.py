"""Unit tests for failure-risk prediction, retry and stale fallback."""

from __future__ import annotations

import threading
from typing import Mapping, Sequence

import pytest

from yantrasense.alerts import SystemAlertKind, SystemAlertLog
from yantrasense.domain import FeatureVector, ModelCapabilityError, PredictionUnavailableError
from yantrasense.risk import FailureRiskPredictor, ModelRegistry, RiskPredictorPolicy

_T0 = 1_767_225_600_000


class _ScriptedModel:
    """Replays scripted outcomes; an exception instance is raised instead of returned."""

    def __init__(self, *outcomes: Mapping[str, float] | Exception) -> None:
        self._outcomes = list(outcomes)
        self.calls = 0

    @property
    def input_length(self) -> int:
        return 3

    def infer(self, values: Sequence[float], model_version: str) -> Mapping[str, float]:
        self.calls += 1
        outcome = self._outcomes[min(self.calls, len(self._outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _BlockingModel:
    def __init__(self) -> None:
        self.release = threading.Event()
        self.calls = 0

    @property
    def input_length(self) -> int:
        return 3

    def infer(self, values: Sequence[float], model_version: str) -> Mapping[str, float]:
        self.calls += 1
        self.release.wait(timeout=5.0)
        return _output(1.0)


def _output(risk: float, confidence: float = 0.9) -> dict[str, float]:
    return {"risk_24h": risk, "risk_7d": risk + 5.0, "risk_30d": risk + 10.0, "confidence": confidence}


def _features(offset_ms: int = 0) -> FeatureVector:
    return FeatureVector("factory-a", "cnc-4", _T0 + offset_ms, _T0 + offset_ms + 60_000, (1.0, 2.0, 3.0))


def _predictor(
    model: object,
    *,
    policy: RiskPredictorPolicy | None = None,
) -> tuple[FailureRiskPredictor, SystemAlertLog]:
    alerts = SystemAlertLog()
    registry = ModelRegistry(system_alerts=alerts)
    registry.register("v1", model)  # type: ignore[arg-type]
    registry.activate("v1")
    return FailureRiskPredictor(registry, system_alerts=alerts, policy=policy), alerts


def test_successful_prediction_is_recorded_and_cached() -> None:
    predictor, alerts = _predictor(_ScriptedModel(_output(12.0)))

    record = predictor.predict(_features(), history_span_days=45.0)

    assert (record.risk_24h, record.risk_7d, record.risk_30d) == (12.0, 17.0, 22.0)
    assert record.model_version == "v1"
    assert record.timestamp_ms == _T0 + 60_000
    assert not record.stale
    assert predictor.cached("factory-a", "cnc-4") == record
    assert alerts.alerts() == ()
    predictor.close()


def test_short_history_is_prediction_unavailable() -> None:
    model = _ScriptedModel(_output(12.0))
    predictor, _ = _predictor(model)

    with pytest.raises(PredictionUnavailableError, match="requires 30.0"):
        predictor.predict(_features(), history_span_days=12.5)
    assert model.calls == 0
    predictor.close()


def test_single_failure_is_retried_once() -> None:
    model = _ScriptedModel(ModelCapabilityError("connection reset"), _output(30.0))
    predictor, alerts = _predictor(model)

    record = predictor.predict(_features(), history_span_days=45.0)

    assert model.calls == 2
    assert record.risk_24h == 30.0
    assert not record.stale
    assert alerts.alerts() == ()
    predictor.close()


def test_unexpected_model_exception_is_retried_then_served_from_cache() -> None:
    model = _ScriptedModel(
        _output(40.0),
        RuntimeError("model backend crashed"),
        RuntimeError("model backend crashed"),
    )
    predictor, alerts = _predictor(model)
    predictor.predict(_features(), history_span_days=45.0)

    fallback = predictor.predict(_features(offset_ms=300_000), history_span_days=45.0)

    assert model.calls == 3
    assert fallback.stale and fallback.risk_24h == 40.0
    (raised,) = alerts.alerts(SystemAlertKind.MODEL_UNAVAILABLE)
    assert "RuntimeError: model backend crashed" in raised.message
    predictor.close()


def test_unexpected_model_exception_recovers_on_retry() -> None:
    model = _ScriptedModel(ValueError("bad tensor shape"), _output(8.0))
    predictor, alerts = _predictor(model)

    record = predictor.predict(_features(), history_span_days=45.0)

    assert model.calls == 2
    assert record.risk_24h == 8.0
    assert alerts.alerts() == ()
    predictor.close()


def test_exhausted_retries_fall_back_to_stale_cache_with_system_alert() -> None:
    model = _ScriptedModel(_output(25.0), OSError("unreachable"))
    predictor, alerts = _predictor(model)
    fresh = predictor.predict(_features(), history_span_days=45.0)

    fallback = predictor.predict(_features(offset_ms=300_000), history_span_days=45.0)

    assert model.calls == 3
    assert fallback.stale
    assert fallback.risk_24h == fresh.risk_24h
    assert fallback.timestamp_ms == fresh.timestamp_ms
    raised = alerts.alerts(SystemAlertKind.MODEL_UNAVAILABLE)
    assert len(raised) == 1
    assert raised[0].details["machine_id"] == "cnc-4"
    predictor.close()


def test_malformed_output_without_cache_is_unavailable() -> None:
    model = _ScriptedModel({"risk_24h": 150.0, "risk_7d": 1.0, "risk_30d": 1.0, "confidence": 0.5})
    predictor, alerts = _predictor(model)

    with pytest.raises(PredictionUnavailableError, match="no cached prediction"):
        predictor.predict(_features(), history_span_days=45.0)
    assert model.calls == 2
    assert len(alerts.alerts(SystemAlertKind.MODEL_UNAVAILABLE)) == 1
    predictor.close()


def test_missing_output_key_is_treated_as_capability_failure() -> None:
    model = _ScriptedModel({"risk_24h": 1.0, "confidence": 0.5})
    predictor, _ = _predictor(model)

    with pytest.raises(PredictionUnavailableError):
        predictor.predict(_features(), history_span_days=45.0)
    predictor.close()


def test_timeout_triggers_exactly_one_retry() -> None:
    model = _BlockingModel()
    predictor, alerts = _predictor(
        model,
        policy=RiskPredictorPolicy(timeout_seconds=0.05, retries=1, max_workers=2),
    )

    with pytest.raises(PredictionUnavailableError):
        predictor.predict(_features(), history_span_days=45.0)

    model.release.set()
    assert model.calls == 2
    assert "timed out" in alerts.alerts(SystemAlertKind.MODEL_UNAVAILABLE)[0].message
    predictor.close()


def test_feature_length_mismatch_is_a_programmer_error() -> None:
    predictor, _ = _predictor(_ScriptedModel(_output(1.0)))
    features = FeatureVector("factory-a", "cnc-4", _T0, _T0, (1.0, 2.0))

    with pytest.raises(ValueError, match="does not match model v1 input length 3"):
        predictor.predict(features, history_span_days=45.0)
    predictor.close()


def test_no_active_model_is_unavailable() -> None:
    alerts = SystemAlertLog()
    predictor = FailureRiskPredictor(ModelRegistry(system_alerts=alerts), system_alerts=alerts)

    with pytest.raises(PredictionUnavailableError, match="no active risk model"):
        predictor.predict(_features(), history_span_days=45.0)
    predictor.close()


def test_policy_validation() -> None:
    with pytest.raises(ValueError, match="timeout_seconds"):
        RiskPredictorPolicy(timeout_seconds=0.0)
    with pytest.raises(ValueError, match="retries"):
        RiskPredictorPolicy(retries=-1)
