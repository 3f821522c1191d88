"""Unit tests for the statistical and learned risk model strategies."""

from __future__ import annotations

import numpy as np
import pytest
import torch

from yantrasense.features import FEATURE_LENGTH, FEATURE_NAMES
from yantrasense.risk import (
    RISK_OUTPUT_KEYS,
    LogisticRiskModel,
    RiskHeadMLP,
    TorchRiskModel,
    confidence_from_probabilities,
)


def _nominal_features() -> list[float]:
    centers = {
        "vibration_mean": 10.0,
        "vibration_std": 2.0,
        "vibration_max": 20.0,
        "temperature_mean": 45.0,
        "temperature_max": 70.0,
        "load_mean": 50.0,
        "load_max": 85.0,
        "vibration_dominant_amplitude": 1.0,
    }
    return [centers.get(name, 0.0) for name in FEATURE_NAMES]


def _degraded_features() -> list[float]:
    values = dict(zip(FEATURE_NAMES, _nominal_features()))
    values.update(
        vibration_mean=30.0,
        vibration_std=8.0,
        vibration_max=60.0,
        vibration_trend_per_hour=2.0,
        temperature_mean=90.0,
    )
    return [values[name] for name in FEATURE_NAMES]


def _assert_valid_output(output: dict[str, float] | object) -> None:
    assert isinstance(output, dict)
    for key in RISK_OUTPUT_KEYS:
        assert 0.0 <= output[key] <= 100.0
    assert 0.0 <= output["confidence"] <= 1.0


def test_confidence_is_one_for_decisive_and_zero_for_coin_flip() -> None:
    assert confidence_from_probabilities([0.0, 1.0, 1.0]) == pytest.approx(1.0)
    assert confidence_from_probabilities([0.5, 0.5, 0.5]) == pytest.approx(0.0)


def test_reference_model_at_feature_centers_returns_bias_risk() -> None:
    model = LogisticRiskModel.reference()

    output = model.infer(_nominal_features(), "logistic-reference-v1")

    assert model.input_length == FEATURE_LENGTH
    assert output["risk_24h"] == pytest.approx(100.0 / (1.0 + np.exp(3.0)))
    assert output["risk_7d"] == pytest.approx(100.0 / (1.0 + np.exp(2.0)))
    assert output["risk_30d"] == pytest.approx(100.0 / (1.0 + np.exp(1.2)))


def test_degraded_machine_has_higher_risk_on_every_horizon() -> None:
    model = LogisticRiskModel.reference()

    nominal = model.infer(_nominal_features(), "v1")
    degraded = model.infer(_degraded_features(), "v1")

    _assert_valid_output(degraded)
    for key in RISK_OUTPUT_KEYS:
        assert degraded[key] > nominal[key]
    assert degraded["risk_24h"] <= degraded["risk_7d"] <= degraded["risk_30d"]


def test_reference_model_output_stays_in_range_for_extreme_inputs() -> None:
    model = LogisticRiskModel.reference()
    rng = np.random.default_rng(11)

    for _ in range(20):
        _assert_valid_output(model.infer(list(rng.normal(0.0, 1e4, size=FEATURE_LENGTH)), "v1"))


def test_logistic_model_validates_shapes() -> None:
    with pytest.raises(ValueError, match="weights must have shape"):
        LogisticRiskModel(np.ones((2, 4)), np.zeros(3), feature_center=np.zeros(4), feature_scale=np.ones(4))
    with pytest.raises(ValueError, match="feature_scale must be > 0"):
        LogisticRiskModel(np.ones((3, 4)), np.zeros(3), feature_center=np.zeros(4), feature_scale=np.zeros(4))
    with pytest.raises(ValueError, match="expected 17 features"):
        LogisticRiskModel.reference().infer([1.0, 2.0], "v1")


def test_torch_model_outputs_valid_percentages() -> None:
    torch.manual_seed(0)
    model = TorchRiskModel(RiskHeadMLP(FEATURE_LENGTH, hidden_units=8))

    output = model.infer(_degraded_features(), "mlp-v1")

    _assert_valid_output(output)
    assert model.input_length == FEATURE_LENGTH


def test_torch_model_round_trips_through_state_dict() -> None:
    torch.manual_seed(1)
    module = RiskHeadMLP(FEATURE_LENGTH, hidden_units=8)
    original = TorchRiskModel(module)

    restored = TorchRiskModel.from_state_dict(
        module.state_dict(),
        input_features=FEATURE_LENGTH,
        hidden_units=8,
    )

    first = original.infer(_nominal_features(), "mlp-v1")
    second = restored.infer(_nominal_features(), "mlp-v1")
    for key in (*RISK_OUTPUT_KEYS, "confidence"):
        assert second[key] == pytest.approx(first[key])


def test_torch_model_rejects_bad_inputs() -> None:
    with pytest.raises(ValueError, match="input_features"):
        RiskHeadMLP(0)
    model = TorchRiskModel(RiskHeadMLP(4, hidden_units=4))
    with pytest.raises(ValueError, match="expected 4 features"):
        model.infer([1.0, 2.0, 3.0], "mlp-v1")
    with pytest.raises(ValueError, match="must match module input_features"):
        TorchRiskModel(RiskHeadMLP(4, hidden_units=4), feature_center=np.zeros(3))
