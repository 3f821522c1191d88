"""Unit tests for window feature extraction."""

from __future__ import annotations

import random

import pytest

from yantrasense.domain import InsufficientDataError, SensorReading
from yantrasense.features import FEATURE_LENGTH, FEATURE_NAMES, FeatureWindowConfig, extract_features

_T0 = 1_767_225_600_000
_STEP_MS = 300_000


def _window(count: int, *, machine_id: str = "lathe-3") -> list[SensorReading]:
    return [
        SensorReading(
            tenant_id="factory-a",
            machine_id=machine_id,
            timestamp_ms=_T0 + idx * _STEP_MS,
            vibration=2.0 + idx,
            temperature=50.0,
            load=40.0 + (idx % 2) * 10.0,
        )
        for idx in range(count)
    ]


def _config(min_samples: int = 4) -> FeatureWindowConfig:
    return FeatureWindowConfig(window_ms=3_600_000, sampling_interval_ms=_STEP_MS, min_samples=min_samples)


def test_feature_vector_has_fixed_layout() -> None:
    vector = extract_features(_window(12), _config())

    assert len(vector.values) == FEATURE_LENGTH == len(FEATURE_NAMES) == 17
    assert vector.window_start_ms == _T0
    assert vector.window_end_ms == _T0 + 11 * _STEP_MS
    assert (vector.tenant_id, vector.machine_id) == ("factory-a", "lathe-3")


def test_channel_statistics_and_trend() -> None:
    values = dict(zip(FEATURE_NAMES, extract_features(_window(12), _config()).values))

    assert values["vibration_mean"] == pytest.approx(7.5)
    assert values["vibration_min"] == pytest.approx(2.0)
    assert values["vibration_max"] == pytest.approx(13.0)
    # One unit per 5-minute step is 12 units per hour.
    assert values["vibration_trend_per_hour"] == pytest.approx(12.0)
    assert values["temperature_std"] == pytest.approx(0.0)
    assert values["temperature_trend_per_hour"] == pytest.approx(0.0)
    assert values["load_mean"] == pytest.approx(45.0)
    assert values["load_std"] == pytest.approx(5.0)


def test_unordered_input_gives_same_vector() -> None:
    ordered = _window(12)
    shuffled = list(ordered)
    random.Random(7).shuffle(shuffled)

    assert extract_features(shuffled, _config()) == extract_features(ordered, _config())


def test_short_window_raises_insufficient_data() -> None:
    with pytest.raises(InsufficientDataError, match="requires 8"):
        extract_features(_window(5), _config(min_samples=8))


def test_mixed_machines_are_rejected() -> None:
    readings = _window(4) + _window(4, machine_id="lathe-4")

    with pytest.raises(ValueError, match="exactly one machine"):
        extract_features(readings, _config())


def test_config_validation() -> None:
    with pytest.raises(ValueError, match="min_samples"):
        FeatureWindowConfig(min_samples=2)
    assert FeatureWindowConfig(sampling_interval_ms=500).sampling_rate_hz == pytest.approx(2.0)
