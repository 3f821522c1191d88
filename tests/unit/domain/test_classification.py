"""Unit tests for health and risk classification thresholds."""

from __future__ import annotations

import pytest

from yantrasense.domain import (
    HealthClass,
    HealthColor,
    RiskLevel,
    classify_health,
    classify_risk,
    health_color,
)


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (0, HealthClass.ATTENTION_NEEDED),
        (69, HealthClass.ATTENTION_NEEDED),
        (69.9, HealthClass.ATTENTION_NEEDED),
        (70, HealthClass.MODERATE),
        (85, HealthClass.MODERATE),
        (86, HealthClass.HEALTHY),
        (100, HealthClass.HEALTHY),
    ],
)
def test_health_thresholds(score: float, expected: HealthClass) -> None:
    assert classify_health(score) == expected


def test_health_color_tracks_class() -> None:
    assert health_color(50) == HealthColor.RED
    assert health_color(80) == HealthColor.YELLOW
    assert health_color(95) == HealthColor.GREEN


@pytest.mark.parametrize(
    ("percentage", "expected"),
    [
        (0.0, RiskLevel.LOW),
        (39.99, RiskLevel.LOW),
        (40.0, RiskLevel.MEDIUM),
        (70.0, RiskLevel.MEDIUM),
        (70.01, RiskLevel.HIGH),
        (100.0, RiskLevel.HIGH),
    ],
)
def test_risk_thresholds(percentage: float, expected: RiskLevel) -> None:
    assert classify_risk(percentage) == expected
