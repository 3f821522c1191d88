"""Unit tests for domain record invariants."""

from __future__ import annotations

import pytest

from yantrasense.domain import (
    Alert,
    AnomalyEvent,
    AnomalyKind,
    Channel,
    ChannelBaseline,
    FailureRiskRecord,
    FeatureVector,
    HealthScoreRecord,
    MaintenanceRecommendation,
    SensorReading,
    Severity,
    TriggerCondition,
    TriggerSource,
)


def _trigger(channels: frozenset[Channel]) -> TriggerCondition:
    return TriggerCondition(
        source=TriggerSource.ANOMALY,
        record_key="anomaly:t1/m1@1000",
        timestamp_ms=1_000,
        severity=Severity.HIGH,
        description="vibration anomaly",
        channels=channels,
    )


def test_reading_value_maps_each_channel() -> None:
    reading = SensorReading("t1", "m1", 1_000, vibration=4.0, temperature=55.0, load=60.0)

    assert reading.value(Channel.VIBRATION) == 4.0
    assert reading.value(Channel.TEMPERATURE) == 55.0
    assert reading.value(Channel.LOAD) == 60.0


def test_channel_baseline_rejects_negative_std() -> None:
    with pytest.raises(ValueError, match="std must be >= 0"):
        ChannelBaseline(mean=1.0, std=-0.1, sample_count=10, established=True)


def test_feature_vector_requires_ordered_window() -> None:
    with pytest.raises(ValueError, match="window_end_ms"):
        FeatureVector("t1", "m1", window_start_ms=10, window_end_ms=5, values=(1.0,))


@pytest.mark.parametrize("score", [-1, 101])
def test_health_record_score_is_bounded(score: int) -> None:
    with pytest.raises(ValueError, match=r"score must be in \[0, 100\]"):
        HealthScoreRecord("t1", "m1", 1_000, score=score)


def test_failure_risk_record_bounds_and_helpers() -> None:
    record = FailureRiskRecord(
        "t1",
        "m1",
        1_000,
        risk_24h=12.5,
        risk_7d=40.0,
        risk_30d=71.0,
        confidence=0.8,
        model_version="v1",
    )

    assert record.horizons == {"24h": 12.5, "7d": 40.0, "30d": 71.0}
    assert record.max_risk == 71.0
    assert record.record_key == "failure_risk:t1/m1@1000"

    with pytest.raises(ValueError, match="risk_7d"):
        FailureRiskRecord("t1", "m1", 1, 1.0, 100.5, 1.0, confidence=0.5, model_version="v1")
    with pytest.raises(ValueError, match="confidence"):
        FailureRiskRecord("t1", "m1", 1, 1.0, 1.0, 1.0, confidence=1.5, model_version="v1")


def test_anomaly_event_magnitude_and_key() -> None:
    event = AnomalyEvent(
        "t1",
        "m1",
        2_000,
        kind=AnomalyKind.TEMPERATURE,
        deviation=-3.5,
        affected_channels=frozenset({Channel.TEMPERATURE}),
    )

    assert event.magnitude == 3.5
    assert event.record_key == "anomaly:t1/m1@2000"


def test_alert_requires_triggers_and_unions_channels() -> None:
    with pytest.raises(ValueError, match="at least one trigger"):
        Alert("a1", "t1", "m1", Severity.LOW, triggers=(), created_at_ms=1_000)

    alert = Alert(
        "a1",
        "t1",
        "m1",
        Severity.HIGH,
        triggers=(
            _trigger(frozenset({Channel.VIBRATION})),
            _trigger(frozenset({Channel.LOAD, Channel.VIBRATION})),
        ),
        created_at_ms=1_000,
    )

    assert alert.channels == frozenset({Channel.VIBRATION, Channel.LOAD})
    assert not alert.acknowledged


def test_high_recommendation_requires_urgency_and_estimate() -> None:
    with pytest.raises(ValueError, match="urgency is required"):
        MaintenanceRecommendation("r1", "a1", Severity.HIGH, text_en="x", text_hi="y")
    with pytest.raises(ValueError, match="estimated_minutes is required"):
        MaintenanceRecommendation("r1", "a1", Severity.HIGH, text_en="x", text_hi="y", urgency="immediate")
    with pytest.raises(ValueError, match="English and Hindi"):
        MaintenanceRecommendation("r1", "a1", Severity.LOW, text_en="x", text_hi="  ")


def test_low_recommendation_may_omit_urgency() -> None:
    recommendation = MaintenanceRecommendation("r1", "a1", Severity.LOW, text_en="x", text_hi="y")

    assert recommendation.urgency is None
    assert not recommendation.done
