"""Unit tests for the system alert log."""

from __future__ import annotations

from yantrasense.alerts import SystemAlertKind, SystemAlertLog


def test_alerts_are_kept_in_order_and_filterable() -> None:
    log = SystemAlertLog()

    log.raise_alert(SystemAlertKind.MODEL_UNAVAILABLE, "model down", timestamp_ms=10)
    log.raise_alert(SystemAlertKind.PIPELINE_FAILURE, "boom", timestamp_ms=20, details={"machine_id": "m1"})

    assert [alert.kind for alert in log.alerts()] == [
        SystemAlertKind.MODEL_UNAVAILABLE,
        SystemAlertKind.PIPELINE_FAILURE,
    ]
    (failure,) = log.alerts(SystemAlertKind.PIPELINE_FAILURE)
    assert failure.details == {"machine_id": "m1"}
    assert log.alerts(SystemAlertKind.BASELINE_RECOMPUTE_SKIPPED) == ()


def test_missing_timestamp_uses_wall_clock() -> None:
    alert = SystemAlertLog().raise_alert(SystemAlertKind.MODEL_UNAVAILABLE, "model down")

    assert alert.timestamp_ms > 1_600_000_000_000
