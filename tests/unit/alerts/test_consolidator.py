"""Unit tests for alert consolidation and acknowledgment."""

from __future__ import annotations

import itertools

import pytest

from yantrasense.alerts import AlertCandidate, AlertConsolidator, AlertPolicy
from yantrasense.domain import AlreadyAcknowledgedError, Channel, Severity, TriggerCondition, TriggerSource

_T0 = 1_767_225_600_000
_MINUTE_MS = 60_000


def _ids() -> itertools.count[int]:
    return itertools.count(1)


def _consolidator(policy: AlertPolicy | None = None) -> AlertConsolidator:
    counter = _ids()
    return AlertConsolidator(policy, id_factory=lambda: f"alert-{next(counter)}")


def _candidate(
    offset_min: int,
    severity: Severity = Severity.MEDIUM,
    *,
    machine_id: str = "compressor-1",
    tenant_id: str = "factory-a",
) -> AlertCandidate:
    ts = _T0 + offset_min * _MINUTE_MS
    return AlertCandidate(
        tenant_id=tenant_id,
        machine_id=machine_id,
        timestamp_ms=ts,
        severity=severity,
        triggers=(
            TriggerCondition(
                source=TriggerSource.ANOMALY,
                record_key=f"anomaly:{tenant_id}/{machine_id}@{ts}",
                timestamp_ms=ts,
                severity=severity,
                description="vibration anomaly",
                channels=frozenset({Channel.VIBRATION}),
            ),
        ),
    )


def test_triggers_thirty_minutes_apart_form_one_alert() -> None:
    consolidator = _consolidator()

    first = consolidator.submit(_candidate(0))
    second = consolidator.submit(_candidate(30))

    assert first.created and not second.created
    assert second.alert.alert_id == first.alert.alert_id
    assert len(second.alert.triggers) == 2
    assert len(consolidator.alerts_for("factory-a", "compressor-1")) == 1


def test_trigger_outside_window_opens_new_alert() -> None:
    consolidator = _consolidator()

    consolidator.submit(_candidate(0))
    late = consolidator.submit(_candidate(60))

    assert late.created
    assert len(consolidator.alerts_for("factory-a", "compressor-1")) == 2


def test_merge_escalates_severity_to_maximum() -> None:
    consolidator = _consolidator()

    consolidator.submit(_candidate(0, Severity.MEDIUM))
    escalated = consolidator.submit(_candidate(10, Severity.HIGH))
    calm = consolidator.submit(_candidate(20, Severity.LOW))

    assert escalated.escalated
    assert escalated.alert.severity == Severity.HIGH
    assert calm.changed and not calm.escalated
    assert calm.alert.severity == Severity.HIGH


def test_repeated_trigger_does_not_change_alert() -> None:
    consolidator = _consolidator()

    consolidator.submit(_candidate(0))
    repeat = consolidator.submit(_candidate(0))

    assert not repeat.changed
    assert len(repeat.alert.triggers) == 1


def test_acknowledged_alert_does_not_absorb_new_triggers() -> None:
    consolidator = _consolidator()

    first = consolidator.submit(_candidate(0))
    consolidator.acknowledge(first.alert.alert_id, "supervisor-7", _T0 + 5 * _MINUTE_MS)
    later = consolidator.submit(_candidate(10))

    assert later.created
    assert later.alert.alert_id != first.alert.alert_id


def test_second_acknowledgment_raises_and_keeps_first_state() -> None:
    consolidator = _consolidator()
    alert_id = consolidator.submit(_candidate(0)).alert.alert_id

    acknowledged = consolidator.acknowledge(alert_id, "supervisor-7", _T0 + 1_000)
    with pytest.raises(AlreadyAcknowledgedError, match="supervisor-7") as excinfo:
        consolidator.acknowledge(alert_id, "operator-2", _T0 + 2_000)

    assert excinfo.value.user_id == "supervisor-7"
    assert excinfo.value.timestamp_ms == _T0 + 1_000
    assert consolidator.get(alert_id) == acknowledged
    assert acknowledged.acknowledgment is not None
    assert acknowledged.acknowledgment.user_id == "supervisor-7"


def test_acknowledge_unknown_alert_raises_key_error() -> None:
    with pytest.raises(KeyError, match="unknown alert"):
        _consolidator().acknowledge("missing", "supervisor-7", _T0)


def test_merge_cap_forces_new_alert() -> None:
    consolidator = _consolidator(AlertPolicy(max_merges_per_alert=2))

    results = [consolidator.submit(_candidate(offset)) for offset in (0, 5, 10, 15)]

    assert [result.created for result in results] == [True, False, False, True]
    assert len(results[2].alert.triggers) == 3


def test_machines_and_tenants_are_consolidated_separately() -> None:
    consolidator = _consolidator()

    consolidator.submit(_candidate(0))
    other_machine = consolidator.submit(_candidate(5, machine_id="compressor-2"))
    other_tenant = consolidator.submit(_candidate(5, tenant_id="factory-b"))

    assert other_machine.created
    assert other_tenant.created


def test_submit_many_applies_in_timestamp_order() -> None:
    consolidator = _consolidator()

    results = consolidator.submit_many([_candidate(30), _candidate(0)])

    assert results[0].created
    assert results[0].alert.created_at_ms == _T0
    assert len(results[1].alert.triggers) == 2


def test_late_arriving_earlier_trigger_merges_into_open_alert() -> None:
    consolidator = _consolidator()

    first = consolidator.submit(_candidate(0))
    late = consolidator.submit(_candidate(-10, Severity.HIGH))

    assert not late.created
    assert late.alert.alert_id == first.alert.alert_id
    assert late.alert.created_at_ms == _T0
    assert late.alert.severity == Severity.HIGH
    assert len(consolidator.alerts_for("factory-a", "compressor-1")) == 1


def test_late_trigger_older_than_window_opens_its_own_alert() -> None:
    consolidator = _consolidator()

    consolidator.submit(_candidate(0))
    stale = consolidator.submit(_candidate(-60))

    assert stale.created
    assert [alert.created_at_ms for alert in consolidator.alerts_for("factory-a", "compressor-1")] == [
        _T0 - 60 * _MINUTE_MS,
        _T0,
    ]
