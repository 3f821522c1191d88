"""Threshold rules turning derived records into alert candidates."""

from __future__ import annotations

from dataclasses import dataclass

from yantrasense.domain.models import (
    CHANNELS,
    AnomalyEvent,
    Channel,
    FailureRiskRecord,
    HealthScoreRecord,
    Severity,
    TriggerCondition,
    TriggerSource,
)


@dataclass(frozen=True, slots=True)
class AlertPolicy:
    """Severity thresholds and consolidation window.

    `max_merges_per_alert` bounds how many trigger batches one unacknowledged
    alert may absorb; `None` disables the bound.
    """

    high_risk_above: float = 70.0
    medium_risk_min: float = 40.0
    high_deviation_above: float = 4.0
    medium_health_below: float = 60.0
    consolidation_window_ms: int = 3_600_000
    max_merges_per_alert: int | None = 20

    def __post_init__(self) -> None:
        if not 0.0 <= self.medium_risk_min <= self.high_risk_above <= 100.0:
            raise ValueError("risk thresholds must satisfy 0 <= medium_risk_min <= high_risk_above <= 100")
        if self.high_deviation_above <= 0.0:
            raise ValueError("high_deviation_above must be > 0")
        if not 0.0 <= self.medium_health_below <= 100.0:
            raise ValueError("medium_health_below must be in [0, 100]")
        if self.consolidation_window_ms <= 0:
            raise ValueError("consolidation_window_ms must be > 0")
        if self.max_merges_per_alert is not None and self.max_merges_per_alert <= 0:
            raise ValueError("max_merges_per_alert must be > 0 when set")


@dataclass(frozen=True, slots=True)
class AlertCandidate:
    """Alert-worthy evaluation outcome before consolidation."""

    tenant_id: str
    machine_id: str
    timestamp_ms: int
    severity: Severity
    triggers: tuple[TriggerCondition, ...]


def evaluate_alert_rules(
    *,
    tenant_id: str,
    machine_id: str,
    timestamp_ms: int,
    health: HealthScoreRecord | None,
    risk: FailureRiskRecord | None,
    anomaly: AnomalyEvent | None,
    policy: AlertPolicy,
) -> AlertCandidate | None:
    """Apply severity rules; every condition that fired is kept as a trigger.

    High: any horizon risk above `high_risk_above` or anomaly magnitude above
    `high_deviation_above`. Medium: any horizon risk within
    [`medium_risk_min`, `high_risk_above`] or health below
    `medium_health_below`. Returns `None` when nothing fired.
    """
    triggers: list[TriggerCondition] = []

    if risk is not None:
        trigger = _risk_trigger(risk, policy)
        if trigger is not None:
            triggers.append(trigger)

    if anomaly is not None and anomaly.magnitude > policy.high_deviation_above:
        triggers.append(
            TriggerCondition(
                source=TriggerSource.ANOMALY,
                record_key=anomaly.record_key,
                timestamp_ms=anomaly.timestamp_ms,
                severity=Severity.HIGH,
                description=(
                    f"{anomaly.kind.value} anomaly deviation {anomaly.deviation:+.2f} sigma "
                    f"exceeds {policy.high_deviation_above:.1f}"
                ),
                channels=anomaly.affected_channels,
            )
        )

    if health is not None and health.score < policy.medium_health_below:
        triggers.append(
            TriggerCondition(
                source=TriggerSource.HEALTH_SCORE,
                record_key=health.record_key,
                timestamp_ms=health.timestamp_ms,
                severity=Severity.MEDIUM,
                description=f"health score {health.score} below {policy.medium_health_below:.0f}",
                channels=_dominant_channels(health),
            )
        )

    if not triggers:
        return None
    return AlertCandidate(
        tenant_id=tenant_id,
        machine_id=machine_id,
        timestamp_ms=timestamp_ms,
        severity=max(trigger.severity for trigger in triggers),
        triggers=tuple(triggers),
    )


def _risk_trigger(risk: FailureRiskRecord, policy: AlertPolicy) -> TriggerCondition | None:
    horizons = risk.horizons
    high = [name for name, value in horizons.items() if value > policy.high_risk_above]
    medium = [
        name
        for name, value in horizons.items()
        if policy.medium_risk_min <= value <= policy.high_risk_above
    ]
    if not high and not medium:
        return None

    bands: list[str] = []
    if high:
        bands.append(f"high {_horizon_detail(horizons, high)}")
    if medium:
        bands.append(f"medium {_horizon_detail(horizons, medium)}")
    stale = " (stale)" if risk.stale else ""
    return TriggerCondition(
        source=TriggerSource.FAILURE_RISK,
        record_key=risk.record_key,
        timestamp_ms=risk.timestamp_ms,
        severity=Severity.HIGH if high else Severity.MEDIUM,
        description=f"failure risk {'; '.join(bands)}{stale}",
    )


def _horizon_detail(horizons: dict[str, float], names: list[str]) -> str:
    return ", ".join(f"{name}={horizons[name]:.1f}%" for name in names)


def _dominant_channels(health: HealthScoreRecord) -> frozenset[Channel]:
    penalties = {channel: health.contributing_factors.get(channel, 0.0) for channel in CHANNELS}
    worst = max(penalties.values())
    if worst <= 0.0:
        return frozenset()
    return frozenset(channel for channel, value in penalties.items() if value >= worst / 2.0)
