"""Time-windowed alert consolidation and acknowledgment."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Iterable

from yantrasense.alerts.rules import AlertCandidate, AlertPolicy
from yantrasense.domain.errors import AlreadyAcknowledgedError
from yantrasense.domain.models import Acknowledgment, Alert

logger = logging.getLogger(__name__)

MachineKey = tuple[str, str]


@dataclass(frozen=True, slots=True)
class ConsolidationResult:
    """Alert state after one candidate was applied.

    `changed` is false when the candidate only repeated triggers the alert
    already carries.
    """

    alert: Alert
    created: bool
    changed: bool
    escalated: bool = False


def _new_alert_id() -> str:
    return uuid.uuid4().hex


class AlertConsolidator:
    """Merge near-in-time candidates for one machine into a single alert.

    Candidates whose timestamp falls within `consolidation_window_ms` of an
    unacknowledged alert's opening timestamp, before or after it, are folded
    into it; the opening timestamp never moves. Acknowledged
    alerts never absorb new triggers, so a fresh problem is not buried under a
    closed one; a new alert is opened instead.
    """

    def __init__(
        self,
        policy: AlertPolicy | None = None,
        *,
        id_factory: Callable[[], str] = _new_alert_id,
    ) -> None:
        self._policy = AlertPolicy() if policy is None else policy
        self._id_factory = id_factory
        self._lock = threading.Lock()
        self._alerts: dict[str, Alert] = {}
        self._by_machine: dict[MachineKey, list[str]] = {}
        self._merge_counts: dict[str, int] = {}

    @property
    def policy(self) -> AlertPolicy:
        return self._policy

    def submit(self, candidate: AlertCandidate) -> ConsolidationResult:
        """Apply one candidate: merge into an open alert or create a new one."""
        key = (candidate.tenant_id, candidate.machine_id)
        with self._lock:
            target = self._find_open_alert(key, candidate.timestamp_ms)
            if target is not None:
                return self._merge(target, candidate)
            return self._create(key, candidate)

    def submit_many(self, candidates: Iterable[AlertCandidate]) -> tuple[ConsolidationResult, ...]:
        """Apply candidates in timestamp order regardless of arrival order."""
        ordered = sorted(
            candidates,
            key=lambda candidate: (candidate.tenant_id, candidate.machine_id, candidate.timestamp_ms),
        )
        return tuple(self.submit(candidate) for candidate in ordered)

    def acknowledge(self, alert_id: str, user_id: str, timestamp_ms: int) -> Alert:
        """Acknowledge once; a second call raises `AlreadyAcknowledgedError`."""
        if not user_id.strip():
            raise ValueError("user_id must not be empty")
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise KeyError(f"unknown alert: {alert_id}")
            if alert.acknowledgment is not None:
                raise AlreadyAcknowledgedError(
                    alert_id,
                    alert.acknowledgment.user_id,
                    alert.acknowledgment.timestamp_ms,
                )
            acknowledged = replace(
                alert,
                acknowledgment=Acknowledgment(user_id=user_id, timestamp_ms=timestamp_ms),
            )
            self._alerts[alert_id] = acknowledged
        logger.info("alert %s acknowledged by %s", alert_id, user_id)
        return acknowledged

    def get(self, alert_id: str) -> Alert:
        with self._lock:
            return self._alerts[alert_id]

    def alerts_for(self, tenant_id: str, machine_id: str) -> tuple[Alert, ...]:
        """Alerts for one machine ordered by opening timestamp."""
        with self._lock:
            ids = self._by_machine.get((tenant_id, machine_id), [])
            return tuple(self._alerts[alert_id] for alert_id in ids)

    def _find_open_alert(self, key: MachineKey, timestamp_ms: int) -> Alert | None:
        # Late arrivals count too: the window extends both ways from the opening timestamp.
        window_ms = self._policy.consolidation_window_ms
        cap = self._policy.max_merges_per_alert
        best: Alert | None = None
        for alert_id in reversed(self._by_machine.get(key, [])):
            alert = self._alerts[alert_id]
            distance = abs(timestamp_ms - alert.created_at_ms)
            if distance >= window_ms:
                continue
            if alert.acknowledged:
                continue
            if cap is not None and self._merge_counts[alert_id] >= cap:
                continue
            if best is None or distance < abs(timestamp_ms - best.created_at_ms):
                best = alert
        return best

    def _merge(self, alert: Alert, candidate: AlertCandidate) -> ConsolidationResult:
        known = {trigger.record_key for trigger in alert.triggers}
        fresh = tuple(trigger for trigger in candidate.triggers if trigger.record_key not in known)
        if not fresh:
            return ConsolidationResult(alert=alert, created=False, changed=False)

        merged = replace(
            alert,
            severity=max(alert.severity, candidate.severity),
            triggers=alert.triggers + fresh,
        )
        self._alerts[alert.alert_id] = merged
        self._merge_counts[alert.alert_id] += 1
        logger.debug(
            "merged %d trigger(s) into alert %s (severity %s)",
            len(fresh),
            alert.alert_id,
            merged.severity.name,
        )
        return ConsolidationResult(
            alert=merged,
            created=False,
            changed=True,
            escalated=merged.severity > alert.severity,
        )

    def _create(self, key: MachineKey, candidate: AlertCandidate) -> ConsolidationResult:
        alert = Alert(
            alert_id=self._id_factory(),
            tenant_id=candidate.tenant_id,
            machine_id=candidate.machine_id,
            severity=candidate.severity,
            triggers=candidate.triggers,
            created_at_ms=candidate.timestamp_ms,
        )
        self._alerts[alert.alert_id] = alert
        self._merge_counts[alert.alert_id] = 0
        ids = self._by_machine.setdefault(key, [])
        ids.append(alert.alert_id)
        ids.sort(key=lambda alert_id: self._alerts[alert_id].created_at_ms)
        logger.info(
            "opened %s alert %s for %s/%s",
            alert.severity.name,
            alert.alert_id,
            candidate.tenant_id,
            candidate.machine_id,
        )
        return ConsolidationResult(alert=alert, created=True, changed=True, escalated=True)
