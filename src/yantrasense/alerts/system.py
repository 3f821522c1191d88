"""System-level alerts, kept apart from per-machine alerts."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Mapping

logger = logging.getLogger(__name__)


class SystemAlertKind(StrEnum):
    """Platform conditions that operators of the analytics core must see."""

    MODEL_UNAVAILABLE = "model_unavailable"
    MODEL_ACCURACY_BELOW_MINIMUM = "model_accuracy_below_minimum"
    BASELINE_RECOMPUTE_SKIPPED = "baseline_recompute_skipped"
    PIPELINE_FAILURE = "pipeline_failure"


@dataclass(frozen=True, slots=True)
class SystemAlert:
    """One system-level alert."""

    kind: SystemAlertKind
    message: str
    timestamp_ms: int
    details: Mapping[str, str] = field(default_factory=dict)


class SystemAlertLog:
    """Thread-safe append-only collection of system alerts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._alerts: list[SystemAlert] = []

    def raise_alert(
        self,
        kind: SystemAlertKind,
        message: str,
        *,
        timestamp_ms: int | None = None,
        details: Mapping[str, str] | None = None,
    ) -> SystemAlert:
        alert = SystemAlert(
            kind=kind,
            message=message,
            timestamp_ms=int(time.time() * 1000) if timestamp_ms is None else timestamp_ms,
            details={} if details is None else dict(details),
        )
        with self._lock:
            self._alerts.append(alert)
        logger.warning("system alert [%s]: %s", kind.value, message)
        return alert

    def alerts(self, kind: SystemAlertKind | None = None) -> tuple[SystemAlert, ...]:
        with self._lock:
            if kind is None:
                return tuple(self._alerts)
            return tuple(alert for alert in self._alerts if alert.kind == kind)
