"""Baseline deviation detection for individual readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from yantrasense.anomaly.baseline import BaselinePolicy, BaselineStore, compute_baseline, is_corrupt
from yantrasense.domain.errors import BaselineNotEstablishedError, CorruptBaselineError
from yantrasense.domain.models import (
    CHANNELS,
    AnomalyEvent,
    AnomalyKind,
    BaselineStats,
    Channel,
    SensorReading,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AnomalyPolicy:
    """Detection threshold in standard deviations."""

    z_threshold: float = 3.0
    zero_std_deviation: float = 5.0

    def __post_init__(self) -> None:
        if self.z_threshold <= 0.0:
            raise ValueError("z_threshold must be > 0")
        if self.zero_std_deviation <= self.z_threshold:
            raise ValueError("zero_std_deviation must exceed z_threshold")


@dataclass(frozen=True, slots=True)
class BaselineUpdateResult:
    """Outcome of one baseline recompute; `warning` is set when nothing was installed."""

    tenant_id: str
    machine_id: str
    installed: bool
    stats: BaselineStats | None
    warning: str | None = None


class AnomalyDetector:
    """Compare readings against the machine baseline held in a `BaselineStore`."""

    def __init__(
        self,
        store: BaselineStore,
        *,
        policy: AnomalyPolicy | None = None,
        baseline_policy: BaselinePolicy | None = None,
    ) -> None:
        self._store = store
        self._policy = AnomalyPolicy() if policy is None else policy
        self._baseline_policy = BaselinePolicy() if baseline_policy is None else baseline_policy

    @property
    def baseline_policy(self) -> BaselinePolicy:
        return self._baseline_policy

    def channel_deviation(self, reading: SensorReading, channel: Channel) -> float:
        """Signed z-score of one channel.

        Raises `BaselineNotEstablishedError` when the machine has no usable
        baseline for the channel.
        """
        return self._deviation(self._usable_baseline(reading), reading, channel)

    def deviations(self, reading: SensorReading) -> dict[Channel, float]:
        """Signed z-scores for every channel with an established baseline."""
        stats = self._usable_baseline(reading)
        if stats is None:
            return {}
        scores: dict[Channel, float] = {}
        for channel in CHANNELS:
            try:
                scores[channel] = self._deviation(stats, reading, channel)
            except BaselineNotEstablishedError:
                continue
        return scores

    def _deviation(self, stats: BaselineStats | None, reading: SensorReading, channel: Channel) -> float:
        channel_stats = None if stats is None else stats.get(channel)
        if channel_stats is None or not channel_stats.established:
            raise BaselineNotEstablishedError(
                f"no established {channel.value} baseline for {reading.tenant_id}/{reading.machine_id}"
            )
        delta = reading.value(channel) - channel_stats.mean
        if channel_stats.std == 0.0:
            # Flat history: any movement at all is treated as a breach.
            sentinel = self._policy.zero_std_deviation
            return 0.0 if delta == 0.0 else (sentinel if delta > 0 else -sentinel)
        return delta / channel_stats.std

    def _usable_baseline(self, reading: SensorReading) -> BaselineStats | None:
        stats = self._store.get(reading.tenant_id, reading.machine_id)
        if stats is None:
            return None
        if is_corrupt(stats):
            logger.warning(
                "corrupt baseline for %s/%s; detection suspended until recompute",
                reading.tenant_id,
                reading.machine_id,
            )
            self._store.request_recompute(reading.tenant_id, reading.machine_id)
            return None
        return stats

    def detect(self, reading: SensorReading) -> AnomalyEvent | None:
        """Return one event for the reading, or `None` when every channel is in band.

        Two or more breaching channels collapse into a single `combined` event
        carrying the largest-magnitude deviation.
        """
        scores = self.deviations(reading)
        breached = {
            channel: score
            for channel, score in scores.items()
            if abs(score) > self._policy.z_threshold
        }
        if not breached:
            return None

        worst_channel = max(breached, key=lambda channel: (abs(breached[channel]), channel.value))
        kind = AnomalyKind.COMBINED if len(breached) > 1 else AnomalyKind(worst_channel.value)
        return AnomalyEvent(
            tenant_id=reading.tenant_id,
            machine_id=reading.machine_id,
            timestamp_ms=reading.timestamp_ms,
            kind=kind,
            deviation=breached[worst_channel],
            affected_channels=frozenset(breached),
        )

    def update_baseline(
        self,
        tenant_id: str,
        machine_id: str,
        history: Sequence[SensorReading],
        *,
        now_ms: int,
    ) -> BaselineUpdateResult:
        """Recompute and atomically install the machine baseline.

        Corrupted or insufficient history never raises: the previous baseline
        stays in place and the result carries a warning. A machine with no prior
        baseline gets a not-established snapshot so detection stays suspended.
        """
        previous = self._store.get(tenant_id, machine_id)
        try:
            stats = compute_baseline(
                tenant_id,
                machine_id,
                history,
                now_ms=now_ms,
                policy=self._baseline_policy,
            )
        except CorruptBaselineError as exc:
            warning = f"baseline recompute skipped for {tenant_id}/{machine_id}: {exc}"
            logger.warning(warning)
            return BaselineUpdateResult(
                tenant_id=tenant_id,
                machine_id=machine_id,
                installed=False,
                stats=previous,
                warning=warning,
            )

        established = all(channel_stats.established for channel_stats in stats.channels.values())
        if not established and previous is not None and not is_corrupt(previous):
            warning = (
                f"baseline recompute skipped for {tenant_id}/{machine_id}: "
                f"{len(history)} samples < min_samples={self._baseline_policy.min_samples}"
            )
            logger.warning(warning)
            return BaselineUpdateResult(
                tenant_id=tenant_id,
                machine_id=machine_id,
                installed=False,
                stats=previous,
                warning=warning,
            )

        self._store.install(stats)
        logger.info(
            "installed baseline for %s/%s from %d samples (established=%s)",
            tenant_id,
            machine_id,
            len(history),
            established,
        )
        return BaselineUpdateResult(
            tenant_id=tenant_id,
            machine_id=machine_id,
            installed=True,
            stats=stats,
            warning=None if established else "baseline not established; detection suspended",
        )
