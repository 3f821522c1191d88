"""Deterministic bounded health scoring from recent readings and anomalies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from yantrasense.domain.errors import InsufficientDataError
from yantrasense.domain.models import (
    CHANNELS,
    AnomalyEvent,
    Channel,
    HealthScoreRecord,
    SensorReading,
)

_MAX_SCORE = 100.0


def _default_channel_weights() -> dict[Channel, float]:
    return {Channel.VIBRATION: 1.0, Channel.TEMPERATURE: 0.8, Channel.LOAD: 0.6}


def _default_optimal_ranges() -> dict[Channel, tuple[float, float]]:
    return {
        Channel.VIBRATION: (0.0, 20.0),
        Channel.TEMPERATURE: (20.0, 70.0),
        Channel.LOAD: (20.0, 80.0),
    }


@dataclass(frozen=True, slots=True)
class HealthScorePolicy:
    """Penalty weights and data requirements for health scoring.

    An anomaly costs `channel_weight * anomaly_points_per_sigma * |deviation|`
    (deviation capped at `max_sigma_per_event`). A channel whose window mean
    sits at the edge of its optimal range costs `channel_weight * trend_points`,
    scaling linearly with distance from the range midpoint.
    """

    min_window_ms: int = 3_600_000
    scoring_window_ms: int = 24 * 3_600_000
    anomaly_points_per_sigma: float = 4.0
    max_sigma_per_event: float = 10.0
    trend_points: float = 10.0
    channel_weights: Mapping[Channel, float] = field(default_factory=_default_channel_weights)
    optimal_ranges: Mapping[Channel, tuple[float, float]] = field(default_factory=_default_optimal_ranges)

    def __post_init__(self) -> None:
        if self.min_window_ms <= 0:
            raise ValueError("min_window_ms must be > 0")
        if self.scoring_window_ms < self.min_window_ms:
            raise ValueError("scoring_window_ms must be >= min_window_ms")
        if self.anomaly_points_per_sigma < 0.0 or self.trend_points < 0.0:
            raise ValueError("penalty points must be >= 0")
        if self.max_sigma_per_event <= 0.0:
            raise ValueError("max_sigma_per_event must be > 0")
        for channel in CHANNELS:
            if self.channel_weights.get(channel, -1.0) < 0.0:
                raise ValueError(f"channel_weights must define a weight >= 0 for {channel.value}")
            bounds = self.optimal_ranges.get(channel)
            if bounds is None or bounds[0] >= bounds[1]:
                raise ValueError(f"optimal_ranges must define low < high for {channel.value}")


class HealthScoreCalculator:
    """Score a machine from 0 (failing) to 100 (nominal)."""

    def __init__(self, policy: HealthScorePolicy | None = None) -> None:
        self._policy = HealthScorePolicy() if policy is None else policy

    @property
    def policy(self) -> HealthScorePolicy:
        return self._policy

    def calculate(
        self,
        recent_readings: Sequence[SensorReading],
        recent_anomalies: Sequence[AnomalyEvent],
    ) -> HealthScoreRecord:
        """Compute the score at the newest reading's timestamp.

        Identical inputs always give identical output regardless of input order.
        Raises `InsufficientDataError` when the readings span less than
        `min_window_ms`; no default score is substituted.
        """
        if not recent_readings:
            raise InsufficientDataError("no readings in scoring window")

        ordered = sorted(recent_readings, key=lambda reading: reading.timestamp_ms)
        first, last = ordered[0], ordered[-1]
        span_ms = last.timestamp_ms - first.timestamp_ms
        if span_ms < self._policy.min_window_ms:
            raise InsufficientDataError(
                f"scoring window spans {span_ms} ms, requires {self._policy.min_window_ms} ms"
            )

        penalties: dict[Channel, float] = {channel: 0.0 for channel in CHANNELS}
        self._add_trend_penalties(ordered, penalties)
        self._add_anomaly_penalties(
            [
                event
                for event in recent_anomalies
                if event.tenant_id == last.tenant_id
                and event.machine_id == last.machine_id
                and first.timestamp_ms <= event.timestamp_ms <= last.timestamp_ms
            ],
            penalties,
        )

        total_penalty = sum(penalties[channel] for channel in CHANNELS)
        raw = min(_MAX_SCORE, max(0.0, _MAX_SCORE - total_penalty))
        return HealthScoreRecord(
            tenant_id=last.tenant_id,
            machine_id=last.machine_id,
            timestamp_ms=last.timestamp_ms,
            score=int(round(raw)),
            contributing_factors={channel: round(penalties[channel], 4) for channel in CHANNELS},
        )

    def _add_trend_penalties(
        self,
        readings: Sequence[SensorReading],
        penalties: dict[Channel, float],
    ) -> None:
        for channel in CHANNELS:
            low, high = self._policy.optimal_ranges[channel]
            midpoint = (low + high) / 2.0
            half_width = (high - low) / 2.0
            mean = float(np.mean([reading.value(channel) for reading in readings]))
            distance = abs(mean - midpoint) / half_width
            penalties[channel] += self._policy.channel_weights[channel] * self._policy.trend_points * distance

    def _add_anomaly_penalties(
        self,
        anomalies: Sequence[AnomalyEvent],
        penalties: dict[Channel, float],
    ) -> None:
        ordered = sorted(anomalies, key=lambda event: (event.timestamp_ms, event.kind.value))
        for event in ordered:
            if not event.affected_channels:
                continue
            sigma = min(event.magnitude, self._policy.max_sigma_per_event)
            channels = sorted(event.affected_channels, key=lambda channel: channel.value)
            # A combined event is charged once at its heaviest channel weight,
            # then split across the affected channels.
            weight = max(self._policy.channel_weights[channel] for channel in channels)
            share = weight * self._policy.anomaly_points_per_sigma * sigma / len(channels)
            for channel in channels:
                penalties[channel] += share
