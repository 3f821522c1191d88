"""Deterministic range and replay guardrails for incoming sensor readings."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from math import isfinite

from yantrasense.domain.models import CHANNELS, Channel, SensorReading

logger = logging.getLogger(__name__)


class RejectReason(StrEnum):
    """Reasons why a reading is rejected at intake."""

    NON_FINITE_VALUE = "non_finite_value"
    OUT_OF_RANGE = "out_of_range"
    FUTURE_TIMESTAMP = "future_timestamp"
    DUPLICATE_READING = "duplicate_reading"


@dataclass(frozen=True, slots=True)
class ReadingRangePolicy:
    """Accepted physical range per channel, inclusive on both ends."""

    vibration_min: float = 0.0
    vibration_max: float = 100.0
    temperature_min: float = -50.0
    temperature_max: float = 200.0
    load_min: float = 0.0
    load_max: float = 100.0

    def __post_init__(self) -> None:
        for channel in CHANNELS:
            low, high = self.bounds(channel)
            if low > high:
                raise ValueError(f"{channel.value} minimum cannot be greater than maximum")

    def bounds(self, channel: Channel) -> tuple[float, float]:
        """Return `(min, max)` for a channel."""
        return (
            getattr(self, f"{channel.value}_min"),
            getattr(self, f"{channel.value}_max"),
        )


@dataclass(frozen=True, slots=True)
class IntakePolicy:
    """Runtime policy for reading intake."""

    ranges: ReadingRangePolicy = field(default_factory=ReadingRangePolicy)
    max_future_skew_ms: int = 2_000
    dedupe_history_size: int = 100_000

    def __post_init__(self) -> None:
        if self.max_future_skew_ms < 0:
            raise ValueError("max_future_skew_ms must be >= 0")
        if self.dedupe_history_size <= 0:
            raise ValueError("dedupe_history_size must be > 0")


@dataclass(frozen=True, slots=True)
class RejectedReading:
    """Rejected reading with deterministic reason and detail."""

    reading: SensorReading
    reason: RejectReason
    detail: str


@dataclass(frozen=True, slots=True)
class IntakeMetrics:
    """Intake counters for quality tracking."""

    total_seen: int
    accepted: int
    rejected: int
    out_of_order: int
    rejected_by_reason: tuple[tuple[str, int], ...]


def range_violations(reading: SensorReading, policy: ReadingRangePolicy) -> tuple[str, ...]:
    """Return one message per channel whose value lies outside its accepted range."""
    violations: list[str] = []
    for channel in CHANNELS:
        value = reading.value(channel)
        low, high = policy.bounds(channel)
        if value < low or value > high:
            violations.append(f"{channel.value}={value} outside [{low}, {high}]")
    return tuple(violations)


class ReadingIntakeGuard:
    """In-memory guard for idempotent reading intake.

    Out-of-order readings are accepted and counted; ordering is restored by the
    reading store, which always serves windows sorted by timestamp.
    """

    def __init__(self, policy: IntakePolicy | None = None) -> None:
        self._policy = IntakePolicy() if policy is None else policy
        self._seen_keys: set[tuple[str, str, int]] = set()
        self._key_order: deque[tuple[str, str, int]] = deque(maxlen=self._policy.dedupe_history_size)
        self._last_timestamp_by_machine: dict[tuple[str, str], int] = {}

        self._total_seen = 0
        self._accepted = 0
        self._rejected = 0
        self._out_of_order = 0
        self._rejected_by_reason: dict[RejectReason, int] = {reason: 0 for reason in RejectReason}

    def evaluate(self, reading: SensorReading, *, ingest_time_ms: int) -> RejectedReading | None:
        """Return `None` if accepted, otherwise rejection details."""
        if ingest_time_ms <= 0:
            raise ValueError("ingest_time_ms must be > 0")

        self._total_seen += 1
        key = (reading.tenant_id, reading.machine_id, reading.timestamp_ms)
        if key in self._seen_keys:
            return self._reject(
                reading,
                RejectReason.DUPLICATE_READING,
                f"duplicate reading for {reading.machine_id} at {reading.timestamp_ms}",
            )

        non_finite = [channel.value for channel in CHANNELS if not isfinite(reading.value(channel))]
        if non_finite:
            return self._reject(
                reading,
                RejectReason.NON_FINITE_VALUE,
                f"non-finite values: {', '.join(non_finite)}",
            )

        violations = range_violations(reading, self._policy.ranges)
        if violations:
            return self._reject(reading, RejectReason.OUT_OF_RANGE, "; ".join(violations))

        skew_ms = reading.timestamp_ms - ingest_time_ms
        if skew_ms > self._policy.max_future_skew_ms:
            return self._reject(
                reading,
                RejectReason.FUTURE_TIMESTAMP,
                f"reading timestamp is {skew_ms} ms ahead of ingest clock",
            )

        stream_key = (reading.tenant_id, reading.machine_id)
        previous_ts = self._last_timestamp_by_machine.get(stream_key)
        if previous_ts is not None and reading.timestamp_ms < previous_ts:
            self._out_of_order += 1
            logger.info(
                "out-of-order reading accepted for %s/%s: %d < %d",
                reading.tenant_id,
                reading.machine_id,
                reading.timestamp_ms,
                previous_ts,
            )

        self._remember(key)
        self._last_timestamp_by_machine[stream_key] = (
            max(previous_ts, reading.timestamp_ms) if previous_ts is not None else reading.timestamp_ms
        )
        self._accepted += 1
        return None

    def process_batch(
        self,
        readings: tuple[SensorReading, ...],
        *,
        ingest_time_ms: int,
    ) -> tuple[tuple[SensorReading, ...], tuple[RejectedReading, ...]]:
        """Process a batch and return accepted and rejected readings."""
        accepted: list[SensorReading] = []
        rejected: list[RejectedReading] = []
        for reading in readings:
            decision = self.evaluate(reading, ingest_time_ms=ingest_time_ms)
            if decision is None:
                accepted.append(reading)
            else:
                rejected.append(decision)
        return tuple(accepted), tuple(rejected)

    @property
    def metrics(self) -> IntakeMetrics:
        """Return intake counters in stable order for tests/reporting."""
        return IntakeMetrics(
            total_seen=self._total_seen,
            accepted=self._accepted,
            rejected=self._rejected,
            out_of_order=self._out_of_order,
            rejected_by_reason=tuple(
                (reason.value, self._rejected_by_reason[reason]) for reason in RejectReason
            ),
        )

    def _reject(self, reading: SensorReading, reason: RejectReason, detail: str) -> RejectedReading:
        self._rejected += 1
        self._rejected_by_reason[reason] += 1
        logger.warning("rejected reading for %s/%s: %s", reading.tenant_id, reading.machine_id, detail)
        return RejectedReading(reading=reading, reason=reason, detail=detail)

    def _remember(self, key: tuple[str, str, int]) -> None:
        if len(self._key_order) == self._key_order.maxlen:
            oldest = self._key_order.popleft()
            self._seen_keys.discard(oldest)
        self._key_order.append(key)
        self._seen_keys.add(key)
