"""Per-machine baseline statistics and their atomic store."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from yantrasense.domain.errors import CorruptBaselineError
from yantrasense.domain.models import CHANNELS, BaselineStats, Channel, ChannelBaseline, SensorReading

MachineKey = tuple[str, str]


@dataclass(frozen=True, slots=True)
class BaselinePolicy:
    """How much history a baseline is built from and when it counts as established."""

    history_days: int = 90
    min_samples: int = 100

    def __post_init__(self) -> None:
        if self.history_days <= 0:
            raise ValueError("history_days must be > 0")
        if self.min_samples <= 1:
            raise ValueError("min_samples must be > 1")


def compute_baseline(
    tenant_id: str,
    machine_id: str,
    history: Sequence[SensorReading],
    *,
    now_ms: int,
    policy: BaselinePolicy,
) -> BaselineStats:
    """Compute mean/std per channel from a trailing history window.

    Raises `CorruptBaselineError` when the history holds foreign or non-finite
    readings. Channels with fewer than `policy.min_samples` readings are
    returned with `established=False`.
    """
    for reading in history:
        if reading.tenant_id != tenant_id or reading.machine_id != machine_id:
            raise CorruptBaselineError(
                f"history for {tenant_id}/{machine_id} contains reading from "
                f"{reading.tenant_id}/{reading.machine_id}"
            )

    channels: dict[Channel, ChannelBaseline] = {}
    for channel in CHANNELS:
        series = np.asarray([reading.value(channel) for reading in history], dtype=np.float64)
        if series.size and not np.all(np.isfinite(series)):
            raise CorruptBaselineError(f"{channel.value} history contains non-finite values")

        count = int(series.size)
        mean = float(np.mean(series)) if count else 0.0
        std = float(np.std(series, ddof=1)) if count > 1 else 0.0
        channels[channel] = ChannelBaseline(
            mean=mean,
            std=std,
            sample_count=count,
            established=count >= policy.min_samples,
        )

    return BaselineStats(
        tenant_id=tenant_id,
        machine_id=machine_id,
        updated_at_ms=now_ms,
        channels=channels,
    )


def is_corrupt(stats: BaselineStats) -> bool:
    """Whether a stored baseline carries values no detector can trust."""
    for channel_stats in stats.channels.values():
        if not (np.isfinite(channel_stats.mean) and np.isfinite(channel_stats.std)):
            return True
    return False


class BaselineStore:
    """Holds the current `BaselineStats` per machine.

    Writers replace the whole snapshot under a lock; readers get an immutable
    reference and never observe a half-written baseline.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: dict[MachineKey, BaselineStats] = {}
        self._recompute_requests: set[MachineKey] = set()

    def get(self, tenant_id: str, machine_id: str) -> BaselineStats | None:
        with self._lock:
            return self._stats.get((tenant_id, machine_id))

    def install(self, stats: BaselineStats) -> None:
        key = (stats.tenant_id, stats.machine_id)
        with self._lock:
            self._stats[key] = stats
            self._recompute_requests.discard(key)

    def request_recompute(self, tenant_id: str, machine_id: str) -> None:
        with self._lock:
            self._recompute_requests.add((tenant_id, machine_id))

    def pending_recomputes(self) -> tuple[MachineKey, ...]:
        with self._lock:
            return tuple(sorted(self._recompute_requests))
