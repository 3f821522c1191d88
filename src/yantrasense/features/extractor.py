"""Window-to-feature-vector extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import numpy.typing as npt
from scipy import stats

from yantrasense.domain.errors import InsufficientDataError
from yantrasense.domain.models import CHANNELS, Channel, FeatureVector, SensorReading
from yantrasense.features.frequency import dominant_component


FloatArray = npt.NDArray[np.float64]

_MS_PER_HOUR = 3_600_000
_STATISTICS: tuple[str, ...] = ("mean", "std", "min", "max", "trend_per_hour")

FEATURE_NAMES: tuple[str, ...] = tuple(
    f"{channel.value}_{statistic}" for channel in CHANNELS for statistic in _STATISTICS
) + ("vibration_dominant_frequency_hz", "vibration_dominant_amplitude")
FEATURE_LENGTH = len(FEATURE_NAMES)


@dataclass(frozen=True, slots=True)
class FeatureWindowConfig:
    """Shape of the feature window: duration, cadence and minimum sample count."""

    window_ms: int = 24 * _MS_PER_HOUR
    sampling_interval_ms: int = 300_000
    min_samples: int = 288

    def __post_init__(self) -> None:
        if self.window_ms <= 0:
            raise ValueError("window_ms must be > 0")
        if self.sampling_interval_ms <= 0:
            raise ValueError("sampling_interval_ms must be > 0")
        if self.min_samples < 4:
            raise ValueError("min_samples must be >= 4")

    @property
    def sampling_rate_hz(self) -> float:
        return 1000.0 / self.sampling_interval_ms


def extract_features(
    readings: Sequence[SensorReading],
    config: FeatureWindowConfig,
) -> FeatureVector:
    """Build the fixed-length feature vector for one machine window.

    Readings may arrive unordered; they are sorted by timestamp first.
    """
    if len(readings) < config.min_samples:
        raise InsufficientDataError(
            f"feature window has {len(readings)} samples, requires {config.min_samples}"
        )

    ordered = sorted(readings, key=lambda reading: reading.timestamp_ms)
    first = ordered[0]
    if any(
        reading.tenant_id != first.tenant_id or reading.machine_id != first.machine_id
        for reading in ordered
    ):
        raise ValueError("feature window must contain readings for exactly one machine")

    hours = np.asarray(
        [(reading.timestamp_ms - first.timestamp_ms) / _MS_PER_HOUR for reading in ordered],
        dtype=np.float64,
    )
    values: list[float] = []
    for channel in CHANNELS:
        series = _channel_series(ordered, channel)
        values.extend(
            [
                float(np.mean(series)),
                float(np.std(series)),
                float(np.min(series)),
                float(np.max(series)),
                _trend_slope(hours, series),
            ]
        )

    component = dominant_component(
        _channel_series(ordered, Channel.VIBRATION),
        sampling_rate_hz=config.sampling_rate_hz,
    )
    values.extend([component.frequency_hz, component.amplitude])

    return FeatureVector(
        tenant_id=first.tenant_id,
        machine_id=first.machine_id,
        window_start_ms=first.timestamp_ms,
        window_end_ms=ordered[-1].timestamp_ms,
        values=tuple(values),
    )


def _channel_series(readings: Sequence[SensorReading], channel: Channel) -> FloatArray:
    series = np.asarray([reading.value(channel) for reading in readings], dtype=np.float64)
    if not np.all(np.isfinite(series)):
        raise ValueError(f"{channel.value} channel contains non-finite values")
    return series


def _trend_slope(hours: FloatArray, series: FloatArray) -> float:
    if float(np.ptp(hours)) == 0.0:
        return 0.0
    return float(stats.linregress(hours, series).slope)
