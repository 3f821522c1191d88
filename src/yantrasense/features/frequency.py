"""Frequency-domain summary of a single sensor channel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import numpy as np
import numpy.typing as npt


FloatArray = npt.NDArray[np.float64]


@dataclass(frozen=True, slots=True)
class DominantComponent:
    """Strongest non-DC spectral component of one window."""

    frequency_hz: float
    amplitude: float


def frequency_bins_hz(window_size: int, sampling_rate_hz: float) -> FloatArray:
    """Bin centers in Hz matching `np.fft.rfft` output."""
    if window_size < 2:
        raise ValueError("window_size must be >= 2")
    if sampling_rate_hz <= 0:
        raise ValueError("sampling_rate_hz must be > 0")
    return cast(
        FloatArray,
        np.asarray(np.fft.rfftfreq(window_size, d=1.0 / sampling_rate_hz), dtype=np.float64),
    )


def amplitude_spectrum(window: npt.ArrayLike) -> FloatArray:
    """One-sided amplitude spectrum of the mean-removed window."""
    x = _as_series(window)
    centered = x - np.mean(x)
    amplitudes = np.abs(np.fft.rfft(centered)) * (2.0 / x.size)
    return np.asarray(amplitudes, dtype=np.float64)


def dominant_component(window: npt.ArrayLike, *, sampling_rate_hz: float) -> DominantComponent:
    """Locate the dominant frequency bin, ignoring the DC term.

    A flat window has no oscillation and reports `(0.0, 0.0)`.
    """
    x = _as_series(window)
    amplitudes = amplitude_spectrum(x)
    freqs = frequency_bins_hz(x.size, sampling_rate_hz)
    if amplitudes.size <= 1 or float(np.max(amplitudes[1:])) <= 1e-12:
        return DominantComponent(frequency_hz=0.0, amplitude=0.0)

    idx = 1 + int(np.argmax(amplitudes[1:]))
    return DominantComponent(frequency_hz=float(freqs[idx]), amplitude=float(amplitudes[idx]))


def _as_series(window: npt.ArrayLike) -> FloatArray:
    x = np.asarray(window, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("window must be one-dimensional")
    if x.size < 2:
        raise ValueError("window must have at least 2 samples")
    if not np.all(np.isfinite(x)):
        raise ValueError("window contains non-finite values")
    return x
