"""Unit tests for the dominant spectral component helper."""

from __future__ import annotations

import numpy as np
import pytest

from yantrasense.features import amplitude_spectrum, dominant_component, frequency_bins_hz


def test_frequency_bins_match_rfft_layout() -> None:
    bins = frequency_bins_hz(8, sampling_rate_hz=8.0)

    assert np.allclose(bins, [0.0, 1.0, 2.0, 3.0, 4.0])


def test_dominant_component_finds_sine_on_bin() -> None:
    t = np.arange(64, dtype=np.float64) / 64.0
    window = 3.0 + np.sin(2.0 * np.pi * 8.0 * t)

    component = dominant_component(window, sampling_rate_hz=64.0)

    assert component.frequency_hz == pytest.approx(8.0)
    assert component.amplitude == pytest.approx(1.0, abs=1e-9)


def test_offset_does_not_leak_into_spectrum() -> None:
    spectrum = amplitude_spectrum(np.full(16, 7.5))

    assert np.allclose(spectrum, 0.0)


def test_flat_window_reports_no_component() -> None:
    component = dominant_component(np.full(32, 4.0), sampling_rate_hz=1.0)

    assert component.frequency_hz == 0.0
    assert component.amplitude == 0.0


def test_rejects_invalid_windows() -> None:
    with pytest.raises(ValueError, match="at least 2 samples"):
        dominant_component([1.0], sampling_rate_hz=1.0)
    with pytest.raises(ValueError, match="finite"):
        amplitude_spectrum([1.0, np.inf, 2.0])
    with pytest.raises(ValueError, match="sampling_rate_hz"):
        frequency_bins_hz(8, sampling_rate_hz=0.0)
