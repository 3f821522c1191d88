"""Statistical logistic risk model over the extracted feature vector."""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np
import numpy.typing as npt
from scipy import special

from yantrasense.features.extractor import FEATURE_NAMES
from yantrasense.risk.contracts import RISK_OUTPUT_KEYS


FloatArray = npt.NDArray[np.float64]

# feature name -> (center, scale, weight); unlisted features carry no weight.
_REFERENCE_COEFFICIENTS: dict[str, tuple[float, float, float]] = {
    "vibration_mean": (10.0, 5.0, 0.8),
    "vibration_std": (2.0, 2.0, 0.6),
    "vibration_max": (20.0, 10.0, 0.5),
    "vibration_trend_per_hour": (0.0, 0.5, 0.7),
    "temperature_mean": (45.0, 15.0, 0.5),
    "temperature_max": (70.0, 15.0, 0.5),
    "temperature_trend_per_hour": (0.0, 1.0, 0.4),
    "load_mean": (50.0, 20.0, 0.3),
    "load_max": (85.0, 10.0, 0.3),
    "vibration_dominant_amplitude": (1.0, 2.0, 0.3),
}
_REFERENCE_HORIZON_BIAS: tuple[float, float, float] = (-3.0, -2.0, -1.2)
_REFERENCE_HORIZON_GAIN: tuple[float, float, float] = (0.8, 1.0, 1.2)


def confidence_from_probabilities(probabilities: npt.ArrayLike) -> float:
    """One minus mean binary entropy (bits); decisive outputs score near 1."""
    p = np.clip(np.asarray(probabilities, dtype=np.float64), 0.0, 1.0)
    entropy_bits = (special.entr(p) + special.entr(1.0 - p)) / np.log(2.0)
    return float(np.clip(1.0 - np.mean(entropy_bits), 0.0, 1.0))


class LogisticRiskModel:
    """Independent logistic regression per horizon on standardized features."""

    def __init__(
        self,
        weights: npt.ArrayLike,
        bias: npt.ArrayLike,
        *,
        feature_center: npt.ArrayLike,
        feature_scale: npt.ArrayLike,
    ) -> None:
        self._weights = np.asarray(weights, dtype=np.float64)
        self._bias = np.asarray(bias, dtype=np.float64)
        self._center = np.asarray(feature_center, dtype=np.float64)
        self._scale = np.asarray(feature_scale, dtype=np.float64)

        horizons = len(RISK_OUTPUT_KEYS)
        if self._weights.ndim != 2 or self._weights.shape[0] != horizons:
            raise ValueError(f"weights must have shape [{horizons}, features]")
        features = self._weights.shape[1]
        if self._bias.shape != (horizons,):
            raise ValueError(f"bias must have shape [{horizons}]")
        if self._center.shape != (features,) or self._scale.shape != (features,):
            raise ValueError("feature_center and feature_scale must match the feature dimension")
        if not np.all(self._scale > 0.0):
            raise ValueError("feature_scale must be > 0")

    @classmethod
    def reference(cls) -> LogisticRiskModel:
        """Hand-calibrated coefficients used until a fitted model is registered."""
        center = np.zeros(len(FEATURE_NAMES), dtype=np.float64)
        scale = np.ones(len(FEATURE_NAMES), dtype=np.float64)
        base = np.zeros(len(FEATURE_NAMES), dtype=np.float64)
        for idx, name in enumerate(FEATURE_NAMES):
            if name in _REFERENCE_COEFFICIENTS:
                center[idx], scale[idx], base[idx] = _REFERENCE_COEFFICIENTS[name]
        weights = np.stack([gain * base for gain in _REFERENCE_HORIZON_GAIN], axis=0)
        return cls(weights, _REFERENCE_HORIZON_BIAS, feature_center=center, feature_scale=scale)

    @property
    def input_length(self) -> int:
        return int(self._weights.shape[1])

    def infer(self, values: Sequence[float], model_version: str) -> Mapping[str, float]:
        del model_version
        x = np.asarray(values, dtype=np.float64)
        if x.shape != (self.input_length,):
            raise ValueError(f"expected {self.input_length} features, got shape {x.shape}")

        z = (x - self._center) / self._scale
        probabilities = special.expit(self._weights @ z + self._bias)
        output = {key: float(prob * 100.0) for key, prob in zip(RISK_OUTPUT_KEYS, probabilities)}
        output["confidence"] = confidence_from_probabilities(probabilities)
        return output
