"""Feature extraction from sensor reading windows."""

from yantrasense.features.extractor import (
    FEATURE_LENGTH,
    FEATURE_NAMES,
    FeatureWindowConfig,
    extract_features,
)
from yantrasense.features.frequency import (
    DominantComponent,
    amplitude_spectrum,
    dominant_component,
    frequency_bins_hz,
)

__all__ = [
    "FEATURE_LENGTH",
    "FEATURE_NAMES",
    "DominantComponent",
    "FeatureWindowConfig",
    "amplitude_spectrum",
    "dominant_component",
    "extract_features",
    "frequency_bins_hz",
]
