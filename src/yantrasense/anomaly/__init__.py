"""Baseline statistics and anomaly detection."""

from yantrasense.anomaly.baseline import BaselinePolicy, BaselineStore, compute_baseline, is_corrupt
from yantrasense.anomaly.detector import AnomalyDetector, AnomalyPolicy, BaselineUpdateResult

__all__ = [
    "AnomalyDetector",
    "AnomalyPolicy",
    "BaselinePolicy",
    "BaselineStore",
    "BaselineUpdateResult",
    "compute_baseline",
    "is_corrupt",
]
