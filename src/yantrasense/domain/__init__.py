"""Domain records, classification helpers and error taxonomy."""

from yantrasense.domain.classification import (
    HealthClass,
    HealthColor,
    RiskLevel,
    classify_health,
    classify_risk,
    health_color,
)
from yantrasense.domain.errors import (
    AlreadyAcknowledgedError,
    AlreadyCompletedError,
    BaselineNotEstablishedError,
    CorruptBaselineError,
    InsufficientDataError,
    MachineDeactivatedError,
    ModelCapabilityError,
    PredictionUnavailableError,
    YantraSenseError,
)
from yantrasense.domain.models import (
    CHANNELS,
    Acknowledgment,
    Alert,
    AnomalyEvent,
    AnomalyKind,
    BaselineStats,
    Channel,
    ChannelBaseline,
    Completion,
    FailureRiskRecord,
    FeatureVector,
    HealthScoreRecord,
    MaintenanceRecommendation,
    SensorReading,
    Severity,
    TriggerCondition,
    TriggerSource,
)

__all__ = [
    "CHANNELS",
    "Acknowledgment",
    "Alert",
    "AlreadyAcknowledgedError",
    "AlreadyCompletedError",
    "AnomalyEvent",
    "AnomalyKind",
    "BaselineNotEstablishedError",
    "BaselineStats",
    "Channel",
    "ChannelBaseline",
    "Completion",
    "CorruptBaselineError",
    "FailureRiskRecord",
    "FeatureVector",
    "HealthClass",
    "HealthColor",
    "HealthScoreRecord",
    "InsufficientDataError",
    "MachineDeactivatedError",
    "MaintenanceRecommendation",
    "ModelCapabilityError",
    "PredictionUnavailableError",
    "RiskLevel",
    "SensorReading",
    "Severity",
    "TriggerCondition",
    "TriggerSource",
    "YantraSenseError",
    "classify_health",
    "classify_risk",
    "health_color",
]
