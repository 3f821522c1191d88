"""Core domain records for the predictive maintenance analytics core."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Mapping


class Channel(StrEnum):
    """Sensor channels sampled on every machine."""

    VIBRATION = "vibration"
    TEMPERATURE = "temperature"
    LOAD = "load"


CHANNELS: tuple[Channel, ...] = (Channel.VIBRATION, Channel.TEMPERATURE, Channel.LOAD)


class AnomalyKind(StrEnum):
    """Kind of anomaly event; `combined` covers multi-channel breaches."""

    VIBRATION = "vibration"
    TEMPERATURE = "temperature"
    LOAD = "load"
    COMBINED = "combined"


class Severity(IntEnum):
    """Ordered alert severities."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3


class TriggerSource(StrEnum):
    """Derived record type that fired an alert trigger."""

    HEALTH_SCORE = "health_score"
    FAILURE_RISK = "failure_risk"
    ANOMALY = "anomaly"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """Single three-channel measurement for one machine."""

    tenant_id: str
    machine_id: str
    timestamp_ms: int
    vibration: float
    temperature: float
    load: float

    def value(self, channel: Channel) -> float:
        """Return the value recorded for `channel`."""
        if channel is Channel.VIBRATION:
            return self.vibration
        if channel is Channel.TEMPERATURE:
            return self.temperature
        return self.load


@dataclass(frozen=True, slots=True)
class ChannelBaseline:
    """Rolling statistics for one channel."""

    mean: float
    std: float
    sample_count: int
    established: bool

    def __post_init__(self) -> None:
        if self.std < 0.0:
            raise ValueError("std must be >= 0")
        if self.sample_count < 0:
            raise ValueError("sample_count must be >= 0")


@dataclass(frozen=True, slots=True)
class BaselineStats:
    """Per-machine baseline snapshot; replaced wholesale, never patched."""

    tenant_id: str
    machine_id: str
    updated_at_ms: int
    channels: Mapping[Channel, ChannelBaseline] = field(default_factory=dict)

    def get(self, channel: Channel) -> ChannelBaseline | None:
        """Return the channel baseline if one was computed."""
        return self.channels.get(channel)


@dataclass(frozen=True, slots=True)
class FeatureVector:
    """Fixed-length feature vector derived from one reading window."""

    tenant_id: str
    machine_id: str
    window_start_ms: int
    window_end_ms: int
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        if self.window_end_ms < self.window_start_ms:
            raise ValueError("window_end_ms must be >= window_start_ms")
        if not self.values:
            raise ValueError("values must not be empty")


@dataclass(frozen=True, slots=True)
class AnomalyEvent:
    """Baseline deviation detected for one reading."""

    tenant_id: str
    machine_id: str
    timestamp_ms: int
    kind: AnomalyKind
    deviation: float
    affected_channels: frozenset[Channel]

    @property
    def magnitude(self) -> float:
        return abs(self.deviation)

    @property
    def record_key(self) -> str:
        return f"anomaly:{self.tenant_id}/{self.machine_id}@{self.timestamp_ms}"


@dataclass(frozen=True, slots=True)
class HealthScoreRecord:
    """Bounded health score with per-channel penalty breakdown."""

    tenant_id: str
    machine_id: str
    timestamp_ms: int
    score: int
    contributing_factors: Mapping[Channel, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.score < 0 or self.score > 100:
            raise ValueError("score must be in [0, 100]")

    @property
    def record_key(self) -> str:
        return f"health_score:{self.tenant_id}/{self.machine_id}@{self.timestamp_ms}"


@dataclass(frozen=True, slots=True)
class FailureRiskRecord:
    """Failure probability per horizon, as percentages."""

    tenant_id: str
    machine_id: str
    timestamp_ms: int
    risk_24h: float
    risk_7d: float
    risk_30d: float
    confidence: float
    model_version: str
    stale: bool = False

    def __post_init__(self) -> None:
        for name in ("risk_24h", "risk_7d", "risk_30d"):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"{name} must be in [0, 100]")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be in [0, 1]")

    @property
    def horizons(self) -> dict[str, float]:
        return {"24h": self.risk_24h, "7d": self.risk_7d, "30d": self.risk_30d}

    @property
    def max_risk(self) -> float:
        return max(self.risk_24h, self.risk_7d, self.risk_30d)

    @property
    def record_key(self) -> str:
        return f"failure_risk:{self.tenant_id}/{self.machine_id}@{self.timestamp_ms}"


@dataclass(frozen=True, slots=True)
class TriggerCondition:
    """One fired alert rule, referencing the record that fired it."""

    source: TriggerSource
    record_key: str
    timestamp_ms: int
    severity: Severity
    description: str
    channels: frozenset[Channel] = frozenset()


@dataclass(frozen=True, slots=True)
class Acknowledgment:
    """Who acknowledged an alert, and when."""

    user_id: str
    timestamp_ms: int


@dataclass(frozen=True, slots=True)
class Alert:
    """Machine alert; only `acknowledgment` changes after creation."""

    alert_id: str
    tenant_id: str
    machine_id: str
    severity: Severity
    triggers: tuple[TriggerCondition, ...]
    created_at_ms: int
    acknowledgment: Acknowledgment | None = None

    def __post_init__(self) -> None:
        if not self.triggers:
            raise ValueError("alert requires at least one trigger condition")

    @property
    def acknowledged(self) -> bool:
        return self.acknowledgment is not None

    @property
    def channels(self) -> frozenset[Channel]:
        """Union of channels referenced by all trigger conditions."""
        merged: set[Channel] = set()
        for trigger in self.triggers:
            merged.update(trigger.channels)
        return frozenset(merged)


@dataclass(frozen=True, slots=True)
class Completion:
    """Completion stamp for a maintenance recommendation."""

    user_id: str
    timestamp_ms: int
    notes: str = ""


@dataclass(frozen=True, slots=True)
class MaintenanceRecommendation:
    """Bilingual maintenance guidance bound to one alert."""

    recommendation_id: str
    alert_id: str
    alert_severity: Severity
    text_en: str
    text_hi: str
    urgency: str | None = None
    estimated_minutes: int | None = None
    completion: Completion | None = None

    def __post_init__(self) -> None:
        if not self.text_en.strip() or not self.text_hi.strip():
            raise ValueError("recommendation requires both English and Hindi text")
        if self.alert_severity is Severity.HIGH:
            if not self.urgency:
                raise ValueError("urgency is required for high severity recommendations")
            if self.estimated_minutes is None:
                raise ValueError("estimated_minutes is required for high severity recommendations")
        if self.estimated_minutes is not None and self.estimated_minutes <= 0:
            raise ValueError("estimated_minutes must be > 0 when set")

    @property
    def done(self) -> bool:
        return self.completion is not None
