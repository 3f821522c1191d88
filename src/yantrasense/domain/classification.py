"""Pure classification of scores and risk percentages for display."""

from __future__ import annotations

from enum import StrEnum


class HealthClass(StrEnum):
    """Health bands shown to operators."""

    ATTENTION_NEEDED = "attention_needed"
    MODERATE = "moderate"
    HEALTHY = "healthy"


class HealthColor(StrEnum):
    """Dashboard color code; kept in lockstep with `HealthClass`."""

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class RiskLevel(StrEnum):
    """Failure risk bands."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_COLOR_BY_CLASS: dict[HealthClass, HealthColor] = {
    HealthClass.ATTENTION_NEEDED: HealthColor.RED,
    HealthClass.MODERATE: HealthColor.YELLOW,
    HealthClass.HEALTHY: HealthColor.GREEN,
}


def classify_health(score: float) -> HealthClass:
    """Map a health score to its band: <70 attention, 70..85 moderate, >85 healthy."""
    if score < 70:
        return HealthClass.ATTENTION_NEEDED
    if score <= 85:
        return HealthClass.MODERATE
    return HealthClass.HEALTHY


def health_color(score: float) -> HealthColor:
    return _COLOR_BY_CLASS[classify_health(score)]


def classify_risk(percentage: float) -> RiskLevel:
    """Map a failure risk percentage: >70 high, 40..70 medium, <40 low."""
    if percentage > 70:
        return RiskLevel.HIGH
    if percentage >= 40:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
