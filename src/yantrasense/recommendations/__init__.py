"""Maintenance recommendations derived from alerts."""

from yantrasense.recommendations.resolver import (
    CHANNEL_GUIDANCE,
    GENERAL_GUIDANCE,
    URGENCY_BY_SEVERITY,
    GuidanceEntry,
    RecommendationResolver,
    complete_recommendation,
)

__all__ = [
    "CHANNEL_GUIDANCE",
    "GENERAL_GUIDANCE",
    "URGENCY_BY_SEVERITY",
    "GuidanceEntry",
    "RecommendationResolver",
    "complete_recommendation",
]
