"""Bilingual maintenance guidance for alerts."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Callable, Mapping

from yantrasense.domain.errors import AlreadyCompletedError
from yantrasense.domain.models import (
    CHANNELS,
    Alert,
    Channel,
    Completion,
    MaintenanceRecommendation,
    Severity,
)


@dataclass(frozen=True, slots=True)
class GuidanceEntry:
    """Canned guidance for one channel, in English and Hindi."""

    text_en: str
    text_hi: str
    estimated_minutes: int


CHANNEL_GUIDANCE: Mapping[Channel, GuidanceEntry] = {
    Channel.VIBRATION: GuidanceEntry(
        text_en=(
            "Inspect bearings and check lubrication; look for wear, misalignment or loose mounts."
        ),
        text_hi=(
            "बेयरिंग का निरीक्षण करें और लुब्रिकेशन की जाँच करें; "
            "घिसाव, गलत संरेखण या ढीले माउंट देखें।"
        ),
        estimated_minutes=90,
    ),
    Channel.TEMPERATURE: GuidanceEntry(
        text_en=(
            "Check cooling and ventilation; clean air filters and verify coolant flow and fan operation."
        ),
        text_hi=(
            "कूलिंग और वेंटिलेशन की जाँच करें; एयर फ़िल्टर साफ़ करें और "
            "कूलेंट प्रवाह तथा पंखे के संचालन की पुष्टि करें।"
        ),
        estimated_minutes=60,
    ),
    Channel.LOAD: GuidanceEntry(
        text_en=(
            "Check the power supply and mechanical balance; verify supply voltage and inspect "
            "couplings and belts."
        ),
        text_hi=(
            "बिजली आपूर्ति और यांत्रिक संतुलन की जाँच करें; आपूर्ति वोल्टेज सत्यापित करें "
            "और कपलिंग व बेल्ट का निरीक्षण करें।"
        ),
        estimated_minutes=75,
    ),
}

GENERAL_GUIDANCE = GuidanceEntry(
    text_en="Schedule a general inspection; failure risk is elevated without a single dominant channel.",
    text_hi="सामान्य निरीक्षण निर्धारित करें; किसी एक प्रमुख चैनल के बिना विफलता का जोखिम बढ़ा हुआ है।",
    estimated_minutes=120,
)

URGENCY_BY_SEVERITY: Mapping[Severity, str | None] = {
    Severity.HIGH: "immediate",
    Severity.MEDIUM: "within_24h",
    Severity.LOW: None,
}


def _new_recommendation_id() -> str:
    return uuid.uuid4().hex


class RecommendationResolver:
    """Map an alert's channel set to guidance; combined triggers yield the union."""

    def __init__(self, *, id_factory: Callable[[], str] = _new_recommendation_id) -> None:
        self._id_factory = id_factory

    def guidance_for(self, alert: Alert) -> tuple[GuidanceEntry, ...]:
        channels = alert.channels
        entries = tuple(CHANNEL_GUIDANCE[channel] for channel in CHANNELS if channel in channels)
        return entries if entries else (GENERAL_GUIDANCE,)

    def resolve(self, alert: Alert) -> MaintenanceRecommendation:
        return self._build(alert, self._id_factory())

    def refresh(
        self,
        recommendation: MaintenanceRecommendation,
        alert: Alert,
    ) -> MaintenanceRecommendation:
        """Re-derive guidance after `alert` absorbed triggers; id and completion are kept."""
        if recommendation.alert_id != alert.alert_id:
            raise ValueError(
                f"recommendation {recommendation.recommendation_id} belongs to alert "
                f"{recommendation.alert_id}, not {alert.alert_id}"
            )
        return replace(
            self._build(alert, recommendation.recommendation_id),
            completion=recommendation.completion,
        )

    def _build(self, alert: Alert, recommendation_id: str) -> MaintenanceRecommendation:
        entries = self.guidance_for(alert)
        urgency = URGENCY_BY_SEVERITY[alert.severity]
        return MaintenanceRecommendation(
            recommendation_id=recommendation_id,
            alert_id=alert.alert_id,
            alert_severity=alert.severity,
            text_en=" ".join(entry.text_en for entry in entries),
            text_hi=" ".join(entry.text_hi for entry in entries),
            urgency=urgency,
            estimated_minutes=(
                sum(entry.estimated_minutes for entry in entries) if urgency is not None else None
            ),
        )


def complete_recommendation(
    recommendation: MaintenanceRecommendation,
    *,
    user_id: str,
    timestamp_ms: int,
    notes: str = "",
) -> MaintenanceRecommendation:
    """Mark a recommendation done; completing it twice raises `AlreadyCompletedError`."""
    if recommendation.completion is not None:
        raise AlreadyCompletedError(
            f"recommendation {recommendation.recommendation_id} already completed by "
            f"{recommendation.completion.user_id}"
        )
    if not user_id.strip():
        raise ValueError("user_id must not be empty")
    return replace(
        recommendation,
        completion=Completion(user_id=user_id, timestamp_ms=timestamp_ms, notes=notes),
    )
