"""Aggregate runtime settings for the analytics core, loadable from JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, cast

from yantrasense.alerts.rules import AlertPolicy
from yantrasense.anomaly.baseline import BaselinePolicy
from yantrasense.anomaly.detector import AnomalyPolicy
from yantrasense.domain.models import Channel
from yantrasense.features.extractor import FeatureWindowConfig
from yantrasense.health.calculator import HealthScorePolicy
from yantrasense.ingest.intake_guard import IntakePolicy, ReadingRangePolicy
from yantrasense.risk.predictor import RiskPredictorPolicy
from yantrasense.risk.promotion import PromotionTargets


@dataclass(frozen=True, slots=True)
class CoreSettings:
    """Every policy the core runs with, plus the model version to activate."""

    features: FeatureWindowConfig = field(default_factory=FeatureWindowConfig)
    baseline: BaselinePolicy = field(default_factory=BaselinePolicy)
    anomaly: AnomalyPolicy = field(default_factory=AnomalyPolicy)
    health: HealthScorePolicy = field(default_factory=HealthScorePolicy)
    risk: RiskPredictorPolicy = field(default_factory=RiskPredictorPolicy)
    promotion: PromotionTargets = field(default_factory=PromotionTargets)
    alerts: AlertPolicy = field(default_factory=AlertPolicy)
    intake: IntakePolicy = field(default_factory=IntakePolicy)
    active_model_version: str = "logistic-reference-v1"

    def __post_init__(self) -> None:
        if not self.active_model_version.strip():
            raise ValueError("active_model_version must not be empty")


_SECTIONS: Mapping[str, type] = {
    "features": FeatureWindowConfig,
    "baseline": BaselinePolicy,
    "anomaly": AnomalyPolicy,
    "health": HealthScorePolicy,
    "risk": RiskPredictorPolicy,
    "promotion": PromotionTargets,
    "alerts": AlertPolicy,
    "intake": IntakePolicy,
}


def core_settings_from_dict(payload: Mapping[str, Any]) -> CoreSettings:
    """Build settings from a JSON-shaped mapping; omitted keys keep their defaults."""
    unknown = sorted(set(payload) - set(_SECTIONS) - {"active_model_version"})
    if unknown:
        raise ValueError(f"unknown settings sections: {unknown}")

    kwargs: dict[str, Any] = {}
    for name, policy_type in _SECTIONS.items():
        section = payload.get(name)
        if section is None:
            continue
        if not isinstance(section, Mapping):
            raise ValueError(f"settings section '{name}' must be an object")
        kwargs[name] = _build_policy(name, policy_type, section)

    if "active_model_version" in payload:
        kwargs["active_model_version"] = str(payload["active_model_version"])
    return CoreSettings(**kwargs)


def load_core_settings(path: Path | None = None) -> CoreSettings:
    """Load settings from a JSON file, or return defaults when `path` is `None`."""
    if path is None:
        return CoreSettings()
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: settings file must contain a JSON object")
    return core_settings_from_dict(cast(dict[str, Any], payload))


def _build_policy(name: str, policy_type: type, section: Mapping[str, Any]) -> Any:
    allowed = {item.name for item in fields(policy_type)}
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ValueError(f"unknown keys in settings section '{name}': {unknown}")

    values = dict(section)
    if policy_type is HealthScorePolicy:
        if "channel_weights" in values:
            values["channel_weights"] = {
                Channel(key): float(weight) for key, weight in values["channel_weights"].items()
            }
        if "optimal_ranges" in values:
            values["optimal_ranges"] = {
                Channel(key): (float(bounds[0]), float(bounds[1]))
                for key, bounds in values["optimal_ranges"].items()
            }
    if policy_type is IntakePolicy and "ranges" in values:
        values["ranges"] = _build_policy("intake.ranges", ReadingRangePolicy, values["ranges"])
    return policy_type(**values)
