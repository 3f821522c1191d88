"""Deterministic promotion gate for candidate risk-model versions."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PromotionTargets:
    """Hard constraints a candidate must pass before it replaces the active model."""

    min_accuracy: float = 0.75
    require_equal_or_better: bool = True

    def __post_init__(self) -> None:
        if self.min_accuracy < 0.0 or self.min_accuracy > 1.0:
            raise ValueError("min_accuracy must be in [0, 1]")


@dataclass(frozen=True, slots=True)
class PromotionEvaluation:
    """Result of applying promotion targets to one candidate."""

    passed: bool
    failed_checks: tuple[str, ...]
    candidate_version: str
    candidate_accuracy: float
    active_version: str | None
    active_accuracy: float | None

    @property
    def below_minimum(self) -> bool:
        return any(check.startswith("accuracy_below_minimum") for check in self.failed_checks)


def evaluate_promotion(
    *,
    candidate_version: str,
    candidate_accuracy: float,
    active_version: str | None,
    active_accuracy: float | None,
    targets: PromotionTargets,
) -> PromotionEvaluation:
    """Evaluate held-out accuracy of a candidate against the active version."""
    if candidate_accuracy < 0.0 or candidate_accuracy > 1.0:
        raise ValueError("candidate_accuracy must be in [0, 1]")
    if active_accuracy is not None and (active_accuracy < 0.0 or active_accuracy > 1.0):
        raise ValueError("active_accuracy must be in [0, 1]")

    failed_checks: list[str] = []
    if candidate_accuracy < targets.min_accuracy:
        failed_checks.append(
            "accuracy_below_minimum:"
            f"{candidate_accuracy:.4f}<{targets.min_accuracy:.4f}"
        )
    if (
        targets.require_equal_or_better
        and active_accuracy is not None
        and candidate_accuracy < active_accuracy
    ):
        failed_checks.append(
            "accuracy_regressed:"
            f"{candidate_accuracy:.4f}<{active_accuracy:.4f}"
        )

    return PromotionEvaluation(
        passed=(len(failed_checks) == 0),
        failed_checks=tuple(failed_checks),
        candidate_version=candidate_version,
        candidate_accuracy=candidate_accuracy,
        active_version=active_version,
        active_accuracy=active_accuracy,
    )
