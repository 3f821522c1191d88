"""Health score computation."""

from yantrasense.health.calculator import HealthScoreCalculator, HealthScorePolicy

__all__ = ["HealthScoreCalculator", "HealthScorePolicy"]
