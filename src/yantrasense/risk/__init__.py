"""Failure-risk prediction, model strategies and version promotion."""

from yantrasense.risk.contracts import RISK_OUTPUT_KEYS, RiskModel
from yantrasense.risk.models import LogisticRiskModel, confidence_from_probabilities
from yantrasense.risk.predictor import FailureRiskPredictor, RiskPredictorPolicy
from yantrasense.risk.promotion import PromotionEvaluation, PromotionTargets, evaluate_promotion
from yantrasense.risk.registry import ModelRegistry, RegisteredModel
from yantrasense.risk.torch_model import RiskHeadMLP, TorchRiskModel

__all__ = [
    "RISK_OUTPUT_KEYS",
    "FailureRiskPredictor",
    "LogisticRiskModel",
    "ModelRegistry",
    "PromotionEvaluation",
    "PromotionTargets",
    "RegisteredModel",
    "RiskHeadMLP",
    "RiskModel",
    "RiskPredictorPolicy",
    "TorchRiskModel",
    "confidence_from_probabilities",
    "evaluate_promotion",
]
