"""Learned PyTorch risk head implementing the risk model contract."""

from __future__ import annotations

from typing import Mapping, Sequence, cast

import numpy as np
import numpy.typing as npt
import torch
from torch import nn

from yantrasense.domain.errors import ModelCapabilityError
from yantrasense.risk.contracts import RISK_OUTPUT_KEYS
from yantrasense.risk.models import confidence_from_probabilities


class RiskHeadMLP(nn.Module):
    """Small MLP mapping standardized features to one logit per horizon."""

    def __init__(self, input_features: int, hidden_units: int = 32) -> None:
        super().__init__()
        if input_features <= 0:
            raise ValueError("input_features must be > 0")
        if hidden_units <= 0:
            raise ValueError("hidden_units must be > 0")

        self.input_features = input_features
        self.layers = nn.Sequential(
            nn.Linear(input_features, hidden_units),
            nn.ReLU(),
            nn.Dropout(p=0.1),
            nn.Linear(hidden_units, hidden_units),
            nn.ReLU(),
            nn.Linear(hidden_units, len(RISK_OUTPUT_KEYS)),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Run forward pass for shape [batch, features]."""
        if x.ndim != 2:
            raise ValueError("Input tensor must have shape [batch, features]")
        return cast(torch.Tensor, self.layers(x))


class TorchRiskModel:
    """Serve a trained `RiskHeadMLP` behind the `RiskModel` contract."""

    def __init__(
        self,
        module: RiskHeadMLP,
        *,
        feature_center: npt.ArrayLike | None = None,
        feature_scale: npt.ArrayLike | None = None,
    ) -> None:
        size = module.input_features
        self._module = module.eval()
        self._center = (
            np.zeros(size, dtype=np.float64)
            if feature_center is None
            else np.asarray(feature_center, dtype=np.float64)
        )
        self._scale = (
            np.ones(size, dtype=np.float64)
            if feature_scale is None
            else np.asarray(feature_scale, dtype=np.float64)
        )
        if self._center.shape != (size,) or self._scale.shape != (size,):
            raise ValueError("feature_center and feature_scale must match module input_features")
        if not np.all(self._scale > 0.0):
            raise ValueError("feature_scale must be > 0")

    @classmethod
    def from_state_dict(
        cls,
        state_dict: Mapping[str, torch.Tensor],
        *,
        input_features: int,
        hidden_units: int = 32,
        feature_center: npt.ArrayLike | None = None,
        feature_scale: npt.ArrayLike | None = None,
    ) -> TorchRiskModel:
        module = RiskHeadMLP(input_features, hidden_units)
        module.load_state_dict(dict(state_dict))
        return cls(module, feature_center=feature_center, feature_scale=feature_scale)

    @property
    def input_length(self) -> int:
        return self._module.input_features

    def infer(self, values: Sequence[float], model_version: str) -> Mapping[str, float]:
        del model_version
        x = np.asarray(values, dtype=np.float64)
        if x.shape != (self.input_length,):
            raise ValueError(f"expected {self.input_length} features, got shape {x.shape}")

        z = torch.as_tensor(((x - self._center) / self._scale)[None, :], dtype=torch.float32)
        with torch.no_grad():
            logits = self._module(z)
        if tuple(logits.shape) != (1, len(RISK_OUTPUT_KEYS)):
            raise ModelCapabilityError(f"unexpected model output shape {tuple(logits.shape)}")

        probabilities = torch.sigmoid(logits)[0].cpu().numpy().astype(np.float64)
        output = {key: float(prob * 100.0) for key, prob in zip(RISK_OUTPUT_KEYS, probabilities)}
        output["confidence"] = confidence_from_probabilities(probabilities)
        return output
