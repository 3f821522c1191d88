"""Model capability contract for failure-risk estimation."""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence

RISK_OUTPUT_KEYS: tuple[str, ...] = ("risk_24h", "risk_7d", "risk_30d")


class RiskModel(Protocol):
    """Any estimation technique able to turn a feature vector into horizon risks.

    `infer` returns percentages in [0, 100] under `RISK_OUTPUT_KEYS` plus a
    `confidence` in [0, 1]. Implementations may block on I/O and may raise
    `ModelCapabilityError`, `TimeoutError` or `OSError`.
    """

    @property
    def input_length(self) -> int: ...

    def infer(self, values: Sequence[float], model_version: str) -> Mapping[str, float]: ...
