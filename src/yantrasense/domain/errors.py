"""Error taxonomy surfaced by the analytics core."""

from __future__ import annotations


class YantraSenseError(Exception):
    """Base class for conditions raised by the analytics core."""


class InsufficientDataError(YantraSenseError):
    """Not enough history to compute a result; a legitimate state, not a fault."""


class PredictionUnavailableError(YantraSenseError):
    """The risk predictor has no usable result for this machine."""


class BaselineNotEstablishedError(YantraSenseError):
    """Baseline for a channel has too few samples to support detection."""


class AlreadyAcknowledgedError(YantraSenseError):
    """Alert was acknowledged by an earlier call."""

    def __init__(self, alert_id: str, user_id: str, timestamp_ms: int) -> None:
        super().__init__(f"alert {alert_id} already acknowledged by {user_id} at {timestamp_ms}")
        self.alert_id = alert_id
        self.user_id = user_id
        self.timestamp_ms = timestamp_ms


class AlreadyCompletedError(YantraSenseError):
    """Recommendation was marked done by an earlier call."""


class ModelCapabilityError(YantraSenseError):
    """Model capability failed or returned malformed output."""


class CorruptBaselineError(YantraSenseError):
    """Historical data cannot produce a trustworthy baseline."""


class MachineDeactivatedError(YantraSenseError):
    """Machine no longer accepts pipeline triggers."""
