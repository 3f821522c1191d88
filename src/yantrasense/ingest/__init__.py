"""Reading intake validation."""

from yantrasense.ingest.intake_guard import (
    IntakeMetrics,
    IntakePolicy,
    ReadingIntakeGuard,
    ReadingRangePolicy,
    RejectedReading,
    RejectReason,
    range_violations,
)

__all__ = [
    "IntakeMetrics",
    "IntakePolicy",
    "ReadingIntakeGuard",
    "ReadingRangePolicy",
    "RejectReason",
    "RejectedReading",
    "range_violations",
]
