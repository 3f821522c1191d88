"""Pipeline orchestration and collaborator contracts."""

from yantrasense.pipeline.baseline_job import WEEK_MS, BaselineRecomputeJob
from yantrasense.pipeline.contracts import (
    DerivedRecord,
    NotificationDispatcher,
    NotificationPreferences,
    NotificationRequest,
    ReadingStore,
    RecordSink,
)
from yantrasense.pipeline.engine import AnalyticsEngine, PipelineOutcome
from yantrasense.pipeline.memory import InMemoryReadingStore, InMemoryRecordSink, RecordingDispatcher

__all__ = [
    "WEEK_MS",
    "AnalyticsEngine",
    "BaselineRecomputeJob",
    "DerivedRecord",
    "InMemoryReadingStore",
    "InMemoryRecordSink",
    "NotificationDispatcher",
    "NotificationPreferences",
    "NotificationRequest",
    "PipelineOutcome",
    "ReadingStore",
    "RecordSink",
    "RecordingDispatcher",
]
