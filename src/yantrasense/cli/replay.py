"""Replay a readings CSV through the analytics core and report what it produced."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Sequence

from yantrasense.alerts.consolidator import AlertConsolidator
from yantrasense.alerts.system import SystemAlertLog
from yantrasense.anomaly.baseline import BaselineStore
from yantrasense.anomaly.detector import AnomalyDetector
from yantrasense.config import CoreSettings, load_core_settings
from yantrasense.domain.classification import classify_health, classify_risk
from yantrasense.domain.models import SensorReading
from yantrasense.export.csv_export import build_export_rows, read_readings_csv, write_export_csv
from yantrasense.health.calculator import HealthScoreCalculator
from yantrasense.ingest.intake_guard import ReadingIntakeGuard
from yantrasense.pipeline.baseline_job import BaselineRecomputeJob
from yantrasense.pipeline.engine import AnalyticsEngine
from yantrasense.pipeline.memory import InMemoryReadingStore, InMemoryRecordSink
from yantrasense.recommendations.resolver import RecommendationResolver
from yantrasense.risk.models import LogisticRiskModel
from yantrasense.risk.predictor import FailureRiskPredictor
from yantrasense.risk.registry import ModelRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReplayArtifacts:
    """Files written by one replay run."""

    output_dir: Path
    report_path: Path
    export_path: Path
    alerts_raised: int


def build_parser() -> argparse.ArgumentParser:
    """Create parser for the offline replay command."""
    parser = argparse.ArgumentParser(
        prog="yantrasense-replay",
        description=(
            "Replay recorded sensor readings through baseline, anomaly, health, risk and alerting "
            "stages and write a JSON report plus a flat CSV export."
        ),
    )
    parser.add_argument("--readings-csv", type=Path, required=True)
    parser.add_argument("--tenant-id", type=str, default="default")
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Optional JSON settings file; omitted sections keep their defaults.",
    )
    parser.add_argument("--output-dir", type=Path, default=Path("artifacts/replay"))
    parser.add_argument(
        "--trigger-every",
        type=int,
        default=12,
        help="Run the pipeline once per this many readings of a machine.",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
    )
    return parser


def run_replay_from_args(args: argparse.Namespace) -> ReplayArtifacts:
    """Load readings, replay them in time order and write the artifacts."""
    if args.trigger_every <= 0:
        raise ValueError("--trigger-every must be > 0")
    if not args.tenant_id.strip():
        raise ValueError("--tenant-id must not be empty")

    settings = load_core_settings(args.settings)
    raw = read_readings_csv(args.readings_csv, tenant_id=args.tenant_id)
    if not raw:
        raise ValueError(f"{args.readings_csv}: no readings found")

    guard = ReadingIntakeGuard(settings.intake)
    ingest_time_ms = max(reading.timestamp_ms for reading in raw) + 1
    accepted, rejected = guard.process_batch(raw, ingest_time_ms=ingest_time_ms)
    for rejection in rejected:
        logger.info("rejected reading %s: %s", rejection.reason.value, rejection.detail)

    store = InMemoryReadingStore()
    store.add_many(accepted)
    sink = InMemoryRecordSink()
    system_alerts = SystemAlertLog()
    baselines = BaselineStore()
    detector = AnomalyDetector(baselines, policy=settings.anomaly, baseline_policy=settings.baseline)
    registry = ModelRegistry(system_alerts=system_alerts, targets=settings.promotion)
    registry.register(settings.active_model_version, LogisticRiskModel.reference())
    registry.activate(settings.active_model_version)
    predictor = FailureRiskPredictor(registry, system_alerts=system_alerts, policy=settings.risk)
    consolidator = AlertConsolidator(settings.alerts)
    engine = AnalyticsEngine(
        reading_store=store,
        sink=sink,
        detector=detector,
        health_calculator=HealthScoreCalculator(settings.health),
        predictor=predictor,
        consolidator=consolidator,
        resolver=RecommendationResolver(),
        system_alerts=system_alerts,
        feature_config=settings.features,
    )
    job = BaselineRecomputeJob(
        reading_store=store,
        detector=detector,
        baseline_store=baselines,
        system_alerts=system_alerts,
    )

    try:
        _replay(accepted, engine=engine, job=job, trigger_every=args.trigger_every)
    finally:
        engine.close()
        predictor.close()

    output_dir = args.output_dir.resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    export_path = output_dir / "export.csv"
    write_export_csv(
        export_path,
        build_export_rows(
            _all_readings(store, args.tenant_id, ingest_time_ms),
            sink.health_scores(args.tenant_id),
            sink.anomalies(args.tenant_id),
        ),
    )

    alerts = sink.alerts(args.tenant_id)
    report_path = output_dir / "replay_report.json"
    _write_json(
        report_path,
        _build_report(
            tenant_id=args.tenant_id,
            settings=settings,
            sink=sink,
            store=store,
            guard=guard,
            system_alerts=system_alerts,
            alerts_total=len(alerts),
        ),
    )
    return ReplayArtifacts(
        output_dir=output_dir,
        report_path=report_path,
        export_path=export_path,
        alerts_raised=len(alerts),
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        artifacts = run_replay_from_args(args)
    except Exception as exc:
        print(f"[ERROR] Replay failed: {exc}", file=sys.stderr)
        return 2

    print(f"replay_report: {artifacts.report_path}")
    print(f"export_csv: {artifacts.export_path}")
    print(f"alerts_raised: {artifacts.alerts_raised}")
    return 0


def _replay(
    readings: Sequence[SensorReading],
    *,
    engine: AnalyticsEngine,
    job: BaselineRecomputeJob,
    trigger_every: int,
) -> None:
    seen: Counter[tuple[str, str]] = Counter()
    for reading in sorted(readings, key=lambda item: (item.timestamp_ms, item.machine_id)):
        key = (reading.tenant_id, reading.machine_id)
        seen[key] += 1
        if job.is_due(reading.timestamp_ms):
            job.run(tuple(seen), now_ms=reading.timestamp_ms)
        if seen[key] % trigger_every == 0:
            engine.trigger(reading.tenant_id, reading.machine_id, now_ms=reading.timestamp_ms)


def _all_readings(store: InMemoryReadingStore, tenant_id: str, end_ms: int) -> list[SensorReading]:
    readings: list[SensorReading] = []
    for machine_id in store.machines(tenant_id):
        readings.extend(store.get_window(tenant_id, machine_id, 0, end_ms))
    return readings


def _build_report(
    *,
    tenant_id: str,
    settings: CoreSettings,
    sink: InMemoryRecordSink,
    store: InMemoryReadingStore,
    guard: ReadingIntakeGuard,
    system_alerts: SystemAlertLog,
    alerts_total: int,
) -> dict[str, Any]:
    machines: dict[str, dict[str, Any]] = {}
    health_records = sink.health_scores(tenant_id)
    risk_records = sink.failure_risks(tenant_id)
    anomalies = sink.anomalies(tenant_id)
    alerts = sink.alerts(tenant_id)
    for machine_id in store.machines(tenant_id):
        health = [record for record in health_records if record.machine_id == machine_id]
        risk = [record for record in risk_records if record.machine_id == machine_id]
        entry: dict[str, Any] = {
            "anomalies": sum(1 for event in anomalies if event.machine_id == machine_id),
            "alerts_by_severity": dict(
                sorted(
                    Counter(
                        alert.severity.name for alert in alerts if alert.machine_id == machine_id
                    ).items()
                )
            ),
            "latest_health": None,
            "latest_risk": None,
        }
        if health:
            latest = health[-1]
            entry["latest_health"] = {
                "timestamp_ms": latest.timestamp_ms,
                "score": latest.score,
                "class": classify_health(latest.score).value,
            }
        if risk:
            latest_risk = risk[-1]
            entry["latest_risk"] = {
                "timestamp_ms": latest_risk.timestamp_ms,
                "horizons": latest_risk.horizons,
                "level": classify_risk(latest_risk.max_risk).value,
                "confidence": latest_risk.confidence,
                "model_version": latest_risk.model_version,
                "stale": latest_risk.stale,
            }
        machines[machine_id] = entry

    return {
        "tenant_id": tenant_id,
        "active_model_version": settings.active_model_version,
        "intake": asdict(guard.metrics),
        "alerts_total": alerts_total,
        "machines": machines,
        "system_alerts": [
            {"kind": alert.kind.value, "message": alert.message, "timestamp_ms": alert.timestamp_ms}
            for alert in system_alerts.alerts()
        ],
    }


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


if __name__ == "__main__":
    raise SystemExit(main())
