"""Flat CSV export and re-import of readings with their derived scores."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Iterable, Sequence

from yantrasense.domain.models import AnomalyEvent, HealthScoreRecord, SensorReading

EXPORT_COLUMNS: tuple[str, ...] = (
    "machine_id",
    "timestamp",
    "vibration",
    "temperature",
    "load",
    "health_score",
    "anomaly_flag",
)
READING_COLUMNS: tuple[str, ...] = EXPORT_COLUMNS[:5]

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True, slots=True)
class ExportRow:
    """One exported line; `health_score` is `None` where no score was computed."""

    machine_id: str
    timestamp_ms: int
    vibration: float
    temperature: float
    load: float
    health_score: int | None = None
    anomaly_flag: bool = False

    def to_reading(self, tenant_id: str) -> SensorReading:
        return SensorReading(
            tenant_id=tenant_id,
            machine_id=self.machine_id,
            timestamp_ms=self.timestamp_ms,
            vibration=self.vibration,
            temperature=self.temperature,
            load=self.load,
        )


def format_timestamp(timestamp_ms: int) -> str:
    """Epoch milliseconds as ISO-8601 UTC with millisecond precision."""
    return (_EPOCH + timestamp_ms * _ONE_MS).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str) -> int:
    """Inverse of `format_timestamp`; naive timestamps are read as UTC."""
    parsed = datetime.fromisoformat(text.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return (parsed - _EPOCH) // _ONE_MS


def build_export_rows(
    readings: Iterable[SensorReading],
    health_records: Iterable[HealthScoreRecord] = (),
    anomalies: Iterable[AnomalyEvent] = (),
) -> tuple[ExportRow, ...]:
    """Join readings with the health score and anomaly recorded at the same instant."""
    scores = {(record.machine_id, record.timestamp_ms): record.score for record in health_records}
    flagged = {(event.machine_id, event.timestamp_ms) for event in anomalies}
    ordered = sorted(readings, key=lambda reading: (reading.machine_id, reading.timestamp_ms))
    return tuple(
        ExportRow(
            machine_id=reading.machine_id,
            timestamp_ms=reading.timestamp_ms,
            vibration=reading.vibration,
            temperature=reading.temperature,
            load=reading.load,
            health_score=scores.get((reading.machine_id, reading.timestamp_ms)),
            anomaly_flag=(reading.machine_id, reading.timestamp_ms) in flagged,
        )
        for reading in ordered
    )


def write_export_csv(path: Path, rows: Sequence[ExportRow]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(EXPORT_COLUMNS)
        for row in rows:
            writer.writerow(
                (
                    row.machine_id,
                    format_timestamp(row.timestamp_ms),
                    repr(row.vibration),
                    repr(row.temperature),
                    repr(row.load),
                    "" if row.health_score is None else str(row.health_score),
                    "1" if row.anomaly_flag else "0",
                )
            )


def read_export_csv(path: Path) -> tuple[ExportRow, ...]:
    """Read an export file, or a plain readings file carrying only the first five columns."""
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        header = tuple(reader.fieldnames or ())
        missing = [column for column in READING_COLUMNS if column not in header]
        if missing:
            raise ValueError(f"{path}: missing CSV columns {missing}")

        rows: list[ExportRow] = []
        for line_number, record in enumerate(reader, start=2):
            try:
                health_text = (record.get("health_score") or "").strip()
                rows.append(
                    ExportRow(
                        machine_id=record["machine_id"].strip(),
                        timestamp_ms=parse_timestamp(record["timestamp"]),
                        vibration=float(record["vibration"]),
                        temperature=float(record["temperature"]),
                        load=float(record["load"]),
                        health_score=int(health_text) if health_text else None,
                        anomaly_flag=(record.get("anomaly_flag") or "0").strip().lower()
                        in ("1", "true"),
                    )
                )
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{path}:{line_number}: {exc}") from exc
    return tuple(rows)


def read_readings_csv(path: Path, *, tenant_id: str) -> tuple[SensorReading, ...]:
    """Load raw readings for one tenant from an export-compatible CSV file."""
    return tuple(row.to_reading(tenant_id) for row in read_export_csv(path))
