"""CSV export and import of readings and derived scores."""

from yantrasense.export.csv_export import (
    EXPORT_COLUMNS,
    READING_COLUMNS,
    ExportRow,
    build_export_rows,
    format_timestamp,
    parse_timestamp,
    read_export_csv,
    read_readings_csv,
    write_export_csv,
)

__all__ = [
    "EXPORT_COLUMNS",
    "READING_COLUMNS",
    "ExportRow",
    "build_export_rows",
    "format_timestamp",
    "parse_timestamp",
    "read_export_csv",
    "read_readings_csv",
    "write_export_csv",
]
