"""Data export utilities for reproducible research workflows."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Sequence

import structlog

from approx_har.models import TraceRecord, join_floats

logger = structlog.get_logger(__name__)

_CSV_HEADER = [
    "timestamp",
    "run_start",
    "trace_run_start",
    "used_engine",
    "used_config",
    "arg_max",
    "confidences",
    "arg_max_baseline",
    "confidences_baseline",
]


def export_traces_csv(records: Sequence[TraceRecord], output_path: str | Path) -> Path:
    """Export trace records to a CSV file.

    Confidence vectors are written as comma-joined strings.
    Returns the resolved output path.
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(_CSV_HEADER)
        for r in records:
            writer.writerow([
                r.timestamp.isoformat(), r.run_start, r.trace_run_start,
                r.used_engine, r.used_config, r.arg_max, join_floats(r.confidences),
                r.arg_max_baseline, join_floats(r.confidences_baseline),
            ])

    logger.info("export.csv_written", path=str(output), rows=len(records))
    return output


def export_traces_json(records: Sequence[TraceRecord], output_path: str | Path) -> Path:
    """Export trace records to a JSON file."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    payload = [r.model_dump(mode="json") for r in records]
    with output.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info("export.json_written", path=str(output), rows=len(payload))
    return output
