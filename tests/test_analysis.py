"""Tests for campaign analysis and export helpers."""

from __future__ import annotations

import csv
import json
from datetime import datetime

import pytest

from approx_har.models import TraceRecord
from approx_har.research.analysis import summarise_campaign, traces_to_dataframe
from approx_har.research.export import export_traces_csv, export_traces_json


def record(engine: str, config: int, top: int, baseline_top: int = 0) -> TraceRecord:
    return TraceRecord(
        timestamp=datetime(2024, 1, 1, 10, 0, 0),
        run_start="R1",
        trace_run_start="T1",
        used_config=config,
        arg_max=top,
        confidences=[0.8 if i == top else 0.04 for i in range(6)],
        arg_max_baseline=baseline_top,
        confidences_baseline=[0.95 if i == baseline_top else 0.01 for i in range(6)],
        used_engine=engine,
    )


@pytest.fixture
def records() -> list[TraceRecord]:
    return [
        record("StateAdaptation-1", 0, 0),
        record("StateAdaptation-1", 1, 0),
        record("StateAdaptation-1", 2, 3),
        record("KalmanAdaptation-1", 0, 0),
        record("KalmanAdaptation-1", 0, 0),
        record("KalmanAdaptation-1", 1, 0),
    ]


class TestSummary:
    def test_per_engine_agreement(self, records):
        summary = summarise_campaign(traces_to_dataframe(records))

        assert list(summary.index) == ["StateAdaptation-1", "KalmanAdaptation-1"]
        state = summary.loc["StateAdaptation-1"]
        assert state["records"] == 3
        assert state["agreement"] == pytest.approx(2 / 3)
        assert state["max_config"] == 2
        assert summary.loc["KalmanAdaptation-1", "agreement"] == 1.0
        assert summary.loc["KalmanAdaptation-1", "mean_config"] == pytest.approx(1 / 3)

    def test_confidence_columns(self, records):
        df = traces_to_dataframe(records)
        assert set(df["confidence"]) == {0.8}
        assert set(df["confidence_baseline"]) == {0.95}

    def test_empty(self):
        summary = summarise_campaign(traces_to_dataframe([]))
        assert summary.empty
        assert "agreement" in summary.columns


class TestExport:
    def test_csv(self, records, tmp_path):
        path = export_traces_csv(records, tmp_path / "out" / "trace.csv")

        with path.open(encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 6
        assert rows[0]["used_engine"] == "StateAdaptation-1"
        assert rows[2]["arg_max"] == "3"
        assert len(rows[0]["confidences"].split(",")) == 6

    def test_json(self, records, tmp_path):
        path = export_traces_json(records, tmp_path / "trace.json")

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert len(payload) == 6
        assert TraceRecord.model_validate(payload[5]) == records[5]
