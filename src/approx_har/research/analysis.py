"""Analysis helpers — pandas-based comparison of campaign traces."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from approx_har.models import TraceRecord


def traces_to_dataframe(records: Sequence[TraceRecord]) -> pd.DataFrame:
    """Load trace records into a :class:`pandas.DataFrame`.

    One row per record, with the top confidence of the engine and of the
    baseline pulled out as ``confidence`` and ``confidence_baseline``.
    """
    rows = [
        {
            "timestamp": r.timestamp,
            "run_start": r.run_start,
            "trace_run_start": r.trace_run_start,
            "engine": r.used_engine,
            "used_config": r.used_config,
            "arg_max": r.arg_max,
            "arg_max_baseline": r.arg_max_baseline,
            "confidence": r.confidences[r.arg_max] if 0 <= r.arg_max < len(r.confidences) else 0.0,
            "confidence_baseline": (
                r.confidences_baseline[r.arg_max_baseline]
                if 0 <= r.arg_max_baseline < len(r.confidences_baseline)
                else 0.0
            ),
        }
        for r in records
    ]
    df = pd.DataFrame(rows)
    if not df.empty:
        df["timestamp"] = pd.to_datetime(df["timestamp"])
        df["agrees"] = df["arg_max"] == df["arg_max_baseline"]
    return df


def summarise_campaign(df: pd.DataFrame) -> pd.DataFrame:
    """Per-engine summary of a campaign.

    Columns: ``records``, ``agreement`` (share of inputs where the engine
    predicts the baseline class), ``mean_confidence``,
    ``mean_confidence_baseline``, ``mean_config``, ``max_config``.
    """
    if df.empty:
        return pd.DataFrame(
            columns=[
                "records",
                "agreement",
                "mean_confidence",
                "mean_confidence_baseline",
                "mean_config",
                "max_config",
            ]
        )
    return df.groupby("engine", sort=False).agg(
        records=("arg_max", "count"),
        agreement=("agrees", "mean"),
        mean_confidence=("confidence", "mean"),
        mean_confidence_baseline=("confidence_baseline", "mean"),
        mean_config=("used_config", "mean"),
        max_config=("used_config", "max"),
    )
