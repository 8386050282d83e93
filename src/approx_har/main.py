"""Application entrypoint — record runs, trace campaigns, inspect results."""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import UTC, datetime

from approx_har.config import Settings, get_settings
from approx_har.errors import ApproxHarError
from approx_har.logger import setup_logging
from approx_har.models import format_timestamp


def _classifier(settings: Settings, backend_path: str | None):
    from approx_har.inference import Classifier, load_backend

    path = backend_path or settings.inference_backend
    if not path:
        raise SystemExit("No inference backend configured (use --backend or INFERENCE_BACKEND).")
    return Classifier(load_backend(path), num_classes=settings.num_classes)


async def _with_engine(command, args: argparse.Namespace, settings: Settings) -> None:
    """Run *command* and close the shared database engine afterwards."""
    from approx_har.storage.database import dispose_engine

    try:
        await command(args, settings)
    finally:
        await dispose_engine()


async def _init_db(args: argparse.Namespace, settings: Settings) -> None:
    from approx_har.storage.database import init_db

    await init_db()
    print("Database tables created.")


async def _record(args: argparse.Namespace, settings: Settings) -> None:
    from approx_har.adaptation import NoAdaptation
    from approx_har.har import HARSignalProcessor
    from approx_har.recording import RecordingSession, load_samples_csv
    from approx_har.storage.database import init_db
    from approx_har.storage.repository import ClassificationRepository

    await init_db()
    run_start = args.run_start or format_timestamp(datetime.now(UTC))
    session = RecordingSession(
        HARSignalProcessor(settings=settings),
        NoAdaptation(_classifier(settings, args.backend)),
        ClassificationRepository(),
        run_start,
        inference_timeout=settings.inference_timeout_seconds,
    )
    stored = await session.ingest(load_samples_csv(args.input))
    print(f"Run {run_start}: {len(stored)} classifications stored.")


async def _trace(args: argparse.Namespace, settings: Settings) -> None:
    from approx_har.adaptation import NoAdaptation, build_engines
    from approx_har.storage.database import init_db
    from approx_har.storage.repository import ClassificationRepository, TraceClassificationRepository
    from approx_har.trace import CampaignRunner

    await init_db()
    classifier = _classifier(settings, args.backend)
    runner = CampaignRunner(
        NoAdaptation(classifier),
        build_engines(args.engines or settings.trace_engines, classifier, settings),
        ClassificationRepository(),
        TraceClassificationRepository(),
        inference_timeout=settings.inference_timeout_seconds,
    )
    result = await runner.run(args.run_start)
    print(
        f"Trace run {result.trace_run_start}: {result.processed} inputs, "
        f"{len(result.skipped)} skipped, {len(result.records)} records."
    )


async def _summary(args: argparse.Namespace, settings: Settings) -> None:
    from approx_har.research.analysis import summarise_campaign, traces_to_dataframe
    from approx_har.storage.repository import TraceClassificationRepository

    records = await TraceClassificationRepository().get_by_trace_run(args.trace_run)
    print(summarise_campaign(traces_to_dataframe(records)).to_string())


async def _export(args: argparse.Namespace, settings: Settings) -> None:
    from approx_har.research.export import export_traces_csv, export_traces_json
    from approx_har.storage.repository import TraceClassificationRepository

    records = await TraceClassificationRepository().get_by_trace_run(args.trace_run)
    exporter = export_traces_json if args.format == "json" else export_traces_csv
    print(f"Wrote {exporter(records, args.output)}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="approx-har",
        description="Signal images and adaptive approximate-inference tracing.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── record ────────────────────────────────────────────────
    record_parser = sub.add_parser("record", help="Classify a raw sample CSV and store the run.")
    record_parser.add_argument("--input", required=True, help="CSV with timestamp,sensor,x,y,z.")
    record_parser.add_argument("--run-start", default=None)
    record_parser.add_argument("--backend", default=None, help="package.module:attribute")

    # ── trace ─────────────────────────────────────────────────
    trace_parser = sub.add_parser("trace", help="Replay a recorded run through adaptation engines.")
    trace_parser.add_argument("--run-start", required=True)
    trace_parser.add_argument("--backend", default=None, help="package.module:attribute")
    trace_parser.add_argument("--engines", nargs="+", default=None, help="e.g. state:1 kalman:2")

    # ── summary / export ──────────────────────────────────────
    summary_parser = sub.add_parser("summary", help="Per-engine summary of a trace run.")
    summary_parser.add_argument("--trace-run", required=True)

    export_parser = sub.add_parser("export", help="Export the records of a trace run.")
    export_parser.add_argument("--trace-run", required=True)
    export_parser.add_argument("--output", required=True)
    export_parser.add_argument("--format", choices=["csv", "json"], default="csv")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    commands = {
        "init-db": _init_db,
        "record": _record,
        "trace": _trace,
        "summary": _summary,
        "export": _export,
    }
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_with_engine(commands[args.command], args, settings))
    except ApproxHarError as exc:
        print(f"{args.command} failed: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
