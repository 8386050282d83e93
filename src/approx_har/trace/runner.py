"""Classification campaign runner — replays recorded inputs through engines.

For every recorded signal image of a run, in order:

1. classify once with the baseline (no-adaptation) engine;
2. for each adaptation engine, in the given order: read its configuration,
   classify, let it adapt for the next input, and emit a
   :class:`TraceRecord` pairing its result with the baseline result.

Engine state evolves over the whole sequence, so inputs are processed
strictly one after another.  All records go to storage as one batch at
the end.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, Sequence

import structlog

from approx_har.adaptation.base import AdaptationEngine
from approx_har.errors import CampaignCancelled, InferenceFailure
from approx_har.har.image import SignalImage
from approx_har.models import Classification, InferenceResult, TraceRecord, format_timestamp

logger = structlog.get_logger(__name__)


class SourceRecords(Protocol):
    async def load_all_by_run_start(self, run_start: str) -> list[Classification]: ...


class TraceSink(Protocol):
    async def insert_all(self, records: Sequence[TraceRecord]) -> int: ...


@dataclass
class CampaignResult:
    """Outcome of one campaign."""
    run_start: str
    trace_run_start: str
    records: list[TraceRecord] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    processed: int = 0


class CampaignRunner:
    """Runs one baseline engine and a fixed list of adaptation engines over
    the recorded inputs of a run.

    Parameters
    ----------
    baseline : AdaptationEngine
        Non-adaptive engine whose result accompanies every record.
    engines : list[AdaptationEngine]
        Engines under study, processed in this order for every input.
    source_repo : SourceRecords
        Supplies the recorded classifications of a run.
    trace_repo : TraceSink
        Receives the produced records as one batch.
    inference_timeout : float | None
        Seconds allowed per inference call; ``None`` disables the limit.
    """

    def __init__(
        self,
        baseline: AdaptationEngine,
        engines: list[AdaptationEngine],
        source_repo: SourceRecords,
        trace_repo: TraceSink,
        *,
        inference_timeout: float | None = None,
    ) -> None:
        self._baseline = baseline
        self._engines = list(engines)
        self._source_repo = source_repo
        self._trace_repo = trace_repo
        self._timeout = inference_timeout

    @property
    def engines(self) -> list[AdaptationEngine]:
        return list(self._engines)

    async def run(
        self,
        run_start: str,
        *,
        cancel_event: asyncio.Event | None = None,
        trace_run_start: datetime | None = None,
    ) -> CampaignResult:
        """Trace every recorded input of *run_start*.

        Raises
        ------
        InferenceFailure
            An inference call failed or timed out.  Records emitted before
            the failure are stored first.
        CampaignCancelled
            *cancel_event* was set; nothing is stored.
        PersistenceFailure
            The final batch could not be written.
        """
        classifications = await self._source_repo.load_all_by_run_start(run_start)
        result = CampaignResult(
            run_start=run_start,
            trace_run_start=format_timestamp(trace_run_start or datetime.now(UTC)),
        )
        log = logger.bind(run_start=run_start, trace_run_start=result.trace_run_start)
        log.info(
            "trace.campaign_started",
            inputs=len(classifications),
            engines=[e.name() for e in self._engines],
        )

        try:
            for i, c in enumerate(classifications):
                if cancel_event is not None and cancel_event.is_set():
                    log.warning("trace.campaign_cancelled", next_input=i)
                    raise CampaignCancelled(f"Campaign for run {run_start} cancelled before input {i}")

                if c.signal_image is None:
                    log.info("trace.input_skipped", input=i, reason="no signal image")
                    result.skipped.append(i)
                    continue

                image = SignalImage.from_csv(c.signal_image)
                await self._trace_input(i, c, image, result)
                result.processed += 1
        except InferenceFailure as exc:
            log.error(
                "trace.inference_failed",
                input=exc.index,
                engine=exc.engine,
                error=str(exc),
                records_kept=len(result.records),
            )
            await self._persist(result, log)
            raise

        await self._persist(result, log)
        log.info(
            "trace.campaign_finished",
            processed=result.processed,
            skipped=len(result.skipped),
            records=len(result.records),
        )
        return result

    # ── Internals ─────────────────────────────────────────────

    async def _trace_input(
        self,
        index: int,
        c: Classification,
        image: SignalImage,
        result: CampaignResult,
    ) -> None:
        baseline = await self._use(self._baseline, image, index)

        for engine in self._engines:
            logger.info("trace.classifying", input=index, engine=engine.name())
            used_config = engine.configuration()
            outcome = await self._step(engine, image, index)

            result.records.append(
                TraceRecord(
                    timestamp=c.timestamp,
                    run_start=c.run_start,
                    trace_run_start=result.trace_run_start,
                    used_config=used_config,
                    arg_max=outcome.arg_max,
                    confidences=outcome.confidences,
                    arg_max_baseline=baseline.arg_max,
                    confidences_baseline=baseline.confidences,
                    used_engine=engine.name(),
                )
            )

    async def _use(self, engine: AdaptationEngine, image: SignalImage, index: int) -> InferenceResult:
        try:
            return await asyncio.wait_for(asyncio.to_thread(engine.use_for, image), self._timeout)
        except TimeoutError:
            raise InferenceFailure(
                f"Inference timed out after {self._timeout}s", index=index, engine=engine.name()
            ) from None
        except InferenceFailure as exc:
            exc.index = index
            exc.engine = engine.name()
            raise

    async def _use_and_adapt(self, engine: AdaptationEngine, image: SignalImage, index: int) -> InferenceResult:
        outcome = await self._use(engine, image, index)
        engine.act_upon(outcome.confidences, outcome.arg_max)
        return outcome

    async def _step(self, engine: AdaptationEngine, image: SignalImage, index: int) -> InferenceResult:
        # A use_for/act_upon pair finishes even if the campaign is cancelled meanwhile.
        task = asyncio.ensure_future(self._use_and_adapt(engine, image, index))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await asyncio.wait([task])
            if not task.cancelled() and task.exception() is not None:
                logger.warning(
                    "trace.step_failed_after_cancel",
                    input=index,
                    engine=engine.name(),
                    error=str(task.exception()),
                )
            raise

    async def _persist(self, result: CampaignResult, log: Any) -> None:
        count = await self._trace_repo.insert_all(result.records)
        log.info("trace.records_stored", records=count)
