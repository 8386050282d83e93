"""Data-access layer — thin async wrappers around SQLAlchemy queries."""

from __future__ import annotations

from typing import Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from approx_har.errors import PersistenceFailure
from approx_har.models import Classification, TraceRecord, join_floats, split_floats
from approx_har.storage.database import (
    ClassificationRow,
    TraceClassificationRow,
    get_session_factory,
)

logger = structlog.get_logger(__name__)


class BaseRepository:
    """Shared base with session management for all repositories."""

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._external_session = session

    async def _session(self) -> AsyncSession:
        if self._external_session is not None:
            return self._external_session
        return get_session_factory()()


def row_to_classification(row: ClassificationRow) -> Classification:
    return Classification(
        uid=row.uid,
        timestamp=row.timestamp,
        run_start=row.run_start,
        signal_image=row.signal_image,
        arg_max=row.arg_max,
        confidences=split_floats(row.confidence_concat),
        used_config=row.used_config,
        used_engine=row.used_engine,
    )


def row_to_trace(row: TraceClassificationRow) -> TraceRecord:
    return TraceRecord(
        timestamp=row.timestamp,
        run_start=row.run_start,
        trace_run_start=row.trace_run_start,
        used_config=row.used_config,
        arg_max=row.arg_max,
        confidences=split_floats(row.confidence_concat),
        arg_max_baseline=row.arg_max_baseline,
        confidences_baseline=split_floats(row.confidence_baseline_concat),
        used_engine=row.used_engine,
    )


class ClassificationRepository(BaseRepository):
    """Source records: classifications stored while a run was live."""

    # ── Write ─────────────────────────────────────────────────

    @staticmethod
    def _to_row(c: Classification) -> ClassificationRow:
        return ClassificationRow(
            uid=c.uid,
            timestamp=c.timestamp,
            run_start=c.run_start,
            signal_image=c.signal_image,
            arg_max=c.arg_max,
            confidence_concat=join_floats(c.confidences),
            used_config=c.used_config,
            used_engine=c.used_engine,
        )

    async def save(self, classification: Classification) -> Classification:
        """Persist one classification and return it with its assigned uid."""
        session = await self._session()
        row = self._to_row(classification)
        session.add(row)
        await session.commit()
        return classification.model_copy(update={"uid": row.uid})

    async def save_batch(self, classifications: list[Classification]) -> int:
        session = await self._session()
        rows = [self._to_row(c) for c in classifications]
        session.add_all(rows)
        await session.commit()
        return len(rows)

    # ── Read ──────────────────────────────────────────────────

    async def load_all_by_run_start(self, run_start: str) -> list[Classification]:
        """All classifications of a run, in recording order."""
        session = await self._session()
        stmt = (
            select(ClassificationRow)
            .where(ClassificationRow.run_start == run_start)
            .order_by(ClassificationRow.uid.asc())
        )
        result = await session.execute(stmt)
        return [row_to_classification(r) for r in result.scalars().all()]

    async def list_run_starts(self) -> Sequence[str]:
        session = await self._session()
        stmt = select(ClassificationRow.run_start).distinct().order_by(ClassificationRow.run_start)
        result = await session.execute(stmt)
        return result.scalars().all()


class TraceClassificationRepository(BaseRepository):
    """Trace records produced by classification campaigns."""

    async def insert_all(self, records: Sequence[TraceRecord]) -> int:
        """Write a campaign's records as one transaction.

        Raises :class:`PersistenceFailure` if the write fails; nothing is
        committed in that case.
        """
        session = await self._session()
        rows = [
            TraceClassificationRow(
                timestamp=r.timestamp,
                run_start=r.run_start,
                trace_run_start=r.trace_run_start,
                used_config=r.used_config,
                arg_max=r.arg_max,
                confidence_concat=join_floats(r.confidences),
                arg_max_baseline=r.arg_max_baseline,
                confidence_baseline_concat=join_floats(r.confidences_baseline),
                used_engine=r.used_engine,
            )
            for r in records
        ]
        try:
            session.add_all(rows)
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("storage.trace_insert_failed", rows=len(rows), error=str(exc))
            raise PersistenceFailure(f"Could not store {len(rows)} trace records: {exc}") from exc
        return len(rows)

    async def get_by_trace_run(self, trace_run_start: str) -> list[TraceRecord]:
        session = await self._session()
        stmt = (
            select(TraceClassificationRow)
            .where(TraceClassificationRow.trace_run_start == trace_run_start)
            .order_by(TraceClassificationRow.uid.asc())
        )
        result = await session.execute(stmt)
        return [row_to_trace(r) for r in result.scalars().all()]

    async def list_trace_runs(self, run_start: str | None = None) -> Sequence[str]:
        session = await self._session()
        stmt = select(TraceClassificationRow.trace_run_start).distinct()
        if run_start is not None:
            stmt = stmt.where(TraceClassificationRow.run_start == run_start)
        result = await session.execute(stmt.order_by(TraceClassificationRow.trace_run_start))
        return result.scalars().all()
