"""SQLAlchemy async engine, session factory, and ORM table definitions."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from approx_har.config import get_settings


# ── Base ──────────────────────────────────────────────────────

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


# ── ORM tables ────────────────────────────────────────────────

class ClassificationRow(Base):
    """A classification recorded during a live run."""

    __tablename__ = "classifications"

    uid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, index=True)
    run_start: Mapped[str] = mapped_column(String(32), index=True)
    signal_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    arg_max: Mapped[int] = mapped_column(Integer, default=-1)
    confidence_concat: Mapped[str] = mapped_column(Text, default="")
    used_config: Mapped[int] = mapped_column(Integer, default=0)
    used_engine: Mapped[str] = mapped_column(String(64), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class TraceClassificationRow(Base):
    """One engine's result on a recorded input, beside the baseline result."""

    __tablename__ = "trace_classifications"

    uid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime)
    run_start: Mapped[str] = mapped_column(String(32), index=True)
    trace_run_start: Mapped[str] = mapped_column(String(32), index=True)
    used_config: Mapped[int] = mapped_column(Integer)
    arg_max: Mapped[int] = mapped_column(Integer)
    confidence_concat: Mapped[str] = mapped_column(Text)
    arg_max_baseline: Mapped[int] = mapped_column(Integer)
    confidence_baseline_concat: Mapped[str] = mapped_column(Text)
    used_engine: Mapped[str] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


# ── Engine & session ──────────────────────────────────────────

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, echo=False)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(_get_engine(), expire_on_commit=False)
    return _session_factory


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables (idempotent)."""
    if engine is None:
        url = get_settings().database_url
        if url.startswith("sqlite") and ":memory:" not in url:
            # URL format: sqlite+aiosqlite:///path/to/db
            db_path = Path(url.split("///", 1)[-1])
            db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = _get_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close the shared engine; the next access creates a fresh one."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
