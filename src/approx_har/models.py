"""Shared Pydantic models used across the framework."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field

# An opaque fidelity/cost trade-off point understood by the inference backend.
# 0 is exact inference; larger values approximate more aggressively.
ApproximationConfiguration = int

# ── Constants ─────────────────────────────────────────────────

DATE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp the way run identifiers are stored."""
    return ts.strftime(DATE_TIME_FORMAT)


# ── Enums ─────────────────────────────────────────────────────


class SensorType(str, Enum):
    """Inertial sensors feeding the signal processor."""
    ACCELEROMETER = "acc"
    GYROSCOPE = "gyr"


class AxisOrder:
    """Axis remapping presets (logical axis -> physical axis)."""

    DEFAULT: dict[int, int] = {0: 0, 1: 1, 2: 2}
    PORTRAIT_PHONE: dict[int, int] = {0: 1, 1: 2, 2: 0}

    @classmethod
    def by_name(cls, name: str) -> dict[int, int]:
        presets = {"default": cls.DEFAULT, "portrait_phone": cls.PORTRAIT_PHONE}
        try:
            return dict(presets[name])
        except KeyError:
            raise ValueError(
                f"Unknown axis order {name!r}. Available: {sorted(presets)}"
            ) from None


# ── Data transfer objects ─────────────────────────────────────


class SensorSample(BaseModel):
    """One x/y/z reading of one inertial sensor."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


class InferenceResult(BaseModel):
    """Class-confidence vector returned by one inference call."""
    model_config = ConfigDict(frozen=True)

    confidences: list[float]
    arg_max: int

    @classmethod
    def from_confidences(cls, confidences: Sequence[float]) -> InferenceResult:
        values = [float(c) for c in confidences]
        return cls(confidences=values, arg_max=arg_max(values))

    @property
    def confidence(self) -> float:
        """Confidence of the predicted class (0.0 for an empty vector)."""
        if self.arg_max < 0:
            return 0.0
        return self.confidences[self.arg_max]


def arg_max(values: Sequence[float]) -> int:
    """Index of the first maximum, or -1 if *values* is empty."""
    best = -1
    for i, v in enumerate(values):
        if best < 0 or v > values[best]:
            best = i
    return best


def join_floats(values: Sequence[float]) -> str:
    return ",".join(str(float(v)) for v in values)


def split_floats(text: str) -> list[float]:
    if not text:
        return []
    return [float(v) for v in text.split(",")]


class Classification(BaseModel):
    """A classification recorded during a live run; source of trace campaigns."""
    uid: int | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    run_start: str
    signal_image: str | None = None  # comma-joined signal image, None if not kept
    arg_max: int = -1
    confidences: list[float] = Field(default_factory=list)
    used_config: ApproximationConfiguration = 0
    used_engine: str = ""


class TraceRecord(BaseModel):
    """One engine's result for one recorded input, next to the baseline result."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    run_start: str
    trace_run_start: str
    used_config: ApproximationConfiguration
    arg_max: int
    confidences: list[float]
    arg_max_baseline: int
    confidences_baseline: list[float]
    used_engine: str
