"""Recording session — turns a raw sample stream into stored classifications.

This is the live half of the system: samples are fed into a
:class:`HARSignalProcessor`; every time both buffers fill up the resulting
signal image is classified and stored together with the image, so that
trace campaigns can replay it later.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable

import pandas as pd
import structlog

from approx_har.adaptation.base import AdaptationEngine
from approx_har.errors import InferenceFailure
from approx_har.har.image import SignalImage
from approx_har.har.processor import HARSignalProcessor
from approx_har.models import Classification, InferenceResult, SensorSample, SensorType
from approx_har.storage.repository import ClassificationRepository

logger = structlog.get_logger(__name__)

_CSV_COLUMNS = ["timestamp", "sensor", "x", "y", "z"]


@dataclass(frozen=True)
class RawSample:
    """One timestamped reading from one sensor."""
    timestamp: datetime
    sensor: SensorType
    sample: SensorSample


def load_samples_csv(path: str | Path) -> list[RawSample]:
    """Read raw samples from a CSV with columns ``timestamp, sensor, x, y, z``.

    ``sensor`` is ``acc`` or ``gyr``.  Rows are returned in timestamp order;
    rows with missing values are dropped.
    """
    df = pd.read_csv(path)
    missing = [c for c in _CSV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")

    before = len(df)
    df = df.dropna(subset=_CSV_COLUMNS)
    if len(df) < before:
        logger.warning("recording.rows_dropped", path=str(path), dropped=before - len(df))

    df["timestamp"] = pd.to_datetime(df["timestamp"])
    df["sensor"] = df["sensor"].str.strip().str.lower()
    df = df.sort_values("timestamp", kind="stable")

    return [
        RawSample(
            timestamp=row.timestamp.to_pydatetime(),
            sensor=SensorType(row.sensor),
            sample=SensorSample(x=row.x, y=row.y, z=row.z),
        )
        for row in df.itertuples(index=False)
    ]


class RecordingSession:
    """Feeds samples into a processor and records a classification per window.

    Parameters
    ----------
    processor : HARSignalProcessor
        Owns the sample buffers and filter state for this session.
    engine : AdaptationEngine
        Engine used for the live classification of each window.
    repo : ClassificationRepository
        Stores the classifications (with their signal images).
    run_start : str
        Run identifier shared by every classification of the session.
    keep_signal_images : bool
        Store the signal image CSV with each classification.
    inference_timeout : float | None
        Seconds allowed per inference call; ``None`` disables the limit.
    """

    def __init__(
        self,
        processor: HARSignalProcessor,
        engine: AdaptationEngine,
        repo: ClassificationRepository,
        run_start: str,
        *,
        keep_signal_images: bool = True,
        inference_timeout: float | None = None,
    ) -> None:
        self._processor = processor
        self._engine = engine
        self._repo = repo
        self.run_start = run_start
        self._keep_images = keep_signal_images
        self._timeout = inference_timeout
        self.dropped = 0

    def offer(self, raw: RawSample) -> bool:
        """Push *raw* into the processor if its sensor still needs data.

        Returns ``False`` when the sample was dropped because that sensor's
        buffer is already full.
        """
        if raw.sensor is SensorType.ACCELEROMETER:
            if not self._processor.needs_acc_data():
                return False
            self._processor.add_acc_data(raw.sample)
        else:
            if not self._processor.needs_gyr_data():
                return False
            self._processor.add_gyr_data(raw.sample)
        return True

    async def ingest(self, samples: Iterable[RawSample]) -> list[Classification]:
        """Process *samples* and return the stored classifications."""
        stored: list[Classification] = []
        for raw in samples:
            if not self.offer(raw):
                self.dropped += 1
                continue
            if self._processor.is_full():
                stored.append(await self._classify_window(raw.timestamp))

        logger.info(
            "recording.ingest_finished",
            run_start=self.run_start,
            classifications=len(stored),
            dropped=self.dropped,
        )
        return stored

    async def _use(self, image: SignalImage) -> InferenceResult:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._engine.use_for, image), self._timeout)
        except TimeoutError:
            raise InferenceFailure(
                f"Inference timed out after {self._timeout}s", engine=self._engine.name()
            ) from None

    async def _classify_window(self, timestamp: datetime) -> Classification:
        image = self._processor.signal_image()
        used_config = self._engine.configuration()
        result = await self._use(image)
        self._engine.act_upon(result.confidences, result.arg_max)

        classification = Classification(
            timestamp=timestamp,
            run_start=self.run_start,
            signal_image=image.to_csv() if self._keep_images else None,
            arg_max=result.arg_max,
            confidences=result.confidences,
            used_config=used_config,
            used_engine=self._engine.name(),
        )
        saved = await self._repo.save(classification)
        logger.debug(
            "recording.window_classified",
            uid=saved.uid,
            arg_max=result.arg_max,
            confidence=result.confidence,
        )
        return saved
