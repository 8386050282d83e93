"""Tests for recording sessions, including an end-to-end trace campaign."""

from __future__ import annotations

import time
from datetime import datetime, timedelta

import numpy as np
import pytest

from approx_har.adaptation import KalmanAdaptation, NoAdaptation, StateAdaptation
from approx_har.errors import InferenceFailure
from approx_har.har.buffer import NUM_READS
from approx_har.har.image import CHANNEL_TOTAL_ACC, SignalImage
from approx_har.har.processor import HARSignalProcessor
from approx_har.inference.backend import Classifier
from approx_har.models import SensorSample, SensorType
from approx_har.recording import RawSample, RecordingSession, load_samples_csv
from approx_har.storage.repository import ClassificationRepository, TraceClassificationRepository
from approx_har.trace import CampaignRunner

from conftest import ConfigAwareBackend

RUN = "2024-03-01T08:00:00.000000"


def stationary_stream(windows: int, extra_acc: int = 0) -> list[RawSample]:
    start = datetime(2024, 3, 1, 8, 0, 0)
    samples = []
    for i in range(windows * NUM_READS):
        ts = start + timedelta(milliseconds=20 * i)
        samples.append(RawSample(ts, SensorType.ACCELEROMETER, SensorSample(x=0.0, y=0.0, z=9.807)))
        samples.append(RawSample(ts, SensorType.GYROSCOPE, SensorSample(x=0.0, y=0.0, z=0.0)))
        # accelerometer running ahead of the gyroscope at the end of each window
        if (i + 1) % NUM_READS == 0:
            samples[-1:-1] = [
                RawSample(ts, SensorType.ACCELEROMETER, SensorSample(x=0.0, y=0.0, z=9.807))
                for _ in range(extra_acc)
            ]
    return samples


class TestLoadSamplesCsv:
    def test_reads_and_sorts(self, tmp_path):
        path = tmp_path / "samples.csv"
        path.write_text(
            "timestamp,sensor,x,y,z\n"
            "2024-03-01T08:00:00.040,gyr,0.1,0.2,0.3\n"
            "2024-03-01T08:00:00.000,ACC,1,2,3\n"
            "2024-03-01T08:00:00.020,acc,4,,6\n",
            encoding="utf-8",
        )
        samples = load_samples_csv(path)
        assert [s.sensor for s in samples] == [SensorType.ACCELEROMETER, SensorType.GYROSCOPE]
        assert samples[0].sample == SensorSample(x=1.0, y=2.0, z=3.0)
        assert samples[1].timestamp > samples[0].timestamp

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("timestamp,x,y,z\n", encoding="utf-8")
        with pytest.raises(ValueError, match="missing columns"):
            load_samples_csv(path)


class TestRecordingSession:
    @pytest.mark.asyncio
    async def test_one_classification_per_window(self, db_session, classifier, settings):
        session = RecordingSession(
            HARSignalProcessor(settings=settings),
            NoAdaptation(classifier),
            ClassificationRepository(db_session),
            RUN,
        )

        stored = await session.ingest(stationary_stream(windows=2))

        assert len(stored) == 2
        assert all(c.uid is not None for c in stored)
        assert all(c.used_engine == "NoAdaptation" for c in stored)
        image = SignalImage.from_csv(stored[0].signal_image)
        np.testing.assert_allclose(image.channel(CHANNEL_TOTAL_ACC)[2], 1.0, atol=1e-4)

    @pytest.mark.asyncio
    async def test_surplus_samples_dropped(self, db_session, classifier, settings):
        session = RecordingSession(
            HARSignalProcessor(settings=settings),
            NoAdaptation(classifier),
            ClassificationRepository(db_session),
            RUN,
        )
        # the surplus arrives after the accelerometer buffer filled but
        # before the gyroscope caught up, so it cannot be buffered
        stored = await session.ingest(stationary_stream(windows=1, extra_acc=3))
        assert len(stored) == 1
        assert session.dropped == 3

    @pytest.mark.asyncio
    async def test_images_can_be_omitted(self, db_session, classifier, settings):
        session = RecordingSession(
            HARSignalProcessor(settings=settings),
            NoAdaptation(classifier),
            ClassificationRepository(db_session),
            RUN,
            keep_signal_images=False,
        )
        stored = await session.ingest(stationary_stream(windows=1))
        assert stored[0].signal_image is None


@pytest.mark.asyncio
async def test_record_then_trace(db_session, classifier, settings):
    """A recorded run replayed through four engines yields 4 records per window."""
    source_repo = ClassificationRepository(db_session)
    trace_repo = TraceClassificationRepository(db_session)

    recording = RecordingSession(
        HARSignalProcessor(settings=settings), NoAdaptation(classifier), source_repo, RUN
    )
    await recording.ingest(stationary_stream(windows=3))

    engines = [
        StateAdaptation(classifier, 1),
        StateAdaptation(classifier, 2),
        KalmanAdaptation(classifier, 1),
        KalmanAdaptation(classifier, 2),
    ]
    runner = CampaignRunner(NoAdaptation(classifier), engines, source_repo, trace_repo)
    result = await runner.run(RUN)

    assert result.processed == 3
    stored = await trace_repo.get_by_trace_run(result.trace_run_start)
    assert stored == result.records
    assert len(stored) == 12


@pytest.mark.asyncio
async def test_slow_inference_times_out(db_session, settings):
    class SlowBackend(ConfigAwareBackend):
        def infer(self, signal_image, configuration):
            time.sleep(0.3)
            return super().infer(signal_image, configuration)

    repo = ClassificationRepository(db_session)
    session = RecordingSession(
        HARSignalProcessor(settings=settings),
        NoAdaptation(Classifier(SlowBackend())),
        repo,
        RUN,
        inference_timeout=0.05,
    )

    with pytest.raises(InferenceFailure, match="timed out") as info:
        await session.ingest(stationary_stream(windows=1))

    assert info.value.engine == "NoAdaptation"
    assert await repo.load_all_by_run_start(RUN) == []
