"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

import numpy as np
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from approx_har.config import Settings
from approx_har.har.image import SIGNAL_IMAGE_SIZE, SignalImage
from approx_har.inference.backend import Classifier
from approx_har.models import Classification
from approx_har.storage.database import init_db

NUM_CLASSES = 6


class ConfigAwareBackend:
    """Deterministic stand-in for the native network.

    The predicted class follows the first pixel of the image; its confidence
    drops by 0.05 per approximation step.
    """

    def __init__(self) -> None:
        self.calls: list[int] = []

    def infer(self, signal_image: SignalImage, configuration: int) -> list[float]:
        self.calls.append(configuration)
        top = int(abs(float(signal_image.values[0])) * 10) % NUM_CLASSES
        confidence = max(0.99 - 0.05 * configuration, 0.2)
        rest = (1.0 - confidence) / (NUM_CLASSES - 1)
        return [confidence if i == top else rest for i in range(NUM_CLASSES)]


class ScriptedBackend:
    """Returns pre-baked vectors in call order, raising where the script says so."""

    def __init__(self, script: Sequence[Sequence[float] | Exception]) -> None:
        self._script = list(script)
        self.calls = 0

    def infer(self, signal_image: SignalImage, configuration: int) -> list[float]:
        item = self._script[self.calls % len(self._script)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return list(item)


def make_image(value: float) -> SignalImage:
    return SignalImage(np.full(SIGNAL_IMAGE_SIZE, value, dtype=np.float32))


def make_classifications(
    values: Sequence[float | None],
    run_start: str = "2024-01-01T10:00:00.000000",
) -> list[Classification]:
    start = datetime(2024, 1, 1, 10, 0, 0)
    return [
        Classification(
            uid=i + 1,
            timestamp=start + timedelta(seconds=2.56 * i),
            run_start=run_start,
            signal_image=None if v is None else make_image(v).to_csv(),
        )
        for i, v in enumerate(values)
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        num_configurations=8,
        adaptation_confidence_threshold=0.9,
        _env_file=None,
    )


@pytest.fixture
def backend() -> ConfigAwareBackend:
    return ConfigAwareBackend()


@pytest.fixture
def classifier(backend: ConfigAwareBackend) -> Classifier:
    return Classifier(backend, num_classes=NUM_CLASSES)


@pytest_asyncio.fixture
async def db_session():
    """Async session bound to a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()
