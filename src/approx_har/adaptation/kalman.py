"""Kalman-filter adaptation over a latent "ideal approximation level".

State: scalar estimate ``x`` (in configuration units) and its variance ``P``.

Each observation is turned into a measurement of the ideal level: the
configuration that was just used, shifted by how far the observed top
confidence lies from ``threshold`` (scaled to the configuration range).
Confident results therefore pull the estimate upwards, unsure ones pull it
down, and the filter smooths the sequence.  ``level`` scales the process
noise, so higher levels let the estimate move faster.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import structlog

from approx_har.adaptation.base import clamp, observed_confidence
from approx_har.har.image import SignalImage
from approx_har.inference.backend import Classifier
from approx_har.models import ApproximationConfiguration, InferenceResult

logger = structlog.get_logger(__name__)


@dataclass
class KalmanState:
    x: float = 0.0
    P: float = 1.0
    steps: int = 0


class KalmanAdaptation:
    def __init__(
        self,
        classifier: Classifier,
        level: int,
        *,
        num_configurations: int = 8,
        threshold: float = 0.9,
        process_noise: float = 0.05,
        measurement_noise: float = 1.0,
    ) -> None:
        if level < 1:
            raise ValueError("level must be at least 1")
        if num_configurations < 1:
            raise ValueError("num_configurations must be at least 1")
        if measurement_noise <= 0:
            raise ValueError("measurement_noise must be positive")
        self._classifier = classifier
        self.level = level
        self.num_configurations = num_configurations
        self.threshold = threshold
        self.Q = process_noise * level
        self.R = measurement_noise
        self.state = KalmanState()

    def name(self) -> str:
        return f"KalmanAdaptation-{self.level}"

    def configuration(self) -> ApproximationConfiguration:
        top = self.num_configurations - 1
        return int(clamp(math.floor(self.state.x + 0.5), 0, top))

    def use_for(self, signal_image: SignalImage) -> InferenceResult:
        return self._classifier.classify(signal_image, self.configuration())

    def act_upon(self, confidences: Sequence[float], arg_max: int) -> None:
        top = self.num_configurations - 1
        used = self.configuration()
        confidence = observed_confidence(confidences, arg_max)
        z = used + (confidence - self.threshold) * top

        self.predict()
        self.update(z)
        self.state.x = clamp(self.state.x, 0.0, float(top))
        self.state.steps += 1

        logger.debug(
            "adaptation.kalman_step",
            engine=self.name(),
            measurement=z,
            estimate=self.state.x,
            variance=self.state.P,
            configuration=self.configuration(),
        )

    # ── Filter steps ──────────────────────────────────────────

    def predict(self) -> None:
        self.state.P = self.state.P + self.Q

    def update(self, z: float) -> None:
        K = self.state.P / (self.state.P + self.R)
        self.state.x = self.state.x + K * (z - self.state.x)
        self.state.P = (1.0 - K) * self.state.P

    def reset(self) -> None:
        self.state = KalmanState()
