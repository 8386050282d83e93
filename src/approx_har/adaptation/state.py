"""Discrete-state adaptation: step through configurations on each result."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import structlog

from approx_har.adaptation.base import clamp, observed_confidence
from approx_har.har.image import SignalImage
from approx_har.inference.backend import Classifier
from approx_har.models import ApproximationConfiguration, InferenceResult

logger = structlog.get_logger(__name__)


@dataclass
class StateAdaptationState:
    index: int = 0
    previous_arg_max: int | None = None
    steps: int = 0


class StateAdaptation:
    """Moves ``level`` configurations up or down after every observation.

    A result is trusted when its top confidence reaches ``threshold`` and
    its predicted class matches the previous prediction (the first
    observation only needs the confidence).  Trusted results move towards
    more aggressive approximation, the rest back towards exact inference.
    """

    def __init__(
        self,
        classifier: Classifier,
        level: int,
        *,
        num_configurations: int = 8,
        threshold: float = 0.9,
    ) -> None:
        if level < 1:
            raise ValueError("level must be at least 1")
        if num_configurations < 1:
            raise ValueError("num_configurations must be at least 1")
        self._classifier = classifier
        self.level = level
        self.num_configurations = num_configurations
        self.threshold = threshold
        self.state = StateAdaptationState()

    def name(self) -> str:
        return f"StateAdaptation-{self.level}"

    def configuration(self) -> ApproximationConfiguration:
        return self.state.index

    def use_for(self, signal_image: SignalImage) -> InferenceResult:
        return self._classifier.classify(signal_image, self.configuration())

    def act_upon(self, confidences: Sequence[float], arg_max: int) -> None:
        state = self.state
        confidence = observed_confidence(confidences, arg_max)
        stable = state.previous_arg_max is None or state.previous_arg_max == arg_max
        trusted = confidence >= self.threshold and stable

        step = self.level if trusted else -self.level
        state.index = int(clamp(state.index + step, 0, self.num_configurations - 1))
        state.previous_arg_max = arg_max
        state.steps += 1

        logger.debug(
            "adaptation.state_step",
            engine=self.name(),
            confidence=confidence,
            trusted=trusted,
            configuration=state.index,
        )
