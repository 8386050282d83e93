"""Baseline engine: one configuration for its whole lifetime."""

from __future__ import annotations

from typing import Sequence

from approx_har.har.image import SignalImage
from approx_har.inference.backend import Classifier
from approx_har.models import ApproximationConfiguration, InferenceResult


class NoAdaptation:
    """Always classifies under the same configuration (exact by default)."""

    def __init__(self, classifier: Classifier, configuration: ApproximationConfiguration = 0) -> None:
        self._classifier = classifier
        self._configuration = configuration

    def name(self) -> str:
        return "NoAdaptation"

    def configuration(self) -> ApproximationConfiguration:
        return self._configuration

    def use_for(self, signal_image: SignalImage) -> InferenceResult:
        return self._classifier.classify(signal_image, self._configuration)

    def act_upon(self, confidences: Sequence[float], arg_max: int) -> None:
        pass
