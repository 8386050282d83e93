"""Common contract of adaptation engines.

An adaptation engine picks the approximation configuration used for the
next inference call and updates itself from the observed result.  Using an
engine is a two-step affair so the caller can inspect a result before the
engine adapts::

    used = engine.configuration()
    result = engine.use_for(signal_image)   # no state change
    engine.act_upon(result.confidences, result.arg_max)

Variants do not share a base class; each one satisfies this protocol and
keeps its mutable control state in a single dataclass.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from approx_har.har.image import SignalImage
from approx_har.models import ApproximationConfiguration, InferenceResult


@runtime_checkable
class AdaptationEngine(Protocol):
    def name(self) -> str:
        """Stable identifier used in logs and trace records."""

    def configuration(self) -> ApproximationConfiguration:
        """Configuration the next :meth:`use_for` call will run under."""

    def use_for(self, signal_image: SignalImage) -> InferenceResult:
        """Classify *signal_image* under :meth:`configuration`."""

    def act_upon(self, confidences: Sequence[float], arg_max: int) -> None:
        """Update control state from an observed result."""


def observed_confidence(confidences: Sequence[float], arg_max: int) -> float:
    """Confidence of the predicted class, 0.0 when *arg_max* is out of range."""
    if 0 <= arg_max < len(confidences):
        return float(confidences[arg_max])
    return 0.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
