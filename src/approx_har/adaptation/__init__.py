"""Adaptation engines — choose approximation configurations around inference.

Variants
--------
- :class:`NoAdaptation` — fixed configuration, the accuracy baseline.
- :class:`StateAdaptation` — discrete steps driven by confidence and
  prediction stability.
- :class:`KalmanAdaptation` — scalar Kalman filter over the ideal
  approximation level.
"""

from approx_har.adaptation.base import AdaptationEngine
from approx_har.adaptation.fixed import NoAdaptation
from approx_har.adaptation.kalman import KalmanAdaptation
from approx_har.adaptation.registry import available_engines, build_engine, build_engines
from approx_har.adaptation.state import StateAdaptation

__all__ = [
    "AdaptationEngine",
    "KalmanAdaptation",
    "NoAdaptation",
    "StateAdaptation",
    "available_engines",
    "build_engine",
    "build_engines",
]
