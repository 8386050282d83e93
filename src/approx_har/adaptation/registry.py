"""Engine registry — build adaptation engines from short spec strings.

Spec strings are ``"none"``, ``"state:<level>"`` or ``"kalman:<level>"``.
"""

from __future__ import annotations

from typing import Callable

from approx_har.adaptation.base import AdaptationEngine
from approx_har.adaptation.fixed import NoAdaptation
from approx_har.adaptation.kalman import KalmanAdaptation
from approx_har.adaptation.state import StateAdaptation
from approx_har.config import Settings, get_settings
from approx_har.inference.backend import Classifier

# ── Registry ──────────────────────────────────────────────────

EngineFactory = Callable[[Classifier, int, Settings], AdaptationEngine]


def _state(classifier: Classifier, level: int, settings: Settings) -> AdaptationEngine:
    return StateAdaptation(
        classifier,
        level,
        num_configurations=settings.num_configurations,
        threshold=settings.adaptation_confidence_threshold,
    )


def _kalman(classifier: Classifier, level: int, settings: Settings) -> AdaptationEngine:
    return KalmanAdaptation(
        classifier,
        level,
        num_configurations=settings.num_configurations,
        threshold=settings.adaptation_confidence_threshold,
        process_noise=settings.kalman_process_noise,
        measurement_noise=settings.kalman_measurement_noise,
    )


_REGISTRY: dict[str, EngineFactory] = {
    "state": _state,
    "kalman": _kalman,
}


def register_engine(kind: str, factory: EngineFactory) -> None:
    """Register a new level-parameterised engine kind."""
    _REGISTRY[kind] = factory


def available_engines() -> list[str]:
    return ["none", *_REGISTRY]


def build_engine(
    spec: str,
    classifier: Classifier,
    settings: Settings | None = None,
) -> AdaptationEngine:
    """Instantiate the engine described by *spec*.

    Raises :class:`ValueError` for unknown kinds or malformed levels.
    """
    settings = settings or get_settings()
    kind, _, level_text = spec.strip().lower().partition(":")
    if kind == "none":
        return NoAdaptation(classifier)

    factory = _REGISTRY.get(kind)
    if factory is None:
        raise ValueError(
            f"No engine registered for {kind!r}. Available: {available_engines()}"
        )
    try:
        level = int(level_text)
    except ValueError:
        raise ValueError(f"Engine spec {spec!r} needs an integer level, e.g. '{kind}:1'") from None
    return factory(classifier, level, settings)


def build_engines(
    specs: list[str],
    classifier: Classifier,
    settings: Settings | None = None,
) -> list[AdaptationEngine]:
    return [build_engine(s, classifier, settings) for s in specs]
