"""Seam to the external inference engine.

The backend itself (a native, approximation-aware network) lives outside
this package.  It only has to satisfy :class:`InferenceBackend`.
"""

from __future__ import annotations

import importlib
import math
from typing import Any, Protocol, Sequence, runtime_checkable

import structlog

from approx_har.errors import InferenceFailure
from approx_har.har.image import SignalImage
from approx_har.models import ApproximationConfiguration, InferenceResult

logger = structlog.get_logger(__name__)


@runtime_checkable
class InferenceBackend(Protocol):
    """Runs the classifier on one signal image under one configuration.

    Must be deterministic for a fixed image and configuration.
    """

    def infer(
        self,
        signal_image: SignalImage,
        configuration: ApproximationConfiguration,
    ) -> Sequence[float]: ...


class Classifier:
    """Validating wrapper around an :class:`InferenceBackend`."""

    def __init__(self, backend: InferenceBackend, num_classes: int = 6) -> None:
        self._backend = backend
        self.num_classes = num_classes

    @property
    def backend(self) -> InferenceBackend:
        return self._backend

    def classify(
        self,
        signal_image: SignalImage,
        configuration: ApproximationConfiguration,
    ) -> InferenceResult:
        """Return confidences and arg-max for *signal_image*.

        Raises :class:`InferenceFailure` if the backend raises or returns a
        vector of the wrong length or with non-finite values.
        """
        try:
            raw = self._backend.infer(signal_image, configuration)
        except InferenceFailure:
            raise
        except Exception as exc:
            raise InferenceFailure(
                f"Inference backend failed under configuration {configuration}: {exc}"
            ) from exc

        confidences = [float(v) for v in raw]
        if len(confidences) != self.num_classes:
            raise InferenceFailure(
                f"Expected {self.num_classes} confidences, got {len(confidences)}"
            )
        if not all(math.isfinite(v) for v in confidences):
            raise InferenceFailure("Inference backend returned non-finite confidences")
        return InferenceResult.from_confidences(confidences)


def load_backend(path: str, **kwargs: Any) -> InferenceBackend:
    """Import a backend from ``"package.module:attribute"``.

    The attribute may be a backend instance, or a class / factory that is
    called with *kwargs* to produce one.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(
            f"Backend path {path!r} must look like 'package.module:attribute'"
        )

    module = importlib.import_module(module_name)
    try:
        target = getattr(module, attr)
    except AttributeError:
        raise ValueError(f"Module {module_name!r} has no attribute {attr!r}") from None

    backend = target
    if isinstance(target, type) or not isinstance(target, InferenceBackend):
        backend = target(**kwargs)
    if not isinstance(backend, InferenceBackend):
        raise TypeError(f"{path} did not produce an object with an infer() method")

    logger.info("inference.backend_loaded", path=path, backend=type(backend).__name__)
    return backend
