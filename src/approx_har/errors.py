"""Exception types raised by the signal pipeline and trace campaigns."""

from __future__ import annotations


class ApproxHarError(Exception):
    """Base class for all errors raised by this package."""


# ── Sampling ──────────────────────────────────────────────────


class SamplingError(ApproxHarError):
    """Sensor data was pushed or consumed out of order."""


class CapacityExceeded(SamplingError):
    """A sample was pushed into a full buffer, or had too few axes."""


class IncompleteData(SamplingError):
    """A signal image was requested before both buffers were full."""


# ── Inference & campaigns ─────────────────────────────────────


class InferenceFailure(ApproxHarError):
    """The inference backend raised, timed out or returned a bad vector."""

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        engine: str | None = None,
    ) -> None:
        super().__init__(message)
        self.index = index
        self.engine = engine

    def __str__(self) -> str:
        context = []
        if self.index is not None:
            context.append(f"input={self.index}")
        if self.engine is not None:
            context.append(f"engine={self.engine}")
        base = super().__str__()
        return f"{base} ({', '.join(context)})" if context else base


class PersistenceFailure(ApproxHarError):
    """A batch of records could not be written."""


class CampaignCancelled(ApproxHarError):
    """A campaign was asked to stop before processing the next input."""
