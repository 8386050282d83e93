"""Digital filters applied to raw inertial signals.

Two kinds of filtering happen before a signal image is assembled:

1. **Median smoothing** — a short centred window per axis removes isolated
   spikes.  Window positions that fall outside the recording reuse the
   nearest in-range sample of the same axis (edge replication).
2. **Butterworth low-pass** — causal IIR filters, one independent instance
   per axis, applied forward-only with the filter state carried between
   calls.  Coefficients depend only on order, cutoff and sample rate.
"""

from __future__ import annotations

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from scipy import signal

# ── Constants ─────────────────────────────────────────────────

FILTER_ORDER = 3
NOISE_CUTOFF_HZ = 20.0
GRAVITY_CUTOFF_HZ = 0.3


# ── Median filter ─────────────────────────────────────────────


def median_filter(values: np.ndarray, half_width: int = 1) -> np.ndarray:
    """Median-filter each column of *values* independently.

    Parameters
    ----------
    values:
        Array of shape ``(num_reads, num_axes)``.
    half_width:
        Samples taken on each side of the centre; the window holds
        ``2 * half_width + 1`` samples.

    Returns
    -------
    np.ndarray
        A new array of the same shape and dtype.
    """
    data = np.asarray(values)
    if data.ndim != 2:
        raise ValueError(f"Expected a 2-D (reads, axes) array, got shape {data.shape}")
    if half_width < 0:
        raise ValueError("half_width must be non-negative")
    if half_width == 0 or data.shape[0] == 0:
        return data.copy()

    padded = np.pad(data, ((half_width, half_width), (0, 0)), mode="edge")
    windows = sliding_window_view(padded, 2 * half_width + 1, axis=0)
    return np.median(windows, axis=-1).astype(data.dtype)


# ── Low-pass filter ───────────────────────────────────────────


class LowPassFilter:
    """Stateful Butterworth low-pass filter for a single channel.

    When *prime* is true the state is initialised, on the first sample the
    filter sees, to the steady-state response for that sample, so a constant
    input passes through unchanged.  Otherwise the filter starts from rest.
    """

    def __init__(
        self,
        cutoff_hz: float,
        sample_rate_hz: float,
        order: int = FILTER_ORDER,
        *,
        prime: bool = True,
    ) -> None:
        if not 0 < cutoff_hz < sample_rate_hz / 2:
            raise ValueError(
                f"Cutoff {cutoff_hz} Hz must lie in (0, {sample_rate_hz / 2}) Hz"
            )
        self.cutoff_hz = cutoff_hz
        self.sample_rate_hz = sample_rate_hz
        self.order = order
        self._prime = prime
        self._sos = signal.butter(order, cutoff_hz, btype="low", fs=sample_rate_hz, output="sos")
        self._zi_step = signal.sosfilt_zi(self._sos)
        self._zi: np.ndarray | None = None

    def filter(self, values: np.ndarray) -> np.ndarray:
        """Filter a block of samples, continuing from the previous block."""
        x = np.asarray(values, dtype=np.float64)
        if x.size == 0:
            return x.copy()
        if self._zi is None:
            self._zi = self._zi_step * x[0] if self._prime else np.zeros_like(self._zi_step)
        y, self._zi = signal.sosfilt(self._sos, x, zi=self._zi)
        return y

    def reset(self) -> None:
        self._zi = None


class FilterBank:
    """Nine independent per-axis filters used to build one signal image.

    - accelerometer, 20 Hz (noise removal → total acceleration)
    - accelerometer, 0.3 Hz (gravity estimate)
    - gyroscope, 20 Hz
    """

    def __init__(
        self,
        sample_rate_hz: float,
        num_axes: int = 3,
        *,
        prime: bool = True,
    ) -> None:
        def bank(cutoff: float) -> list[LowPassFilter]:
            return [
                LowPassFilter(cutoff, sample_rate_hz, prime=prime)
                for _ in range(num_axes)
            ]

        self.sample_rate_hz = sample_rate_hz
        self.accel_noise = bank(NOISE_CUTOFF_HZ)
        self.accel_gravity = bank(GRAVITY_CUTOFF_HZ)
        self.gyro_noise = bank(NOISE_CUTOFF_HZ)

    @staticmethod
    def apply(filters: list[LowPassFilter], values: np.ndarray) -> np.ndarray:
        """Filter column ``i`` of *values* with ``filters[i]``; returns a new array."""
        data = np.asarray(values, dtype=np.float64)
        if data.shape[1] != len(filters):
            raise ValueError(
                f"Expected {len(filters)} axes, got {data.shape[1]}"
            )
        out = np.empty_like(data)
        for axis, f in enumerate(filters):
            out[:, axis] = f.filter(data[:, axis])
        return out

    def reset(self) -> None:
        for f in (*self.accel_noise, *self.accel_gravity, *self.gyro_noise):
            f.reset()
