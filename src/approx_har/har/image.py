"""Signal images: the 3x32x32 classifier input built from sensor windows."""

from __future__ import annotations

from typing import Iterator, Sequence

import numpy as np
import structlog

from approx_har.errors import IncompleteData
from approx_har.har.buffer import SensorBuffer
from approx_har.har.filters import FilterBank, median_filter

logger = structlog.get_logger(__name__)

# ── Layout ────────────────────────────────────────────────────

IMAGE_CHANNELS = 3
IMAGE_SIDE = 32
SIGNAL_IMAGE_SIZE = IMAGE_CHANNELS * IMAGE_SIDE * IMAGE_SIDE

CHANNEL_BODY_ACC = 0
CHANNEL_GYRO = 1
CHANNEL_TOTAL_ACC = 2

# Axis read by each row of an 8-row block: x, y, z, y, x, z, x, y
OUT_AXES = (0, 1, 2, 1, 0, 2, 0, 1)

MEDIAN_HALF_WIDTH = 1


class SignalImage:
    """Read-only flat vector of ``3 * 32 * 32`` float32 values."""

    __slots__ = ("_values",)

    def __init__(self, values: Sequence[float] | np.ndarray) -> None:
        arr = np.array(values, dtype=np.float32).reshape(-1)
        if arr.size != SIGNAL_IMAGE_SIZE:
            raise ValueError(
                f"A signal image holds {SIGNAL_IMAGE_SIZE} values, got {arr.size}"
            )
        arr.flags.writeable = False
        self._values = arr

    @property
    def values(self) -> np.ndarray:
        return self._values

    def channel(self, index: int) -> np.ndarray:
        """Return channel *index* as a read-only ``(32, 32)`` view."""
        if not 0 <= index < IMAGE_CHANNELS:
            raise IndexError(f"Channel {index} out of range")
        return self._values.reshape(IMAGE_CHANNELS, IMAGE_SIDE, IMAGE_SIDE)[index]

    # ── Serialisation ─────────────────────────────────────────

    def to_csv(self) -> str:
        return ",".join(str(v) for v in self._values.tolist())

    @classmethod
    def from_csv(cls, text: str) -> SignalImage:
        return cls([float(v) for v in text.split(",")])

    # ── Dunder ────────────────────────────────────────────────

    def __len__(self) -> int:
        return self._values.size

    def __iter__(self) -> Iterator[float]:
        return iter(self._values.tolist())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignalImage):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    def __hash__(self) -> int:
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        return f"SignalImage(size={self._values.size})"


def fill_channel(channel_data: np.ndarray) -> np.ndarray:
    """Lay a ``(128, 3)`` signal into a ``(32, 32)`` channel.

    The channel consists of four 8-row blocks; block ``f`` covers samples
    ``f*32 .. f*32+31`` and its rows read axes ``OUT_AXES`` in order.
    """
    data = np.asarray(channel_data)
    folds = IMAGE_SIDE * IMAGE_SIDE // (len(OUT_AXES) * IMAGE_SIDE)
    if data.shape[0] != folds * IMAGE_SIDE:
        raise ValueError(
            f"Expected {folds * IMAGE_SIDE} samples per axis, got {data.shape[0]}"
        )
    # (fold, col, axis) -> (fold, axis, col) -> pick the row schedule
    by_fold = data.reshape(folds, IMAGE_SIDE, data.shape[1]).transpose(0, 2, 1)
    return by_fold[:, list(OUT_AXES), :].reshape(IMAGE_SIDE, IMAGE_SIDE)


class SignalImageBuilder:
    """Turns a full accelerometer buffer and a full gyroscope buffer into a
    :class:`SignalImage`.

    The builder owns a :class:`FilterBank`, so its filter state continues
    from one image to the next within a processing session.
    """

    def __init__(self, filters: FilterBank, gravity_ms2: float = 9.807) -> None:
        self._filters = filters
        self._gravity = gravity_ms2

    @property
    def filters(self) -> FilterBank:
        return self._filters

    def build(self, accel: SensorBuffer, gyro: SensorBuffer) -> SignalImage:
        """Pre-process both buffers, reset them and return the signal image.

        Raises :class:`IncompleteData` if either buffer still needs data.
        """
        if accel.needs_data():
            raise IncompleteData("Signal image requested with missing accelerometer data")
        if gyro.needs_data():
            raise IncompleteData("Signal image requested with missing gyroscope data")

        total_acc = median_filter(accel.snapshot(), MEDIAN_HALF_WIDTH).astype(np.float64)
        gyro_data = median_filter(gyro.snapshot(), MEDIAN_HALF_WIDTH).astype(np.float64)

        # Data has been copied, the buffers can refill
        accel.reset()
        gyro.reset()

        # m/s² → g
        total_acc /= self._gravity

        total_acc = FilterBank.apply(self._filters.accel_noise, total_acc)
        gravity = FilterBank.apply(self._filters.accel_gravity, total_acc)
        body_acc = total_acc - gravity
        gyro_data = FilterBank.apply(self._filters.gyro_noise, gyro_data)

        image = np.empty((IMAGE_CHANNELS, IMAGE_SIDE, IMAGE_SIDE), dtype=np.float32)
        image[CHANNEL_BODY_ACC] = fill_channel(body_acc)
        image[CHANNEL_GYRO] = fill_channel(gyro_data)
        image[CHANNEL_TOTAL_ACC] = fill_channel(total_acc)

        logger.debug(
            "har.signal_image_built",
            body_acc_abs_max=float(np.abs(body_acc).max()),
            total_acc_mean=float(total_acc.mean()),
        )
        return SignalImage(image)
