"""Fixed-capacity accumulator for tri-axial sensor readings."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from approx_har.errors import CapacityExceeded
from approx_har.models import AxisOrder, SensorSample

NUM_READS = 128
NUM_AXES = 3


class SensorBuffer:
    """Intermediate storage for ``num_reads`` readings of ``num_axes`` channels.

    Values are stored interleaved (``[x, y, z, x, y, z, ...]``) after being
    reordered through ``axis_mapping``: logical axis ``i`` is read from
    position ``axis_mapping.get(i, i)`` of each pushed sample.  The mapping is
    expected to be a permutation, but this is not checked here.
    """

    def __init__(
        self,
        num_reads: int = NUM_READS,
        num_axes: int = NUM_AXES,
        axis_mapping: dict[int, int] | None = None,
    ) -> None:
        self._num_reads = num_reads
        self._num_axes = num_axes
        self._axis_mapping = dict(axis_mapping if axis_mapping is not None else AxisOrder.DEFAULT)
        self._data = np.zeros(num_reads * num_axes, dtype=np.float32)
        self._cursor = 0

    # ── State ─────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._data.size

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def num_reads(self) -> int:
        return self._num_reads

    @property
    def num_axes(self) -> int:
        return self._num_axes

    @property
    def axis_mapping(self) -> dict[int, int]:
        return dict(self._axis_mapping)

    def needs_data(self) -> bool:
        return self._cursor < self._data.size

    def is_full(self) -> bool:
        return not self.needs_data()

    # ── Mutation ──────────────────────────────────────────────

    def push(self, sample: SensorSample | Sequence[float]) -> None:
        """Append one reading.

        Raises :class:`CapacityExceeded` if the buffer is already full or if
        *sample* holds fewer than ``num_axes`` values.
        """
        if not self.needs_data():
            raise CapacityExceeded(
                f"Buffer already holds {self._num_reads} readings"
            )

        values = sample.as_tuple() if isinstance(sample, SensorSample) else tuple(sample)
        if len(values) < self._num_axes:
            raise CapacityExceeded(
                f"Expected at least {self._num_axes} values, got {len(values)}"
            )

        for i in range(self._num_axes):
            self._data[self._cursor + i] = values[self._axis_mapping.get(i, i)]
        self._cursor += self._num_axes

    def reset(self) -> None:
        """Rewind the cursor; stored values are overwritten by later pushes."""
        self._cursor = 0

    # ── Access ────────────────────────────────────────────────

    def snapshot(self) -> np.ndarray:
        """Return a ``(num_reads, num_axes)`` copy of the stored values."""
        return self._data.reshape(self._num_reads, self._num_axes).copy()
