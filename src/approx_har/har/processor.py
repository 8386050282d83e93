"""Live sensor front-end: accumulates samples and emits signal images."""

from __future__ import annotations

import structlog

from approx_har.config import Settings, get_settings
from approx_har.errors import CapacityExceeded
from approx_har.har.buffer import NUM_AXES, NUM_READS, SensorBuffer
from approx_har.har.filters import FilterBank
from approx_har.har.image import SignalImage, SignalImageBuilder
from approx_har.models import AxisOrder, SensorSample

logger = structlog.get_logger(__name__)


class HARSignalProcessor:
    """Transforms raw accelerometer / gyroscope readings into signal images.

    One processor corresponds to one processing session: its buffers and
    filter bank are created here and live as long as the processor.

    Usage::

        processor = HARSignalProcessor(AxisOrder.PORTRAIT_PHONE)
        while not processor.is_full():
            if processor.needs_acc_data():
                processor.add_acc_data(next_acc())
            if processor.needs_gyr_data():
                processor.add_gyr_data(next_gyr())
        image = processor.signal_image()
    """

    def __init__(
        self,
        axis_mapping: dict[int, int] | None = None,
        *,
        sample_rate_hz: float | None = None,
        gravity_ms2: float | None = None,
        prime_filters: bool | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        mapping = axis_mapping if axis_mapping is not None else AxisOrder.by_name(settings.sensor_axis_order)
        if sorted(mapping.get(i, i) for i in range(NUM_AXES)) != list(range(NUM_AXES)):
            logger.warning("har.axis_mapping_not_permutation", mapping=mapping)

        self.sample_rate_hz = settings.sample_rate_hz if sample_rate_hz is None else sample_rate_hz
        self._accel = SensorBuffer(NUM_READS, NUM_AXES, mapping)
        self._gyro = SensorBuffer(NUM_READS, NUM_AXES, mapping)
        self._builder = SignalImageBuilder(
            FilterBank(
                self.sample_rate_hz,
                NUM_AXES,
                prime=settings.filter_prime_steady_state if prime_filters is None else prime_filters,
            ),
            gravity_ms2=settings.gravity_ms2 if gravity_ms2 is None else gravity_ms2,
        )

    # ── Sensor input ──────────────────────────────────────────

    def reset(self) -> None:
        """Clear both sample buffers and discard the filter state."""
        self._accel.reset()
        self._gyro.reset()
        self._builder.filters.reset()

    def is_full(self) -> bool:
        return not self.needs_acc_data() and not self.needs_gyr_data()

    def needs_acc_data(self) -> bool:
        return self._accel.needs_data()

    def needs_gyr_data(self) -> bool:
        return self._gyro.needs_data()

    def add_acc_data(self, sample: SensorSample) -> None:
        if not self.needs_acc_data():
            raise CapacityExceeded("Accelerometer data is already sufficient")
        self._accel.push(sample)

    def add_gyr_data(self, sample: SensorSample) -> None:
        if not self.needs_gyr_data():
            raise CapacityExceeded("Gyroscope data is already sufficient")
        self._gyro.push(sample)

    # ── Output ────────────────────────────────────────────────

    def signal_image(self) -> SignalImage:
        """Pre-process buffered data, reset collection and return the image.

        Raises :class:`~approx_har.errors.IncompleteData` when either sensor
        still needs readings.
        """
        return self._builder.build(self._accel, self._gyro)
