"""Human-activity signal processing: sensor buffers, filters, signal images."""

from approx_har.har.buffer import NUM_AXES, NUM_READS, SensorBuffer
from approx_har.har.filters import FilterBank, LowPassFilter, median_filter
from approx_har.har.image import SIGNAL_IMAGE_SIZE, SignalImage, SignalImageBuilder
from approx_har.har.processor import HARSignalProcessor

__all__ = [
    "FilterBank",
    "HARSignalProcessor",
    "LowPassFilter",
    "NUM_AXES",
    "NUM_READS",
    "SIGNAL_IMAGE_SIZE",
    "SensorBuffer",
    "SignalImage",
    "SignalImageBuilder",
    "median_filter",
]
