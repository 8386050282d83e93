"""Signal processing and adaptive approximate-inference tracing for human activity recognition."""

__version__ = "0.1.0"
