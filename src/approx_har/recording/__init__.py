from approx_har.recording.session import RawSample, RecordingSession, load_samples_csv

__all__ = ["RawSample", "RecordingSession", "load_samples_csv"]
