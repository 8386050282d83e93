from approx_har.inference.backend import Classifier, InferenceBackend, load_backend

__all__ = ["Classifier", "InferenceBackend", "load_backend"]
