"""Tests for the inference seam and result helpers."""

from __future__ import annotations

import math

import pytest

from approx_har.errors import InferenceFailure
from approx_har.inference.backend import Classifier, InferenceBackend, load_backend
from approx_har.models import InferenceResult, arg_max, join_floats, split_floats

from conftest import ConfigAwareBackend, ScriptedBackend, make_image


class TestArgMax:
    def test_first_maximum_wins(self):
        assert arg_max([0.1, 0.4, 0.4, 0.1]) == 1

    def test_empty(self):
        assert arg_max([]) == -1
        assert InferenceResult.from_confidences([]).confidence == 0.0

    def test_confidence_of_top_class(self):
        result = InferenceResult.from_confidences([0.1, 0.7, 0.2])
        assert result.arg_max == 1
        assert result.confidence == 0.7


def test_float_concat_round_trip():
    values = [0.1, 1e-9, 0.333333333333]
    assert split_floats(join_floats(values)) == values
    assert split_floats("") == []


class TestClassifier:
    def test_valid_result(self):
        classifier = Classifier(ConfigAwareBackend())
        result = classifier.classify(make_image(0.2), 0)
        assert result.arg_max == 2
        assert result.confidence == pytest.approx(0.99)

    def test_backend_error_wrapped(self):
        classifier = Classifier(ScriptedBackend([RuntimeError("device lost")]))
        with pytest.raises(InferenceFailure, match="device lost") as info:
            classifier.classify(make_image(0.1), 4)
        assert "configuration 4" in str(info.value)
        assert isinstance(info.value.__cause__, RuntimeError)

    def test_wrong_length(self):
        classifier = Classifier(ScriptedBackend([[0.5, 0.5]]))
        with pytest.raises(InferenceFailure, match="Expected 6 confidences, got 2"):
            classifier.classify(make_image(0.1), 0)

    def test_non_finite(self):
        classifier = Classifier(ScriptedBackend([[math.nan, 0, 0, 0, 0, 1]]))
        with pytest.raises(InferenceFailure, match="non-finite"):
            classifier.classify(make_image(0.1), 0)

    def test_failure_context_in_message(self):
        exc = InferenceFailure("boom", index=3, engine="StateAdaptation-1")
        assert str(exc) == "boom (input=3, engine=StateAdaptation-1)"


class TestLoadBackend:
    @pytest.fixture
    def backend_module(self, tmp_path, monkeypatch):
        (tmp_path / "fake_npu.py").write_text(
            "class Npu:\n"
            "    def __init__(self, classes=6):\n"
            "        self.classes = classes\n"
            "    def infer(self, signal_image, configuration):\n"
            "        return [1.0] + [0.0] * (self.classes - 1)\n"
            "\n"
            "instance = Npu()\n"
            "not_a_backend = 42\n",
            encoding="utf-8",
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        return "fake_npu"

    def test_factory(self, backend_module):
        backend = load_backend(f"{backend_module}:Npu", classes=4)
        assert isinstance(backend, InferenceBackend)
        assert backend.classes == 4

    def test_instance(self, backend_module):
        backend = load_backend(f"{backend_module}:instance")
        assert backend.classes == 6

    def test_bad_path(self):
        with pytest.raises(ValueError, match="package.module:attribute"):
            load_backend("no_colon_here")

    def test_missing_attribute(self, backend_module):
        with pytest.raises(ValueError, match="no attribute"):
            load_backend(f"{backend_module}:Missing")
