"""Tests for the built-in reference processes, run directly."""

import threading

import pytest

from spine_wps.algorithm.base import ExecutionContext, JobCancelled, adapt
from spine_wps.algorithm.builtin import BUILTIN_ALGORITHMS, SleepAlgorithm
from spine_wps.core.errors import ExecutionFailure
from spine_wps.data import BoundingBoxData, ComplexData, LiteralData, ProcessInputs
from spine_wps.description.validation import problems_by_version


def _run(identifier, cancel_event=None, **values):
    inputs = ProcessInputs({key: (value,) for key, value in values.items()})
    context = ExecutionContext("job", identifier, inputs, cancel_event=cancel_event)
    algorithm = adapt(BUILTIN_ALGORITHMS[identifier]())
    return algorithm.execute(context), context


@pytest.mark.parametrize("identifier", list(BUILTIN_ALGORITHMS))
def test_descriptions_valid_for_every_version(identifier):
    description = adapt(BUILTIN_ALGORITHMS[identifier]()).describe()
    assert description.identifier == identifier
    assert problems_by_version(description, ["1.0.0", "2.0.0"]) == {"1.0.0": [], "2.0.0": []}


def test_echo():
    result, _ = _run("echo", msg=LiteralData("msg", "hi"))
    assert result == {"msg": "hi"}


def test_add():
    result, _ = _run("add", a=LiteralData("a", 1.5), b=LiteralData("b", 2.0))
    assert result == {"sum": 3.5}


def test_fail():
    with pytest.raises(ExecutionFailure) as info:
        _run("fail", message=LiteralData("message", "nope"))
    assert info.value.code == "IntentionalFailure"


def test_count_words_sets_partial_output():
    result, context = _run("count-words", text=ComplexData("text", "a b A"))
    assert context.outputs == {"count": 3}
    assert result == {"frequencies": {"a": 2, "b": 1}}


def test_expand_bbox():
    box = BoundingBoxData("bbox", (0.0, 0.0), (10.0, 10.0), "EPSG:3857")
    result, _ = _run("expand-bbox", bbox=box, distance=LiteralData("distance", 5.0))
    assert result["bbox"] == BoundingBoxData("bbox", (-5.0, -5.0), (15.0, 15.0), "EPSG:3857")


class TestSleep:
    def test_zero_seconds(self):
        result, _ = _run("sleep", seconds=LiteralData("seconds", 0.0))
        assert result == {"slept": 0.0}

    def test_reports_progress(self):
        seen = []
        inputs = ProcessInputs({"seconds": (LiteralData("seconds", 0.05),)})
        context = ExecutionContext("job", "sleep", inputs, on_progress=lambda p, m: seen.append(p))
        SleepAlgorithm().execute(context)
        assert seen
        assert seen[-1] == 100

    def test_cancelled_before_start(self):
        event = threading.Event()
        event.set()
        with pytest.raises(JobCancelled):
            _run("sleep", cancel_event=event, seconds=LiteralData("seconds", 10.0))
