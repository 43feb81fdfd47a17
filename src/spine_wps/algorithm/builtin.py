"""Built-in reference processes.

WHY
───
New users and integration tests need concrete processes to exercise the
registry and the execution stack.  Hosts include them through
``BUILTIN_ALGORITHMS`` (see ``source_from_settings``); nothing is
registered on import.

ARCHITECTURE
────────────
::

    echo         ─ string msg -> msg                       (sync)
    add          ─ a + b as doubles                        (sync)
    sleep        ─ wait N seconds, honouring cancellation  (sync + async)
    fail         ─ always fails with ExecutionFailure      (sync)
    count-words  ─ text/plain in -> count + JSON word list (sync)
    expand-bbox  ─ grow a bounding box by a distance       (sync)

Related modules:
    base.py     — Algorithm protocol and @algorithm adapter
    sources.py  — StaticSource these are served from
"""

from __future__ import annotations

import time
from collections import Counter
from typing import Any

from spine_wps.algorithm.base import ExecutionContext, algorithm
from spine_wps.core.errors import ExecutionFailure
from spine_wps.core.logging import get_logger
from spine_wps.data import BoundingBoxData, ProcessInputs
from spine_wps.description.builders import (
    BoundingBoxBuilder,
    ComplexBuilder,
    LiteralBuilder,
    ProcessBuilder,
)
from spine_wps.description.domains import AllowedValues, LiteralDataDomain, ValueRange
from spine_wps.description.literal import LiteralType
from spine_wps.description.model import ProcessDescription
from spine_wps.io.codecs import APPLICATION_JSON, TEXT_PLAIN

log = get_logger(__name__)


# ── echo ─────────────────────────────────────────────────────────────────

ECHO = (
    ProcessBuilder("echo")
    .title("Echo")
    .abstract("Returns the input message unchanged.")
    .keyword("test", "reference")
    .input(LiteralBuilder("msg", LiteralType.STRING).title("Message").build_input())
    .output(LiteralBuilder("msg", LiteralType.STRING).title("Message").build_output())
    .build()
)


@algorithm(ECHO)
def echo(inputs: ProcessInputs, context: ExecutionContext) -> dict[str, Any]:
    """Echo - returns the message it was given."""
    return {"msg": inputs.value("msg")}


# ── add ──────────────────────────────────────────────────────────────────

ADD = (
    ProcessBuilder("add")
    .title("Add")
    .abstract("Adds two numbers.")
    .input(LiteralBuilder("a", LiteralType.DOUBLE).build_input())
    .input(LiteralBuilder("b", LiteralType.DOUBLE).build_input())
    .output(LiteralBuilder("sum", LiteralType.DOUBLE).build_output())
    .build()
)


@algorithm(ADD)
def add(inputs: ProcessInputs, context: ExecutionContext) -> dict[str, Any]:
    a, b = inputs.value("a"), inputs.value("b")
    log.debug("add.computed", a=a, b=b)
    return {"sum": a + b}


# ── sleep ────────────────────────────────────────────────────────────────

SLEEP = (
    ProcessBuilder("sleep")
    .title("Sleep")
    .abstract("Waits for a number of seconds, reporting progress.")
    .keyword("test", "long-running")
    .input(
        LiteralBuilder("seconds", LiteralType.DOUBLE)
        .range(0, 3600)
        .uom("s")
        .domain(LiteralDataDomain(AllowedValues(ranges=(ValueRange(0, 60),)), LiteralType.DOUBLE, uom="min"))
        .default(1.0)
        .optional()
        .build_input()
    )
    .output(LiteralBuilder("slept", LiteralType.DOUBLE).uom("s").build_output())
    .execution(sync=True, async_=True)
    .build()
)


class SleepAlgorithm:
    """Sleep in small steps, checking for cancellation between them."""

    step = 0.01

    def describe(self) -> ProcessDescription:
        return SLEEP

    def execute(self, context: ExecutionContext) -> dict[str, Any]:
        seconds = context.inputs.value("seconds", 1.0)
        started = time.monotonic()
        elapsed = 0.0
        while elapsed < seconds:
            context.checkpoint()
            time.sleep(min(self.step, seconds - elapsed))
            elapsed = time.monotonic() - started
            context.report_progress(int(100 * min(elapsed / seconds, 1.0)), f"slept {elapsed:.2f}s")
        return {"slept": round(elapsed, 3)}


# ── fail ─────────────────────────────────────────────────────────────────

FAIL = (
    ProcessBuilder("fail")
    .title("Fail")
    .abstract("Always fails; exercises failure reporting.")
    .keyword("test")
    .input(LiteralBuilder("message", LiteralType.STRING).default("intentional failure").optional().build_input())
    .output(LiteralBuilder("never", LiteralType.STRING).build_output())
    .build()
)


@algorithm(FAIL)
def fail(inputs: ProcessInputs, context: ExecutionContext) -> dict[str, Any]:
    raise ExecutionFailure(inputs.value("message"), code="IntentionalFailure")


# ── count-words ──────────────────────────────────────────────────────────

COUNT_WORDS = (
    ProcessBuilder("count-words")
    .title("Count words")
    .abstract("Counts the words of a text document.")
    .input(ComplexBuilder("text", TEXT_PLAIN).build_input())
    .output(LiteralBuilder("count", LiteralType.INTEGER).build_output())
    .output(ComplexBuilder("frequencies", APPLICATION_JSON).supported_format(TEXT_PLAIN).build_output())
    .build()
)


@algorithm(COUNT_WORDS)
def count_words(inputs: ProcessInputs, context: ExecutionContext) -> dict[str, Any]:
    words = str(inputs.value("text")).split()
    context.set_output("count", len(words))
    context.checkpoint()
    return {"frequencies": dict(Counter(w.lower() for w in words).most_common())}


# ── expand-bbox ──────────────────────────────────────────────────────────

EXPAND_BBOX = (
    ProcessBuilder("expand-bbox")
    .title("Expand bounding box")
    .abstract("Grows a bounding box by a distance on every side.")
    .input(BoundingBoxBuilder("bbox", "EPSG:3857").supported_crs("EPSG:32633").build_input())
    .input(LiteralBuilder("distance", LiteralType.DOUBLE).range(0).uom("m").build_input())
    .output(BoundingBoxBuilder("bbox", "EPSG:3857").supported_crs("EPSG:32633").build_output())
    .build()
)


@algorithm(EXPAND_BBOX)
def expand_bbox(inputs: ProcessInputs, context: ExecutionContext) -> dict[str, Any]:
    box: BoundingBoxData = inputs.value("bbox")
    distance = inputs.value("distance")
    return {
        "bbox": BoundingBoxData(
            "bbox",
            tuple(c - distance for c in box.lower_corner),
            tuple(c + distance for c in box.upper_corner),
            box.crs,
        )
    }


BUILTIN_ALGORITHMS = {
    "echo": lambda: echo,
    "add": lambda: add,
    "sleep": SleepAlgorithm,
    "fail": lambda: fail,
    "count-words": lambda: count_words,
    "expand-bbox": lambda: expand_bbox,
}


__all__ = ["BUILTIN_ALGORITHMS", "SleepAlgorithm"]
