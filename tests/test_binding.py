"""Tests for input binding and output rendering."""

import pytest

from spine_wps.algorithm.builtin import COUNT_WORDS, ECHO, EXPAND_BBOX, SLEEP
from spine_wps.binding import bind_inputs, check_output_definitions, render_outputs
from spine_wps.core.errors import (
    DuplicateOutputError,
    InvalidResponseModeError,
    MissingInputError,
    MissingOutputError,
    RenderError,
    TypeMismatchError,
    UnknownInputError,
    UnknownOutputError,
    UnsupportedFormatError,
)
from spine_wps.data import (
    BoundingBoxData,
    ComplexData,
    LiteralData,
    OutputDefinition,
    ResponseMode,
)
from spine_wps.description import Format, LiteralBuilder, LiteralType, ProcessBuilder
from spine_wps.io.codecs import APPLICATION_JSON, BBOX_FORMAT, TEXT_PLAIN, default_codecs

CODECS = default_codecs()


# =============================================================================
# bind_inputs
# =============================================================================


class TestBindInputs:
    def test_binds_in_declaration_order(self):
        inputs = bind_inputs(ECHO, [LiteralData("msg", "hi")]).unwrap()
        assert inputs.value("msg") == "hi"

    def test_unknown_input(self):
        error = bind_inputs(ECHO, [LiteralData("msg", "hi"), LiteralData("nope", 1)]).error
        assert isinstance(error, UnknownInputError)
        assert error.identifier == "nope"
        assert error.expected == ["msg"]

    def test_missing_required(self):
        error = bind_inputs(ECHO, []).error
        assert isinstance(error, MissingInputError)
        assert error.identifier == "msg"

    def test_optional_literal_default(self):
        inputs = bind_inputs(SLEEP, []).unwrap()
        assert inputs.value("seconds") == 1.0
        assert inputs.first("seconds").uom == "s"

    def test_optional_without_default_is_absent(self):
        description = (
            ProcessBuilder("p")
            .input(LiteralBuilder("tag", LiteralType.STRING).optional().build_input())
            .output(LiteralBuilder("out", LiteralType.STRING).build_output())
            .build()
        )
        assert "tag" not in bind_inputs(description, []).unwrap()

    def test_encoded_complex_is_decoded(self):
        inputs = bind_inputs(
            COUNT_WORDS, [ComplexData.raw("text", b"one two")], parser_factory=CODECS
        ).unwrap()
        item = inputs.first("text")
        assert item.value == "one two"
        assert item.encoded is False
        assert item.format == TEXT_PLAIN

    def test_encoded_complex_without_parser(self):
        error = bind_inputs(COUNT_WORDS, [ComplexData.raw("text", b"x")]).error
        assert isinstance(error, TypeMismatchError)

    def test_already_decoded_complex_passes_through(self):
        inputs = bind_inputs(COUNT_WORDS, [ComplexData("text", "a b c")]).unwrap()
        assert inputs.value("text") == "a b c"


# =============================================================================
# check_output_definitions
# =============================================================================


class TestCheckOutputDefinitions:
    def test_empty_document_means_all_outputs(self):
        definitions = check_output_definitions(
            COUNT_WORDS, [], ResponseMode.DOCUMENT, generator_factory=CODECS
        ).unwrap()
        assert [d.identifier for d in definitions] == ["count", "frequencies"]
        assert definitions[1].format == APPLICATION_JSON

    def test_unknown_output(self):
        error = check_output_definitions(ECHO, [OutputDefinition("nope")], ResponseMode.DOCUMENT).error
        assert isinstance(error, UnknownOutputError)

    def test_duplicate_output_rejected(self):
        definitions = [OutputDefinition("count"), OutputDefinition("frequencies"), OutputDefinition("count")]
        error = check_output_definitions(COUNT_WORDS, definitions, ResponseMode.DOCUMENT).error
        assert isinstance(error, DuplicateOutputError)
        assert error.details() == {"identifier": "count", "expected": 1, "actual": 2}

    @pytest.mark.parametrize("requested", [[], ["count", "frequencies"]])
    def test_raw_needs_exactly_one(self, requested):
        definitions = [OutputDefinition(i) for i in requested]
        error = check_output_definitions(COUNT_WORDS, definitions, ResponseMode.RAW).error
        assert isinstance(error, InvalidResponseModeError)
        assert error.requested_outputs == len(requested)

    def test_format_negotiation(self):
        definitions = check_output_definitions(
            COUNT_WORDS,
            [OutputDefinition("frequencies", Format("text/plain"))],
            ResponseMode.RAW,
            generator_factory=CODECS,
        ).unwrap()
        assert definitions[0].format == TEXT_PLAIN

    def test_unsupported_format(self):
        error = check_output_definitions(
            COUNT_WORDS, [OutputDefinition("frequencies", Format("image/png"))], ResponseMode.DOCUMENT
        ).error
        assert isinstance(error, UnsupportedFormatError)

    def test_literal_with_format_rejected(self):
        error = check_output_definitions(
            ECHO, [OutputDefinition("msg", TEXT_PLAIN)], ResponseMode.DOCUMENT
        ).error
        assert isinstance(error, UnsupportedFormatError)

    def test_bbox_output_uses_bbox_format(self):
        definitions = check_output_definitions(EXPAND_BBOX, [], ResponseMode.DOCUMENT).unwrap()
        assert definitions[0].format == BBOX_FORMAT


# =============================================================================
# render_outputs
# =============================================================================


class TestRenderOutputs:
    def _definitions(self, description, *ids):
        return check_output_definitions(
            description,
            [OutputDefinition(i) for i in ids],
            ResponseMode.DOCUMENT,
            generator_factory=CODECS,
        ).unwrap()

    def test_literal_rendered_as_text(self):
        (output,) = render_outputs(
            ECHO, self._definitions(ECHO, "msg"), {"msg": "hi"}, generator_factory=CODECS
        ).unwrap()
        assert output.value == "hi"
        assert output.content == b"hi"
        assert output.mime_type == "text/plain"
        assert output.data_type == "string"

    def test_literal_coerced(self):
        (count,) = render_outputs(
            COUNT_WORDS, self._definitions(COUNT_WORDS, "count"), {"count": 3.0}, generator_factory=CODECS
        ).unwrap()
        assert count.value == 3
        assert count.content == b"3"

    def test_literal_wrong_type(self):
        error = render_outputs(
            COUNT_WORDS, self._definitions(COUNT_WORDS, "count"), {"count": "many"}, generator_factory=CODECS
        ).error
        assert isinstance(error, RenderError)

    def test_complex_encoded(self):
        (freq,) = render_outputs(
            COUNT_WORDS,
            self._definitions(COUNT_WORDS, "frequencies"),
            {"frequencies": {"a": 2}},
            generator_factory=CODECS,
        ).unwrap()
        assert freq.content == b'{"a": 2}'
        assert freq.to_dict()["value"] == '{"a": 2}'

    def test_bbox_encoded_with_default_crs(self):
        (box,) = render_outputs(
            EXPAND_BBOX,
            self._definitions(EXPAND_BBOX, "bbox"),
            {"bbox": BoundingBoxData("bbox", (0, 0), (1, 1))},
            generator_factory=CODECS,
        ).unwrap()
        assert box.value.crs == "EPSG:3857"
        assert box.to_dict()["value"]["lowerCorner"] == [0, 0]

    def test_missing_output(self):
        error = render_outputs(
            ECHO, self._definitions(ECHO, "msg"), {}, generator_factory=CODECS
        ).error
        assert isinstance(error, MissingOutputError)
        assert error.identifier == "msg"

    def test_kind_mismatch(self):
        error = render_outputs(
            ECHO, self._definitions(ECHO, "msg"), {"msg": ComplexData("msg", "x")}, generator_factory=CODECS
        ).error
        assert isinstance(error, RenderError)

    def test_reference(self):
        (output,) = render_outputs(
            ECHO, self._definitions(ECHO, "msg"), {"msg": "hi"}, generator_factory=CODECS
        ).unwrap()
        ref = output.as_reference("http://x/j/msg")
        assert ref.by_reference
        assert ref.value is None
        assert ref.content == b"hi"
        assert ref.to_dict()["href"] == "http://x/j/msg"
