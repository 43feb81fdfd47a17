"""Parser and generator collaborators for complex data."""

from spine_wps.io.codecs import (
    APPLICATION_JSON,
    BBOX_FORMAT,
    TEXT_PLAIN,
    CodecRegistry,
    GeneratorFactory,
    ParserFactory,
    default_codecs,
)

__all__ = [
    "APPLICATION_JSON",
    "BBOX_FORMAT",
    "TEXT_PLAIN",
    "CodecRegistry",
    "GeneratorFactory",
    "ParserFactory",
    "default_codecs",
]
