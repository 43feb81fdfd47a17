"""
Format decoders and encoders for complex and bounding-box data.

Manifesto:
    The engine never interprets complex bytes itself.  Decoding a caller's
    payload and encoding an algorithm's result are delegated to a
    ``ParserFactory`` / ``GeneratorFactory`` chosen by format, so hosts can
    plug in raster, vector or any other codecs without touching the core.

Architecture:
    ::

        ParserFactory.decode(format, raw, kind)      raw bytes  -> value
        GeneratorFactory.encode(format, data)        ProcessData -> bytes

        CodecRegistry  (implements both)
          ├── text/plain         str   <-> UTF-8 bytes
          ├── application/json   obj   <-> JSON
          └── bounding boxes     BoundingBoxData -> JSON (BBOX_FORMAT)

Examples:
    >>> codecs = default_codecs()
    >>> codecs.encode(TEXT_PLAIN, ComplexData("out", "hi"))
    b'hi'

Tags:
    spine-wps, io, codecs, parser, generator

Doc-Types:
    api-reference
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from spine_wps.data import BoundingBoxData, ProcessData
from spine_wps.description.model import DataKind, Format

TEXT_PLAIN = Format("text/plain", encoding="UTF-8")
APPLICATION_JSON = Format("application/json", encoding="UTF-8")
BBOX_FORMAT = Format("application/json", encoding="UTF-8", schema="bbox")

Decoder = Callable[[bytes, Format], Any]
Encoder = Callable[[Any, Format], bytes]


@runtime_checkable
class ParserFactory(Protocol):
    """Decodes caller-supplied bytes into a value for an algorithm."""

    def supports_decode(self, format: Format, kind: DataKind) -> bool: ...

    def decode(self, format: Format, raw: bytes | str, kind: DataKind) -> Any: ...


@runtime_checkable
class GeneratorFactory(Protocol):
    """Encodes an algorithm-produced value into bytes for delivery."""

    def supports_encode(self, format: Format, kind: DataKind) -> bool: ...

    def encode(self, format: Format, data: ProcessData) -> bytes: ...


@dataclass(frozen=True)
class Codec:
    mime_type: str
    kind: DataKind
    decoder: Decoder | None = None
    encoder: Encoder | None = None


class CodecRegistry:
    """
    MIME type -> codec table implementing both factory protocols.

    Codecs are keyed by ``(mime_type, kind)``; the same MIME type may be
    registered once for complex data and once for bounding boxes.
    """

    def __init__(self) -> None:
        self._codecs: dict[tuple[str, DataKind], Codec] = {}
        self._lock = threading.Lock()

    def register(
        self,
        mime_type: str,
        *,
        kind: DataKind = DataKind.COMPLEX,
        decoder: Decoder | None = None,
        encoder: Encoder | None = None,
    ) -> None:
        with self._lock:
            self._codecs[(mime_type, kind)] = Codec(mime_type, kind, decoder, encoder)

    def _lookup(self, format: Format, kind: DataKind) -> Codec | None:
        if format.mime_type is None:
            return None
        return self._codecs.get((format.mime_type, kind))

    def supports_decode(self, format: Format, kind: DataKind) -> bool:
        codec = self._lookup(format, kind)
        return codec is not None and codec.decoder is not None

    def supports_encode(self, format: Format, kind: DataKind) -> bool:
        codec = self._lookup(format, kind)
        return codec is not None and codec.encoder is not None

    def decode(self, format: Format, raw: bytes | str, kind: DataKind) -> Any:
        """Decode ``raw`` in ``format``.

        Raises:
            LookupError: no decoder for the format
            ValueError: the content is not valid for the format
        """
        codec = self._lookup(format, kind)
        if codec is None or codec.decoder is None:
            raise LookupError(f"no decoder for {format}")
        data = raw.encode(format.encoding or "utf-8") if isinstance(raw, str) else raw
        return codec.decoder(data, format)

    def encode(self, format: Format, data: ProcessData) -> bytes:
        """Encode ``data`` in ``format``.

        Raises:
            LookupError: no encoder for the format
        """
        codec = self._lookup(format, data.kind)
        if codec is None or codec.encoder is None:
            raise LookupError(f"no encoder for {format}")
        return codec.encoder(data.value, format)


# ── Built-in codecs ──────────────────────────────────────────────────────


def _charset(format: Format) -> str:
    return format.encoding or "utf-8"


def _decode_text(raw: bytes, format: Format) -> str:
    return raw.decode(_charset(format))


def _encode_text(value: Any, format: Format) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode(_charset(format))


def _decode_json(raw: bytes, format: Format) -> Any:
    return json.loads(raw.decode(_charset(format)))


def _encode_json(value: Any, format: Format) -> bytes:
    return json.dumps(value, default=str).encode(_charset(format))


def _encode_bbox(value: BoundingBoxData, format: Format) -> bytes:
    return json.dumps(value.to_dict()).encode(_charset(format))


def default_codecs() -> CodecRegistry:
    """A registry with the text, JSON and bounding-box codecs installed."""
    codecs = CodecRegistry()
    codecs.register("text/plain", decoder=_decode_text, encoder=_encode_text)
    codecs.register("application/json", decoder=_decode_json, encoder=_encode_json)
    codecs.register("application/json", kind=DataKind.BOUNDING_BOX, encoder=_encode_bbox)
    return codecs


__all__ = [
    "TEXT_PLAIN",
    "APPLICATION_JSON",
    "BBOX_FORMAT",
    "ParserFactory",
    "GeneratorFactory",
    "Codec",
    "CodecRegistry",
    "default_codecs",
]
