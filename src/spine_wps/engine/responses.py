"""Execute responses.

DOCUMENT mode yields a ``DocumentResponse`` (status metadata plus every
requested output); RAW mode yields a ``RawResponse`` carrying exactly one
output's encoded content and nothing else.

Tags:
    spine-wps, engine, responses

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from spine_wps.binding import RenderedOutput
from spine_wps.data import ResponseMode


@dataclass(frozen=True)
class DocumentResponse:
    job_id: str
    process_id: str
    status: str
    outputs: tuple[RenderedOutput, ...] = ()

    def output(self, identifier: str) -> RenderedOutput | None:
        return next((o for o in self.outputs if o.identifier == identifier), None)

    def value(self, identifier: str) -> Any:
        """Inline value of an output (``None`` if absent or by reference)."""
        output = self.output(identifier)
        return None if output is None else output.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "process_id": self.process_id,
            "status": self.status,
            "outputs": [o.to_dict() for o in self.outputs],
        }


@dataclass(frozen=True)
class RawResponse:
    identifier: str
    content: bytes
    mime_type: str | None = None

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "mime_type": self.mime_type,
            "content": self.content.decode("utf-8", errors="replace"),
        }


Response = DocumentResponse | RawResponse


def build_response(
    job_id: str,
    process_id: str,
    status: str,
    response_mode: ResponseMode,
    outputs: list[RenderedOutput],
) -> Response:
    if response_mode is ResponseMode.RAW:
        (output,) = outputs
        return RawResponse(
            identifier=output.identifier,
            content=output.content,
            mime_type=output.mime_type,
        )
    return DocumentResponse(job_id=job_id, process_id=process_id, status=status, outputs=tuple(outputs))


__all__ = ["RenderedOutput", "DocumentResponse", "RawResponse", "Response", "build_response"]
