"""
MathDispatch — Response Envelope Schemas
=========================================

What:  Pydantic models for the JSON envelope every dispatch returns.
Why:   The editor parses one shape, whether the body came from a PHP, .NET,
       Java or Ruby backend or from the local SVG converter.
How:   The local converter builds an ``ResponseEnvelope`` and serializes it
       with ``to_json``. Remote bodies are passed through untouched; the
       backend owns their validity.

Wire example (local converter):
    {"status":"ok","result":{"height":"37","width":"63","content":"<svg ...>",
     "baseline":"27","format":"svg","alt":"","role":"math"}}
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

EnvelopeStatus = Literal["ok", "warning", "error"]


class ImageResult(BaseModel):
    """
    What:  Successful rendering of one formula.

    Why strings for sizes:
        Backends send "37", not 37. Keeping strings means a locally produced
        envelope is byte-compatible with a remote one.
    """
    height: str = Field(description="Image height, unit suffix stripped")
    width: str = Field(description="Image width, unit suffix stripped")
    content: str = Field(description="Raw image markup (SVG outer markup)")
    baseline: str = Field(description="Distance from top to the text baseline")
    format: str = Field(description="Image format, e.g. 'svg' or 'png'")
    alt: str = Field(default="", description="Accessible text for the formula")
    role: str = Field(default="math", description="ARIA role for the image")


class ResponseEnvelope(BaseModel):
    """Normalized result of every dispatch."""
    status: EnvelopeStatus
    result: Optional[ImageResult] = None

    def to_json(self) -> str:
        """Compact JSON; ``result`` is omitted when absent."""
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def warning(cls) -> "ResponseEnvelope":
        return cls(status="warning")

    @classmethod
    def error(cls) -> "ResponseEnvelope":
        return cls(status="error")


# Serialized once; these are returned verbatim by the dispatcher
WARNING_RESPONSE = ResponseEnvelope.warning().to_json()
ERROR_RESPONSE = ResponseEnvelope.error().to_json()
