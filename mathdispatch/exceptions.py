"""
MathDispatch — Custom Exception Hierarchy
==========================================

What:  Defines package-specific exceptions for the failure modes of dispatching.
Why:   Callers can catch one base class, and the dispatcher can tell a local
       conversion failure apart from a transport failure when deciding how to
       degrade.
How:   Each exception carries a human-readable message and an optional context
       dict. Context is logged, never serialized into a response envelope.
Who:   Raised by services (converter, transport, settings); caught by the
       dispatcher and the transport.

Exception Hierarchy:
    MathDispatchError (base)
    ├── ConfigurationError   → settings cannot support a remote backend
    ├── ConversionError      → local MathML → SVG conversion failed
    └── TransportError       → HTTP call failed after the retry budget

None of these are fatal to the process. The dispatcher converts them into
envelopes (``{"status":"warning"}`` or an empty body) so the editor can
inspect ``status`` instead of handling exceptions.
"""

from typing import Any, Dict, Optional


class MathDispatchError(Exception):
    """
    Base exception for all MathDispatch errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (service name, URL, error type, ...)
    """

    def __init__(
        self,
        message: str = "An unexpected dispatch error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(MathDispatchError):
    """
    Raised when settings cannot produce usable service URIs.

    What:    The integration path or server technology is missing.
    When:    Only from explicit validation helpers. ``initialize`` itself
             never raises; it produces degenerate URIs instead.
    """

    def __init__(
        self,
        message: str = "Dispatcher configuration is incomplete",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConversionError(MathDispatchError):
    """
    Raised when the local converter cannot turn MathML into SVG.

    What:    Malformed MathML, a typesetting engine failure, or an SVG root
             without width/height attributes.
    Recovery:
        The dispatcher catches this, logs it with the correlation id and
        falls through to the ``{"status":"warning"}`` envelope.
    """

    def __init__(
        self,
        message: str = "MathML could not be converted to SVG",
        mathml: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if mathml is not None:
            # First 200 chars are enough to identify the formula in logs
            ctx["mathml"] = mathml[:200]
        super().__init__(message=message, context=ctx)


class TransportError(MathDispatchError):
    """
    Raised when an HTTP request fails after all retry attempts.

    What:    Connection refused, DNS failure, read error, or an invalid URL.
    When:    Inside HttpxTransport once tenacity gives up.
    Recovery:
        The transport logs it and returns an empty body. Status codes are
        not treated as failures; a 500 with a body is still a response.
    """

    def __init__(
        self,
        message: str = "HTTP transport failed",
        url: Optional[str] = None,
        method: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if url is not None:
            ctx["url"] = url
        if method is not None:
            ctx["method"] = method
        super().__init__(message=message, context=ctx)
        self.url = url
        self.method = method
