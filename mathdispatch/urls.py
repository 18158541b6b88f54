"""
MathDispatch — URL Helpers
===========================

Small pure functions for building service URLs the same way the browser
plugin always has. Kept free of state so the registry and the dispatcher can
share them and tests can hit them directly.
"""

import re
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote, urlencode, urljoin, urlsplit

# Characters encodeURIComponent leaves alone, beyond letters and digits
_URI_COMPONENT_SAFE = "-_.!~*'()"

# A slash followed by more slashes, unless it is part of "scheme://"
_DUPLICATE_SLASHES = re.compile(r"([^:]/)/+")

_ABSOLUTE_PREFIXES = ("/", "http://", "https://")


def concatenate_url(path1: str, path2: str) -> str:
    """
    Join two URL parts with exactly one slash between them.

    >>> concatenate_url("http://host/app/", "/showimage")
    'http://host/app/showimage'
    """
    separator = ""
    if not path1.endswith("/") and not path2.startswith("/"):
        separator = "/"
    return _DUPLICATE_SLASHES.sub(r"\1", path1 + separator + path2)


def http_build_query(parameters: Optional[Mapping[str, Any]]) -> str:
    """
    Url-encode a mapping as ``key=value&...`` using encodeURIComponent rules.

    Spaces become %20 (not '+'), and None values become empty strings, which
    matches what the PHP and .NET backends have always received.
    """
    if not parameters:
        return ""
    pairs = [(str(k), "" if v is None else str(v)) for k, v in parameters.items()]
    return urlencode(pairs, quote_via=quote, safe=_URI_COMPONENT_SAFE)


def encode_parameters(parameters: Union[Mapping[str, Any], str, None]) -> str:
    """Strings are already serialized by the caller and pass through as-is."""
    if parameters is None:
        return ""
    if isinstance(parameters, str):
        return parameters
    return http_build_query(parameters)


def get_server_url(page_url: str) -> str:
    """
    Returns ``protocol//host[:port]`` of the page URL, or "" without a host.

    >>> get_server_url("https://example.com:8443/editor/index.html")
    'https://example.com:8443'
    """
    parts = urlsplit(page_url)
    if not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def get_document_directory(page_url: str) -> str:
    """Everything up to and including the last slash of the page URL."""
    return page_url[: page_url.rfind("/") + 1]


def is_rooted(url: str) -> bool:
    """True for root-relative paths and http(s) URLs."""
    return url.startswith(_ABSOLUTE_PREFIXES)


def resolve_against_page(url: str, page_url: str) -> str:
    """Resolve a possibly relative URL the way the browser would."""
    if not page_url or url.startswith(("http://", "https://")):
        return url
    return urljoin(page_url, url)
