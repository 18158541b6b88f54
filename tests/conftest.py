"""
MathDispatch — Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the test suite.
Why:   Dispatcher tests must not touch the network or depend on font
       rendering, so transport and engine are replaced with recording fakes.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings: DispatcherSettings with a fixed page URL
    ├── fake_transport: Records (method, url, body, headers), returns canned text
    ├── fake_engine: Returns a fixed SVG, or raises for "<not valid" input
    └── provider: ServiceProvider wired to both fakes
"""

import os
from typing import List, Mapping, Optional, Tuple

import pytest

# Keep a developer's environment out of the tests
os.environ["MATHDISPATCH_LOG_LEVEL"] = "WARNING"
os.environ.pop("MATHDISPATCH_INTEGRATION_PATH", None)
os.environ.pop("MATHDISPATCH_PAGE_URL", None)

from mathdispatch.config import DispatcherSettings  # noqa: E402
from mathdispatch.exceptions import ConversionError  # noqa: E402
from mathdispatch.services.dispatcher import ServiceProvider  # noqa: E402
from mathdispatch.services.engine_base import RenderedSvg, TypesettingEngine  # noqa: E402
from mathdispatch.services.local_converter import LocalConverter  # noqa: E402
from mathdispatch.services.transport_base import HttpTransport  # noqa: E402

PAGE_URL = "https://editor.example.com:8443/docs/page.html"

SAMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="4.5ex" height="2.25ex">'
    '<path d="M0 0"/></svg>'
)


class RecordingTransport(HttpTransport):
    """Fake transport that records every call and returns ``response``."""

    def __init__(self, response: str = '{"status":"ok"}'):
        self.response = response
        self.calls: List[Tuple[str, str, Optional[str], Mapping[str, str]]] = []

    def request(self, method, url, body=None, headers=None) -> str:
        self.calls.append((method, url, body, dict(headers or {})))
        return self.response

    @property
    def last_call(self):
        return self.calls[-1]


class FakeEngine(TypesettingEngine):
    """Renders everything as SAMPLE_SVG; rejects markup that is not XML-ish."""

    def __init__(self):
        self.rendered: List[str] = []

    def render(self, mathml: str) -> RenderedSvg:
        if not mathml.strip().endswith(">"):
            raise ConversionError(message="malformed MathML", mathml=mathml)
        self.rendered.append(mathml)
        return RenderedSvg(outer_markup=SAMPLE_SVG, width="4.5ex", height="2.25ex")


@pytest.fixture
def test_settings():
    """Settings independent of the environment, without retries."""
    return DispatcherSettings(
        page_url=PAGE_URL,
        retry_max_attempts=1,
        retry_min_wait=0,
        retry_max_wait=0,
    )


@pytest.fixture
def fake_transport():
    return RecordingTransport()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def provider(fake_transport, fake_engine, test_settings):
    """
    A provider that is NOT yet initialized.

    Usage:
        def test_x(provider):
            provider.initialize({"integrationPath": "/app", "serverTechnology": "java"})
    """
    return ServiceProvider(
        transport=fake_transport,
        converter=LocalConverter(engine=fake_engine),
        config=test_settings,
    )
