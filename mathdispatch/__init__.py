"""
MathDispatch — Package Initializer
===================================

What: Client-side service dispatcher for MathML image rendering.
Why:  One entry point (ServiceProvider) hides which backend technology hosts
      the integration services, and renders locally when none does.

Architecture Note:

    ┌─────────────────────────────────────┐
    │   ServiceProvider (dispatcher)      │  ← initialize / invoke / events
    ├─────────────────────────────────────┤
    │ Registry │ LocalConverter │ EventBus│  ← paths, SVG fallback, listeners
    ├─────────────────────────────────────┤
    │  HttpTransport │ TypesettingEngine  │  ← httpx, ziamath (replaceable)
    └─────────────────────────────────────┘
"""

from mathdispatch.config import DispatcherConfiguration, DispatcherSettings, settings
from mathdispatch.events import CallbackListener, EventBus, Listener
from mathdispatch.exceptions import (
    ConfigurationError,
    ConversionError,
    MathDispatchError,
    TransportError,
)
from mathdispatch.schemas.envelope import ImageResult, ResponseEnvelope
from mathdispatch.services.dispatcher import ON_INIT, ServiceProvider
from mathdispatch.services.registry import Service, infer_server_language

__version__ = "1.0.0"

__all__ = [
    "CallbackListener",
    "ConfigurationError",
    "ConversionError",
    "DispatcherConfiguration",
    "DispatcherSettings",
    "EventBus",
    "ImageResult",
    "Listener",
    "MathDispatchError",
    "ON_INIT",
    "ResponseEnvelope",
    "Service",
    "ServiceProvider",
    "TransportError",
    "infer_server_language",
    "settings",
]
