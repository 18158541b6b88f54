"""
MathDispatch — Service Provider (Dispatcher)
=============================================

What:  Resolves service names to URIs and dispatches requests to them, or to
       the local converter for showimage.
Why:   Editors ask for "showimage" or "createimage" and get back one JSON
       envelope. They never see which backend technology answered, or whether
       any backend answered at all.
How:   ``initialize`` fills the ServicePathRegistry; ``invoke`` picks a route:

    ┌──────────────────────────┐
    │ invoke(service, params)  │
    └────────────┬─────────────┘
                 │
      showimage + {"mml": ...} ──▶ LocalConverter ──▶ ok envelope
                 │                       │ (fails)
      showimage + "a=b&c=d"   ──────────┴──────────▶ {"status":"warning"}
                 │
      anything else ──▶ registry URI ──▶ HttpTransport (GET ?query | POST form)

State:
    Each provider owns its configuration, registry and event bus. Nothing is
    module-global, so tests and multi-tenant hosts can run several providers
    side by side.

Blocking:
    ``invoke`` blocks until the transport returns. ``ainvoke`` follows the
    same routing, awaits the transport, and can be cancelled by the caller.
"""

import asyncio
import logging
from collections.abc import Mapping as MappingABC
from typing import Any, Dict, Mapping, NamedTuple, Optional, Union

from mathdispatch.config import DispatcherConfiguration, DispatcherSettings, settings
from mathdispatch.events import EventBus, EventPayload, Listener
from mathdispatch.logging_config import correlation_id_var, new_correlation_id
from mathdispatch.schemas.envelope import ERROR_RESPONSE, WARNING_RESPONSE
from mathdispatch.services.local_converter import LocalConverter
from mathdispatch.services.registry import (
    Service,
    ServicePathRegistry,
    infer_server_language,
)
from mathdispatch.services.transport_base import FORM_CONTENT_TYPE, HttpTransport
from mathdispatch.urls import (
    encode_parameters,
    get_document_directory,
    is_rooted,
    resolve_against_page,
)

logger = logging.getLogger(__name__)

ON_INIT = "onInit"

Parameters = Union[Mapping[str, Any], str, None]
ServiceName = Union[Service, str]


class _OutgoingRequest(NamedTuple):
    method: str
    url: str
    body: Optional[str]
    headers: Dict[str, str]


class ServiceProvider:
    """
    Explicit dispatch context: configuration, service paths and listeners.

    Usage:
        provider = ServiceProvider()
        provider.subscribe(CallbackListener(on_ready, event_name="onInit"))
        provider.initialize({"integrationPath": "/app/integration", "serverTechnology": "java"})
        envelope = provider.invoke("showimage", {"mml": "<math>...</math>"})
    """

    def __init__(
        self,
        transport: Optional[HttpTransport] = None,
        converter: Optional[LocalConverter] = None,
        config: DispatcherSettings = settings,
        page_url: Optional[str] = None,
        events: Optional[EventBus] = None,
    ):
        self.config = config
        self.page_url = page_url if page_url is not None else config.page_url
        self.converter = converter or LocalConverter()
        self.events = events or EventBus()
        self.registry = ServicePathRegistry()
        self.configuration = DispatcherConfiguration()
        self._transport = transport

    @property
    def transport(self) -> HttpTransport:
        if self._transport is None:
            from mathdispatch.services.http_transport import HttpxTransport
            self._transport = HttpxTransport(self.config)
        return self._transport

    # ── Events ────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> None:
        self.events.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self.events.unsubscribe(listener)

    def publish(self, event_name: str, payload: Optional[EventPayload] = None) -> None:
        self.events.publish(event_name, payload)

    # ── Initialization ────────────────────────────────────────────────────

    def initialize(
        self,
        configuration: Union[DispatcherConfiguration, Mapping[str, Any], None] = None,
    ) -> None:
        """
        Store the configuration, (re)compute every service path, fire onInit.

        Args:
            configuration: A DispatcherConfiguration, or a mapping with
                integration path / server technology keys. None uses the
                ``MATHDISPATCH_*`` environment defaults.

        Re-initializing overwrites all five paths; listeners are kept.
        """
        if configuration is None:
            configuration = self.config.to_configuration()
        elif not isinstance(configuration, DispatcherConfiguration):
            configuration = DispatcherConfiguration.model_validate(dict(configuration))

        self.configuration = configuration
        self.registry.populate(configuration, self.page_url)

        logger.info(
            "Service provider initialized: integration_path=%r server=%r (%s)",
            configuration.integration_path,
            configuration.server_technology,
            self.server_language,
        )
        self.publish(ON_INIT, {})

    # ── Registry access ───────────────────────────────────────────────────

    def set_path(self, service: ServiceName, uri: str) -> None:
        self.registry.set_path(service, uri)

    def get_path(self, service: ServiceName) -> Optional[str]:
        return self.registry.get_path(service)

    @property
    def server_language(self) -> str:
        """php, aspx, ruby or java, inferred from the configuration service URI."""
        return infer_server_language(self.get_path(Service.CONFIGURATION) or "")

    # ── Dispatch ──────────────────────────────────────────────────────────

    def invoke(
        self,
        service: ServiceName,
        parameters: Parameters = None,
        is_get: bool = False,
    ) -> str:
        """
        Call ``service`` and return its JSON envelope as text.

        Args:
            service:    Service name ("showimage", "show-image", Service.SHOW_IMAGE, ...)
            parameters: Mapping (url-encoded here) or an already encoded string.
            is_get:     GET with a query string instead of a POST form body.

        Returns:
            The response body: the backend's envelope, a locally built one,
            ``{"status":"warning"}``, or "" when the transport failed.
        """
        token = correlation_id_var.set(new_correlation_id())
        try:
            local = self._local_response(service, parameters)
            if local is not None:
                return local
            outgoing = self._build_request(service, parameters, is_get)
            body = self.transport.request(
                outgoing.method, outgoing.url, outgoing.body, outgoing.headers
            )
            return self._finish(body)
        finally:
            correlation_id_var.reset(token)

    async def ainvoke(
        self,
        service: ServiceName,
        parameters: Parameters = None,
        is_get: bool = False,
    ) -> str:
        """Awaitable ``invoke``; same routing, same return values."""
        token = correlation_id_var.set(new_correlation_id())
        try:
            local = None
            if Service.lookup(service) is Service.SHOW_IMAGE:
                # Typesetting is CPU-bound; keep it off the event loop
                local = await asyncio.to_thread(self._local_response, service, parameters)
            if local is not None:
                return local
            outgoing = self._build_request(service, parameters, is_get)
            body = await self.transport.arequest(
                outgoing.method, outgoing.url, outgoing.body, outgoing.headers
            )
            return self._finish(body)
        finally:
            correlation_id_var.reset(token)

    def _local_response(self, service: ServiceName, parameters: Parameters) -> Optional[str]:
        """Envelope for showimage calls that never reach the network, else None."""
        if Service.lookup(service) is not Service.SHOW_IMAGE:
            return None

        if isinstance(parameters, MappingABC) and "mml" in parameters:
            try:
                return self.converter.convert_mathml_to_svg(parameters["mml"])
            except Exception as e:
                logger.warning(
                    "Local MathML conversion failed (%s): %s",
                    type(e).__name__,
                    e,
                    extra={"error_context": getattr(e, "context", {})},
                )
            # Nothing was rendered; report it the same way as a pre-encoded request
            return WARNING_RESPONSE

        if isinstance(parameters, str):
            return WARNING_RESPONSE
        return None

    def _build_request(
        self,
        service: ServiceName,
        parameters: Parameters,
        is_get: bool,
    ) -> _OutgoingRequest:
        path = self.get_path(service)
        if path is None:
            # The transport rejects the empty URL and the caller gets ""
            logger.warning("No URI registered for service '%s'", service)
            return _OutgoingRequest("GET" if is_get else "POST", "", None, {})

        query = encode_parameters(parameters)

        if is_get:
            url = f"{path}?{query}" if query else path
            return _OutgoingRequest("GET", resolve_against_page(url, self.page_url), None, {})

        if parameters is None:
            # No form to send: plain GET of the service URI
            return _OutgoingRequest("GET", resolve_against_page(path, self.page_url), None, {})

        url = path
        if not is_rooted(url):
            url = get_document_directory(self.page_url) + url
        return _OutgoingRequest(
            "POST",
            resolve_against_page(url, self.page_url),
            query,
            {"Content-Type": FORM_CONTENT_TYPE},
        )

    def _finish(self, body: str) -> str:
        if not body and self.config.error_envelope_on_transport_failure:
            return ERROR_RESPONSE
        return body

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()

    async def aclose(self) -> None:
        if self._transport is not None:
            await self._transport.aclose()

    def __enter__(self) -> "ServiceProvider":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
