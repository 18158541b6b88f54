"""
MathDispatch — Service Path Registry
=====================================

What:  Maps each logical service to the URI that serves it on this backend.
Why:   The same plugin talks to PHP, ASP.NET, Java and Ruby integrations.
       They all expose the same five services under one integration path;
       only the file extension and the URL base differ.
How:   ``resolve_service_uri`` applies three rules:
         1. suffix ".php" / ".aspx" / "" from the server technology tag
         2. join integration path and service segment with one slash
         3. root-relative integration paths get the page's protocol//host

Example:
    integration_path="/app/integration", server_technology="tomcat-java",
    page_url="https://example.com/editor/"
        GET_MATHML → "https://example.com/app/integration/getmathml"
"""

from enum import Enum
from typing import Dict, Optional, Union

from mathdispatch.config import DispatcherConfiguration
from mathdispatch.urls import concatenate_url, get_server_url

# Marker found in the Ruby on Rails integration engine paths
RUBY_ENGINE_MARKER = "wirispluginengine"


class Service(str, Enum):
    """
    The five integration services. Values are the URI segments.
    """
    CONFIGURATION = "configurationjs"
    CREATE_IMAGE = "createimage"
    SHOW_IMAGE = "showimage"
    GET_MATHML = "getmathml"
    SERVICE = "service"

    @classmethod
    def lookup(cls, name: Union["Service", str]) -> Optional["Service"]:
        """
        Accepts a Service, a URI segment ("showimage") or a logical name
        ("show-image", "generic-service"). Returns None for unknown names.
        """
        if isinstance(name, Service):
            return name
        return _SERVICE_NAMES.get(name.strip().lower())


_SERVICE_NAMES: Dict[str, Service] = {s.value: s for s in Service}
_SERVICE_NAMES.update({
    "configuration": Service.CONFIGURATION,
    "create-image": Service.CREATE_IMAGE,
    "show-image": Service.SHOW_IMAGE,
    "get-mathml": Service.GET_MATHML,
    "generic-service": Service.SERVICE,
})


def server_extension(server_technology: str) -> str:
    """File extension the backend technology needs on every service URI."""
    if "php" in server_technology:
        return ".php"
    if "aspx" in server_technology:
        return ".aspx"
    return ""


def resolve_service_uri(
    service: Service,
    configuration: DispatcherConfiguration,
    page_url: str,
) -> str:
    """
    Build the URI of ``service`` for the given configuration.

    Args:
        service:       Which integration service.
        configuration: Integration path and server technology.
        page_url:      Current document URL, used for root-relative paths.

    Returns:
        The service URI. Degenerate (e.g. "/showimage") when the integration
        path is empty; that is the caller's responsibility.
    """
    uri = concatenate_url(configuration.integration_path, service.value)
    uri += server_extension(configuration.server_technology)

    # Java and Ruby integrations usually live at an absolute path such as
    # /app/integration; turn it into protocol//host/app/integration
    if configuration.integration_path.startswith("/"):
        uri = get_server_url(page_url) + uri
    return uri


def infer_server_language(value: str) -> str:
    """
    Returns "php", "aspx", "ruby" or "java" for a service URI or tag.

    Kept for backward-compatible reporting only; dispatch never uses it.
    """
    if ".php" in value:
        return "php"
    if ".aspx" in value:
        return "aspx"
    if RUBY_ENGINE_MARKER in value:
        return "ruby"
    return "java"


class ServicePathRegistry:
    """
    Service → URI mapping, written during ``initialize``.

    Known names are normalized, so "show-image" and "showimage" share one
    entry. Hosts may also register extra services under any other string.
    Entries are overwritten, never removed; lookups of unregistered services
    return None instead of raising.
    """

    def __init__(self) -> None:
        self._paths: Dict[str, str] = {}

    @staticmethod
    def _key(service: Union[Service, str]) -> str:
        known = Service.lookup(service)
        return known.value if known is not None else str(service)

    def set_path(self, service: Union[Service, str], uri: str) -> None:
        self._paths[self._key(service)] = uri

    def get_path(self, service: Union[Service, str]) -> Optional[str]:
        return self._paths.get(self._key(service))

    def populate(self, configuration: DispatcherConfiguration, page_url: str) -> None:
        """Recompute and overwrite all five entries."""
        for service in Service:
            self.set_path(service, resolve_service_uri(service, configuration, page_url))

    def as_dict(self) -> Dict[str, str]:
        return dict(self._paths)

    def __contains__(self, service: object) -> bool:
        if not isinstance(service, str):
            return False
        return self._key(service) in self._paths

    def __len__(self) -> int:
        return len(self._paths)
