"""
MathDispatch — Configuration
=============================

What:  Environment-driven defaults plus the immutable per-initialization record.
Why:   The dispatcher is embedded in different hosts (PHP, ASP.NET, Java, Ruby
       backends). Hosts set the integration path once; everything else is
       derived from it.
How:   ``DispatcherSettings`` reads ``MATHDISPATCH_*`` environment variables (or
       a .env file) through pydantic-settings. ``DispatcherConfiguration`` is
       the frozen record handed to ``ServiceProvider.initialize``.

Design Decision:
    Settings and configuration are separate objects because settings describe
    the process (timeouts, retries, logging) while configuration describes one
    initialization of one provider. Two providers in the same process can point
    at different backends while sharing the same settings.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

from mathdispatch.exceptions import ConfigurationError


class DispatcherConfiguration(BaseModel):
    """
    Immutable record set exactly once per ``initialize`` call.

    Accepts snake_case, camelCase and the legacy plugin keys (``URI`` and
    ``server``) so hosts can pass the parameters object they already have.

    Missing values default to empty strings. That is not an error: resolution
    simply yields degenerate URIs, and the caller owns the consequences.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    integration_path: str = Field(
        default="",
        validation_alias=AliasChoices("integration_path", "integrationPath", "URI"),
        description="Base URL or root-relative path of the integration services",
    )
    server_technology: str = Field(
        default="",
        validation_alias=AliasChoices("server_technology", "serverTechnology", "server"),
        description="Free-text tag such as 'php', 'aspx', 'java' or 'ruby'",
    )


class DispatcherSettings(BaseSettings):
    """
    Process-wide settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Integration ───────────────────────────────────────────────────────
    # What: Defaults used by ``to_configuration`` when a host does not pass
    # an explicit configuration to ``initialize``
    integration_path: str = Field(default="")
    server_technology: str = Field(default="java")

    # What: Stand-in for the browser's current document location
    # Used for: root-relative service URIs (protocol//host prefix) and
    # resolving relative POST targets against the document directory
    page_url: str = Field(default="http://localhost/")

    # ── HTTP Transport ────────────────────────────────────────────────────
    # What: Request timeout in seconds. None = block until the server answers,
    # which is the historical behavior of the plugin
    http_timeout: Optional[float] = Field(default=None, gt=0)

    # What: Tenacity retry settings for connection-level failures
    # Default 1 = single attempt, no retry
    retry_max_attempts: int = Field(default=1, ge=1, le=10)
    retry_min_wait: float = Field(default=0.5, ge=0, le=30)
    retry_max_wait: float = Field(default=5.0, ge=0, le=120)

    # What: Turn an empty transport response into {"status":"error"}
    # Default False keeps the empty body callers have always received
    error_envelope_on_transport_failure: bool = Field(default=False)

    # ── Local Conversion ──────────────────────────────────────────────────
    svg_font_size: float = Field(default=16.0, gt=0, le=200)

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = {
        "env_prefix": "MATHDISPATCH_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def to_configuration(self) -> DispatcherConfiguration:
        """Build an initialization record from the environment defaults."""
        return DispatcherConfiguration(
            integration_path=self.integration_path,
            server_technology=self.server_technology,
        )

    def validate_for_remote(self) -> None:
        """
        What:  Checks that a remote backend can actually be addressed.
        When:  Optional; hosts call it at startup to fail fast.
        Why:   ``initialize`` deliberately accepts incomplete configuration.
        """
        if not self.integration_path:
            raise ConfigurationError(
                "MATHDISPATCH_INTEGRATION_PATH is not set. "
                "Point it at the integration services, e.g. /app/integration",
                field="integration_path",
            )
        if not self.server_technology:
            raise ConfigurationError(
                "MATHDISPATCH_SERVER_TECHNOLOGY is not set (php, aspx, java or ruby)",
                field="server_technology",
            )


settings = DispatcherSettings()
