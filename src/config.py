"""
Application configuration loaded from environment variables.

Uses pydantic-settings to define typed configuration that automatically reads
from environment variables. All credentials come from the environment, never
from source code.

The Légifrance credentials (client id/secret, API key, OAuth secret) and the
two endpoint URLs are mandatory: if any of them is missing or empty the
server refuses to start. Server knobs (transport, host, port, log level) have
defaults suitable for running as a stdio subprocess of an MCP client.

Unlike a module-level singleton, the settings are built once by
load_settings() at startup and handed explicitly to the components that need
them (TokenProvider, ToolDispatcher, the FastMCP server). Tests build their
own Settings instances with fake values.

Locally, you can set the variables in your shell or in a .env file.
"""

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings

DEFAULT_USER_AGENT = "Legifrance-MCP-Server/1.0"


class ConfigurationError(Exception):
    """
    Raised when the environment does not provide a usable configuration.

    Attributes:
        missing: Names of the environment variables that are missing or invalid
    """

    def __init__(self, message: str, missing: list[str] | None = None):
        self.message = message
        self.missing = missing or []
        super().__init__(message)


class Settings(BaseSettings):
    """
    Server configuration with environment variable bindings.

    Most fields map to an environment variable with the LEGIFRANCE_ prefix
    (`client_id` reads LEGIFRANCE_CLIENT_ID). The token endpoint and the
    server knobs keep the names used by existing deployments, declared with
    an explicit validation alias (OAUTH_TOKEN_URL, MCP_TRANSPORT, ...).
    """

    # --- Légifrance credentials (all required) ---

    # OAuth2 client credentials issued by the PISTE portal.
    client_id: str = Field(min_length=1)
    client_secret: SecretStr

    # Token endpoint of the OAuth2 issuer, e.g.
    # https://oauth.piste.gouv.fr/api/oauth/token
    oauth_token_url: str = Field(
        min_length=1,
        validation_alias=AliasChoices("OAUTH_TOKEN_URL", "LEGIFRANCE_OAUTH_TOKEN_URL"),
    )

    # Base URL of the Légifrance consult API; "/search" is appended to it.
    api_url: str = Field(min_length=1)

    # Sent as X-Api-Key on both the token exchange and the search call.
    api_key: SecretStr

    # Required at startup alongside the other credentials. It is not sent
    # on any request.
    oauth_secret: SecretStr

    # --- Outbound HTTP ---

    user_agent: str = DEFAULT_USER_AGENT

    # Seconds before an outbound request is abandoned. None waits forever.
    http_timeout: float | None = None

    # Perform one token exchange before accepting requests, so bad
    # credentials fail the process at startup instead of on the first call.
    authenticate_on_startup: bool = True

    # --- Server settings ---

    # "stdio" when launched by a desktop MCP client, "streamable-http" when
    # deployed as a network service.
    transport: Literal["stdio", "streamable-http"] = Field(
        default="stdio", validation_alias="MCP_TRANSPORT"
    )

    # Only used by the streamable-http transport.
    host: str = Field(default="0.0.0.0", validation_alias="MCP_HOST")
    port: int = Field(default=8080, validation_alias="MCP_PORT")

    # Logging verbosity. Maps to Python's logging levels.
    log_level: str = Field(default="info", validation_alias="MCP_LOG_LEVEL")

    model_config = {
        "env_prefix": "LEGIFRANCE_",
        # Also read from .env file if it exists (useful for local development).
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        # Allow Settings(oauth_token_url=...) in addition to the env aliases.
        "populate_by_name": True,
    }

    @field_validator("client_secret", "api_key", "oauth_secret")
    @classmethod
    def _require_secret(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("must not be empty")
        return value

    @field_validator("api_url", "oauth_token_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or value

    @property
    def search_url(self) -> str:
        return f"{self.api_url}/search"


# Environment variable names reported when a field fails validation.
_ENV_NAMES = {
    "client_id": "LEGIFRANCE_CLIENT_ID",
    "client_secret": "LEGIFRANCE_CLIENT_SECRET",
    "oauth_token_url": "OAUTH_TOKEN_URL",
    "OAUTH_TOKEN_URL": "OAUTH_TOKEN_URL",
    "api_url": "LEGIFRANCE_API_URL",
    "api_key": "LEGIFRANCE_API_KEY",
    "oauth_secret": "LEGIFRANCE_OAUTH_SECRET",
}


def load_settings(**overrides) -> Settings:
    """
    Build and validate the settings once, at startup.

    Keyword overrides take precedence over the environment (used by the CLI
    and by tests).

    Raises:
        ConfigurationError: If a required value is missing, empty or invalid.
            The error lists every offending environment variable.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        missing = []
        for error in exc.errors():
            loc = str(error["loc"][0]) if error["loc"] else "?"
            name = _ENV_NAMES.get(loc, loc.upper())
            if name not in missing:
                missing.append(name)
        raise ConfigurationError(
            "Missing or invalid environment variables: " + ", ".join(missing),
            missing=missing,
        ) from exc
