"""
OAuth2 client-credentials token acquisition and caching.

This module handles authentication to the Légifrance API (hosted on the PISTE
platform). Before any search, the server needs a bearer token, which it gets
from the OAuth2 issuer with the client-credentials grant:

    POST <OAUTH_TOKEN_URL>
    Authorization: Basic base64(client_id:client_secret)
    X-Api-Key: <api key>
    Content-Type: application/x-www-form-urlencoded;charset=UTF-8

    grant_type=client_credentials&scope=openid

The issuer answers with a JSON document containing `access_token`.

Caching rules:
- The first successful exchange stores the token on the TokenProvider
  instance, and every later call returns it without touching the network.
- A failed exchange stores nothing, so the next call tries again.
- There is no expiry tracking: the token lives as long as the provider
  (i.e. the process). reset() is the only way to drop it.

Concurrent first calls are serialized with an asyncio.Lock, so a burst of tool
calls right after startup performs a single exchange.
"""

import asyncio

import httpx

from src.config import Settings
from src.log import get_logger

logger = get_logger("auth")

GRANT_TYPE = "client_credentials"
SCOPE = "openid"


class AuthenticationError(Exception):
    """
    Raised when the OAuth2 exchange does not yield a token.

    Covers network errors, non-2xx answers from the issuer and answers
    without an `access_token`. The detailed reason is logged server-side;
    callers only see that authentication failed.

    Attributes:
        message: Human-readable error description
        status_code: HTTP status returned by the issuer, if one was received
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TokenProvider:
    """
    Obtains a bearer token once and reuses it for the provider's lifetime.

    Constructed once at startup with the validated settings and the shared
    httpx client, then injected into the ToolDispatcher.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http_client = http_client
        self._access_token: str | None = None
        self._lock = asyncio.Lock()

    @property
    def has_token(self) -> bool:
        return self._access_token is not None

    def reset(self) -> None:
        """Forget the cached token; the next get_token() performs a new exchange."""
        self._access_token = None

    async def get_token(self) -> str:
        """
        Return the cached token, or perform the client-credentials exchange.

        Raises:
            AuthenticationError: If the exchange fails. Nothing is cached.
        """
        if self._access_token is not None:
            return self._access_token

        async with self._lock:
            # Another caller may have completed the exchange while we waited.
            if self._access_token is None:
                self._access_token = await self._exchange()
            return self._access_token

    async def _exchange(self) -> str:
        settings = self._settings
        form = {"grant_type": GRANT_TYPE, "scope": SCOPE}

        logger.info(
            "Requesting OAuth token",
            extra={
                "log_data": {
                    "event": "oauth_request",
                    "url": settings.oauth_token_url,
                    "grant_type": GRANT_TYPE,
                    "scope": SCOPE,
                }
            },
        )

        try:
            response = await self._http_client.post(
                settings.oauth_token_url,
                data=form,
                auth=httpx.BasicAuth(settings.client_id, settings.client_secret.get_secret_value()),
                headers={
                    "X-Api-Key": settings.api_key.get_secret_value(),
                    "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            logger.error(
                "OAuth token request failed",
                extra={"log_data": {"event": "oauth_error", "error": str(exc)}},
            )
            raise AuthenticationError(f"OAuth token request failed: {exc}") from exc

        if not response.is_success:
            logger.error(
                "OAuth token request rejected",
                extra={
                    "log_data": {
                        "event": "oauth_error",
                        "status": response.status_code,
                        "reason": response.reason_phrase,
                        "body": response.text,
                    }
                },
            )
            raise AuthenticationError(
                f"OAuth token endpoint returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error(
                "OAuth token response is not JSON",
                extra={"log_data": {"event": "oauth_error", "status": response.status_code}},
            )
            raise AuthenticationError(
                "OAuth token response is not JSON", status_code=response.status_code
            ) from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None

        logger.info(
            "OAuth token response received",
            extra={
                "log_data": {
                    "event": "oauth_response",
                    "status": response.status_code,
                    "has_token": bool(token),
                }
            },
        )

        if not token or not isinstance(token, str):
            raise AuthenticationError("No access token received", status_code=response.status_code)

        return token
