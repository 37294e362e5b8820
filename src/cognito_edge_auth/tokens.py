"""Authorization-code exchange against the user pool token endpoint."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import TokenExchangeError, TransportError
from .logging import get_logger

if TYPE_CHECKING:
    from .config import AuthConfig
    from .protocols import HttpClient

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TokenSet:
    """Tokens returned by a successful code exchange.

    Attributes:
        access_token: Signed access token.
        refresh_token: Opaque refresh token.
        id_token: Signed identity token; its claims name the user.
        token_type: Usually ``Bearer``.
        expires_in: Lifetime of the access and id tokens, in seconds.
        scope: Space-separated granted scopes, empty if the IdP omitted it.
    """

    access_token: str
    refresh_token: str
    id_token: str
    token_type: str = "Bearer"
    expires_in: int = 0
    scope: str = ""

    @classmethod
    def from_response(cls, payload: Any) -> TokenSet:
        """Decode a token endpoint JSON body.

        Raises:
            TokenExchangeError: If a token field is missing or not a string.
        """
        if not isinstance(payload, Mapping):
            raise TokenExchangeError("Token endpoint returned an unexpected body")

        missing = [
            name
            for name in ("access_token", "refresh_token", "id_token")
            if not isinstance(payload.get(name), str) or not payload[name]
        ]
        if missing:
            raise TokenExchangeError(
                f"Token endpoint response is missing: {', '.join(missing)}"
            )

        expires_in = payload.get("expires_in", 0)
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload["refresh_token"],
            id_token=payload["id_token"],
            token_type=str(payload.get("token_type", "Bearer")),
            expires_in=expires_in if isinstance(expires_in, int) else 0,
            scope=str(payload.get("scope", "")),
        )


class TokenExchangeClient:
    """Trades an authorization code for a `TokenSet`.

    One POST per call, no internal retry. Any failure surfaces as a single
    TokenExchangeError.
    """

    def __init__(self, token_endpoint: str, client_id: str, http: HttpClient) -> None:
        self._endpoint = token_endpoint
        self._client_id = client_id
        self._http = http

    @classmethod
    def for_config(cls, config: AuthConfig, http: HttpClient) -> TokenExchangeClient:
        return cls(config.token_endpoint, config.user_pool_app_id, http)

    @property
    def token_endpoint(self) -> str:
        return self._endpoint

    async def exchange(self, redirect_uri: str, code: str) -> TokenSet:
        form = {
            "grant_type": "authorization_code",
            "client_id": self._client_id,
            "code": code,
            "redirect_uri": redirect_uri,
        }
        try:
            payload = await self._http.post_form(self._endpoint, form)
        except TransportError as e:
            logger.error(
                "token_exchange_failed",
                endpoint=self._endpoint,
                status_code=e.status_code,
            )
            raise TokenExchangeError("Unable to exchange the authorization code") from e

        return TokenSet.from_response(payload)
