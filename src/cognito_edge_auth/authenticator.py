"""Request orchestration: forward, or redirect to login, logout or back home.

High-level flow (per request)
-----------------------------
1. Pull this client's id token from the Cookie headers and verify it.
2. `decide()` turns the verification outcome, path and querystring into a
   `Decision`. It does no I/O.
3. Only then does `Authenticator` perform the side effects the decision
   needs: the code exchange, building cookies, shaping the redirect.

Decision priority
-----------------
1. Logout: logout is enabled and the path equals ``logout_uri``. This wins
   even for a valid session, otherwise a signed-in user could never log out.
2. Forward: the id token verified.
3. Code exchange: the querystring carries ``code``.
4. Login: everything else.

Every authentication failure (no cookies, no id token, bad or expired token,
unknown key, JWKS unreachable) routes to login. Only a failed code exchange
raises, as TokenExchangeError.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, quote

from .cache_stores import KeySetCache
from .config import AuthConfig
from .cookies import SessionCookieCodec
from .edge import header_values, host_of, redirect, request_from_event
from .errors import MissingToken, TokenExchangeError, VerificationError
from .http import HttpxClient
from .key_providers import CognitoJWKSProvider
from .logging import configure_logging, get_logger
from .protocols import (
    Claims,
    EdgeEvent,
    EdgeRequest,
    EdgeResponse,
    HttpClient,
    KeyProvider,
    TokenVerifier,
)
from .tokens import TokenExchangeClient
from .verifier import USERNAME_CLAIM, JWTVerifier, JWTVerifyOptions

logger = get_logger(__name__)

# encodeURIComponent leaves these unescaped; urllib's quote would not.
_URI_COMPONENT_SAFE = "!'()*"
# Path characters that survive inside a query value untouched. Existing
# escapes are re-escaped so the path comes back byte-for-byte after login.
_PATH_SAFE = "/!'()*:@$,;="


class Disposition(Enum):
    FORWARD = "forward"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_LOGOUT = "redirect_logout"
    REDIRECT_AFTER_EXCHANGE = "redirect_after_exchange"


@dataclass(frozen=True, slots=True)
class Decision:
    """What to do with a request.

    Attributes:
        disposition: The branch taken.
        code: Authorization code, for REDIRECT_AFTER_EXCHANGE only.
        state: Local path to land on after the exchange.
    """

    disposition: Disposition
    code: str | None = None
    state: str = "/"


def parse_querystring(querystring: str) -> dict[str, str]:
    """Decode a querystring into its first value per name.

    A leading ``?`` is tolerated.
    """
    parsed = parse_qs(querystring.lstrip("?"), keep_blank_values=True)
    return {name: values[0] for name, values in parsed.items()}


def safe_state(state: str | None) -> str:
    """Return ``state`` if it is a local path, else ``/``.

    Rejects absolute and scheme-relative URLs so the callback can't be used as
    an open redirect.
    """
    if not state or not state.startswith("/") or state.startswith("//"):
        return "/"
    if state[1:2] == "\\":
        return "/"
    return state


def decide(
    *,
    authenticated: bool,
    path: str,
    querystring: str,
    logout_path: str | None,
) -> Decision:
    """Pick the disposition of a request. Pure: no I/O, no clock.

    Args:
        authenticated: Whether the session id token verified.
        path: Request URI path.
        querystring: Raw querystring, without or with a leading ``?``.
        logout_path: The logout path when logout is enabled, else None.
    """
    if logout_path is not None and path == logout_path:
        return Decision(Disposition.REDIRECT_LOGOUT)

    if authenticated:
        return Decision(Disposition.FORWARD)

    params = parse_querystring(querystring)
    code = params.get("code")
    if code:
        return Decision(
            Disposition.REDIRECT_AFTER_EXCHANGE,
            code=code,
            state=safe_state(params.get("state")),
        )

    return Decision(Disposition.REDIRECT_LOGIN)


class Authenticator:
    """Edge authentication gatekeeper for one user pool application client.

    Args:
        config: An AuthConfig, or a parameter mapping for
            `AuthConfig.from_params`.
        http: HTTP client for the JWKS and token endpoints.
        key_cache: Shared key cache. Reuse one per process.
        key_provider: Overrides the JWKS provider.
        verifier: Overrides the id token verifier.
        exchange_client: Overrides the code exchange client.
        clock: Returns "now" for cookie expiry; defaults to UTC wall time.

    Raises:
        ConfigurationError: If the configuration is invalid.

    Example:
        ```python
        authenticator = Authenticator({
            "region": "us-east-1",
            "userPoolId": "us-east-1_abcdef123",
            "userPoolAppId": "123456789qwertyuiop987abcd",
            "userPoolDomain": "my-domain.auth.us-east-1.amazoncognito.com",
        })

        result = await authenticator.handle(event)
        ```
    """

    def __init__(
        self,
        config: AuthConfig | Mapping[str, Any] | None,
        *,
        http: HttpClient | None = None,
        key_cache: KeySetCache | None = None,
        key_provider: KeyProvider | None = None,
        verifier: TokenVerifier | None = None,
        exchange_client: TokenExchangeClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config if isinstance(config, AuthConfig) else AuthConfig.from_params(config)
        http = http or HttpxClient()

        self._key_provider: KeyProvider = key_provider or CognitoJWKSProvider(
            self._config.jwks_url, http=http, cache=key_cache
        )
        self._verifier: TokenVerifier = verifier or JWTVerifier(
            self._key_provider, JWTVerifyOptions.for_config(self._config)
        )
        self._exchange = exchange_client or TokenExchangeClient.for_config(self._config, http)
        self._cookies = SessionCookieCodec(self._config)
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def config(self) -> AuthConfig:
        return self._config

    @property
    def cookies(self) -> SessionCookieCodec:
        return self._cookies

    @property
    def key_provider(self) -> KeyProvider:
        return self._key_provider

    @property
    def verifier(self) -> TokenVerifier:
        return self._verifier

    async def handle(self, event: EdgeEvent) -> EdgeRequest | EdgeResponse:
        """Handle one viewer-request event.

        Returns:
            The original request object to forward it, or a 302 response.

        Raises:
            TokenExchangeError: If a code was presented and couldn't be
                exchanged for a verified token set.
        """
        request = request_from_event(event)
        host = host_of(request)
        path = request.get("uri", "/")
        cookie_headers = header_values(request, "cookie")

        claims = await self._authenticate(cookie_headers)
        decision = decide(
            authenticated=claims is not None,
            path=path,
            querystring=request.get("querystring", ""),
            logout_path=self._config.logout_uri if self._config.enable_logout else None,
        )
        logger.info("request_decision", disposition=decision.disposition.value, path=path)

        if decision.disposition is Disposition.FORWARD:
            return request
        if decision.disposition is Disposition.REDIRECT_LOGOUT:
            return self._logout_response(claims, cookie_headers, host)
        if decision.disposition is Disposition.REDIRECT_AFTER_EXCHANGE:
            return await self._exchange_response(decision, host)
        return self._login_response(request, host)

    async def _authenticate(self, cookie_headers: Sequence[str] | None) -> Claims | None:
        try:
            token = self._cookies.extract_id_token(cookie_headers)
            return await self._verifier.verify(token)
        except MissingToken as e:
            logger.debug("session_missing", reason=str(e))
        except VerificationError as e:
            logger.info("session_rejected", reason=e.reason.value)
        return None

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    @staticmethod
    def _origin(host: str) -> str:
        return f"https://{host}"

    def _login_response(self, request: EdgeRequest, host: str) -> EdgeResponse:
        state = quote(request.get("uri", "/"), safe=_PATH_SAFE)
        querystring = request.get("querystring", "")
        if querystring:
            state += quote(f"?{querystring}", safe=_URI_COMPONENT_SAFE)

        location = (
            f"{self._config.hosted_ui_base}/authorize"
            f"?redirect_uri={self._origin(host)}"
            f"&response_type=code"
            f"&client_id={self._config.user_pool_app_id}"
            f"&state={state}"
        )
        return redirect(location)

    def _logout_response(
        self,
        claims: Claims | None,
        cookie_headers: Sequence[str] | None,
        host: str,
    ) -> EdgeResponse:
        username = claims.get(USERNAME_CLAIM) if claims is not None else None
        if not isinstance(username, str) or not username:
            username = self._cookies.extract_last_auth_user(cookie_headers)

        if not username:
            logger.info("logout_without_session", host=host)
            return redirect(host)

        location = (
            f"{self._config.hosted_ui_base}/logout"
            f"?logout_uri={self._origin(host)}"
            f"&client_id={self._config.user_pool_app_id}"
        )
        return redirect(location, set_cookies=self._cookies.build_expired_cookies(username, host))

    async def _exchange_response(self, decision: Decision, host: str) -> EdgeResponse:
        tokens = await self._exchange.exchange(self._origin(host), decision.code or "")

        try:
            claims = await self._verifier.verify(tokens.id_token)
        except VerificationError as e:
            raise TokenExchangeError("Token endpoint returned an id token that failed verification") from e

        username = claims.get(USERNAME_CLAIM)
        if not isinstance(username, str) or not username:
            raise TokenExchangeError("Exchanged id token carries no username")

        cookies = self._cookies.build_session_cookies(tokens, username, host, now=self._clock())
        logger.info("session_established", location=decision.state)
        return redirect(decision.state, set_cookies=cookies)


def make_lambda_handler(
    authenticator: Authenticator,
) -> Callable[[EdgeEvent, Any], EdgeRequest | EdgeResponse]:
    """Wrap an authenticator in a synchronous edge function handler.

    Logging is configured from the authenticator's ``log_level``.
    """
    configure_logging(authenticator.config.log_level)

    def handler(event: EdgeEvent, context: Any = None) -> EdgeRequest | EdgeResponse:
        return asyncio.run(authenticator.handle(event))

    return handler
