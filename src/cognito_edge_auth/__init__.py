"""
Edge authentication gatekeeper for Cognito user pools.

High-level flow (per request)
-----------------------------
1. `Authenticator.handle(event)` receives an edge viewer-request event.
2. `SessionCookieCodec` pulls this client's id token from the Cookie headers.
3. `JWTVerifier.verify(token)`:
   - Reads unverified header to get `kid` and `alg`
   - Asks `CognitoJWKSProvider` for the key (fetches the JWKS on a miss)
   - Runs `jwt.decode(...)` with issuer/audience/expiry checks
4. `decide(...)` picks forward, login, logout or code exchange.
5. Redirects carry Set-Cookie directives and no-cache headers.

Security notes
--------------
- Never trust claims until signature verification succeeds.
- Only allow known algorithms (avoid algorithm confusion).
- A request is forwarded only with a verified id token. Every other failure
  ends in a redirect to the hosted login page.

Example usage
-------------

.. code-block:: python

    from cognito_edge_auth import Authenticator, make_lambda_handler

    authenticator = Authenticator({
        "region": "us-east-1",
        "userPoolId": "us-east-1_abcdef123",
        "userPoolAppId": "123456789qwertyuiop987abcd",
        "userPoolDomain": "my-domain.auth.us-east-1.amazoncognito.com",
        "cookieExpirationDays": 30,
        "httpOnly": True,
        "sameSite": "Lax",
        "enableLogout": True,
    })

    handler = make_lambda_handler(authenticator)
"""

# Orchestrator
from .authenticator import (
    Authenticator,
    Decision,
    Disposition,
    decide,
    make_lambda_handler,
)

# Key cache
from .cache_stores import KeySetCache

# Configuration
from .config import AuthConfig, SameSite

# Cookies
from .cookies import (
    SessionCookieCodec,
    TokenKind,
    format_set_cookie,
    parse_cookie_header,
)

# Errors
from .errors import (
    AuthError,
    ConfigurationError,
    ConfigViolation,
    KeyNotFoundError,
    KeySetUnavailableError,
    MissingCookiesError,
    MissingIdTokenError,
    MissingToken,
    TokenExchangeError,
    TransportError,
    VerificationError,
    VerificationFailure,
)

# Flask extension
from .flask_extension import EdgeAuthExtension

# HTTP
from .http import HttpxClient

# Key providers
from .key_providers import CognitoJWKSProvider

# Logging
from .logging import configure_logging, get_logger

# Protocols
from .protocols import Claims, HttpClient, KeyProvider, TokenVerifier

# Token exchange
from .tokens import TokenExchangeClient, TokenSet

# Verifier
from .verifier import JWTVerifier, JWTVerifyOptions

__all__ = [
    # Errors
    "AuthError",
    "ConfigurationError",
    "ConfigViolation",
    "KeyNotFoundError",
    "KeySetUnavailableError",
    "MissingCookiesError",
    "MissingIdTokenError",
    "MissingToken",
    "TokenExchangeError",
    "TransportError",
    "VerificationError",
    "VerificationFailure",
    # Protocols
    "Claims",
    "HttpClient",
    "KeyProvider",
    "TokenVerifier",
    # Configuration
    "AuthConfig",
    "SameSite",
    # HTTP
    "HttpxClient",
    # Key cache / providers
    "KeySetCache",
    "CognitoJWKSProvider",
    # Verifier
    "JWTVerifier",
    "JWTVerifyOptions",
    # Cookies
    "SessionCookieCodec",
    "TokenKind",
    "format_set_cookie",
    "parse_cookie_header",
    # Token exchange
    "TokenExchangeClient",
    "TokenSet",
    # Orchestrator
    "Authenticator",
    "Decision",
    "Disposition",
    "decide",
    "make_lambda_handler",
    # Flask extension
    "EdgeAuthExtension",
    # Logging
    "configure_logging",
    "get_logger",
]
