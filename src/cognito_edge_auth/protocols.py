"""Protocol definitions for the edge authenticator.

This module defines structural interfaces using Protocol (PEP 544) for:
- HTTP access to the identity provider
- Key resolution
- Token verification

Using protocols allows for duck-typing and easier testing/mocking without
requiring explicit inheritance. Any class that implements the required methods
satisfies the protocol.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from jwt import PyJWK

# ============================================================================
# Type Aliases
# ============================================================================

type Claims = Mapping[str, Any]
"""Represents the decoded JWT payload as an immutable mapping."""

type EdgeEvent = Mapping[str, Any]
"""An edge viewer-request event (``{"Records": [{"cf": {"request": ...}}]}``)."""

type EdgeRequest = dict[str, Any]
"""The request object inside an edge event, forwarded unchanged on success."""

type EdgeResponse = dict[str, Any]
"""A generated edge response (``status``, ``statusDescription``, ``headers``)."""


# ============================================================================
# Core Protocols
# ============================================================================


class HttpClient(Protocol):
    """Protocol for the raw HTTP calls made to the identity provider.

    Both methods return the decoded JSON body of a 2xx response and raise
    TransportError for anything else.
    """

    async def get_json(self, url: str) -> Any: ...

    async def post_form(self, url: str, data: Mapping[str, str]) -> Any: ...


class KeyProvider(Protocol):
    """Protocol for resolving JWT signing keys.

    Implementers must provide a get_key_for_token() coroutine that resolves a
    signing key given a key ID (kid) from the JWT header.
    """

    async def get_key_for_token(self, kid: str) -> PyJWK:
        """Resolve a signing key by its ID.

        Raises:
            KeyNotFoundError: If kid is unknown even after a fresh fetch.
            KeySetUnavailableError: If the key set could not be fetched.
        """
        ...


class TokenVerifier(Protocol):
    """Protocol for JWT verification implementations."""

    async def verify(self, token: str) -> Claims:
        """Verify a JWT and return its decoded claims.

        Raises:
            VerificationError: Token is malformed, signed by an unknown key,
                carries a bad signature, has expired or has unexpected claims.
        """
        ...
