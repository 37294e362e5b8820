"""Authentication gatekeeper errors.

This module defines the exception hierarchy for the edge authenticator.
All errors inherit from AuthError to allow catch-all error handling.

Propagation:
    - ConfigurationError stops the authenticator from being built at all.
    - MissingToken, VerificationError, KeyNotFoundError and
      KeySetUnavailableError are recoverable: the orchestrator turns them
      into a login (or logout) redirect.
    - TokenExchangeError is fatal for the current request and surfaces to
      the caller.

Security Note:
    Error messages are intentionally generic to avoid leaking implementation
    details. Token values are never part of a message.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum


class AuthError(Exception):
    """Base exception for all gatekeeper failures.

    Application code can catch this single exception type to handle any
    failure generically.
    """


@dataclass(frozen=True, slots=True)
class ConfigViolation:
    """A single rejected configuration field."""

    field: str
    message: str
    param: str | None = None
    """Name the caller used for the field, when it differs from ``field``."""

    def __str__(self) -> str:
        if self.param and self.param != self.field:
            return f"{self.param} ({self.field}) {self.message}"
        return f"{self.field} {self.message}"


class ConfigurationError(AuthError):
    """Raised when the authenticator parameters are missing or mistyped.

    Carries every violated field at once so an operator can fix the whole
    configuration in one pass.

    Attributes:
        violations: The fields that failed validation, in declaration order.
    """

    def __init__(self, violations: Sequence[ConfigViolation] | str) -> None:
        if isinstance(violations, str):
            self.violations: tuple[ConfigViolation, ...] = ()
            super().__init__(f"Expected params: {violations}")
            return
        self.violations = tuple(violations)
        detail = "; ".join(str(v) for v in self.violations)
        super().__init__(f"Expected params to be valid: {detail}")

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(v.field for v in self.violations)


class MissingToken(AuthError):  # noqa: N818
    """Raised when the request carries no usable session token.

    This should be treated as "unauthenticated" and routed to the login page.
    """


class MissingCookiesError(MissingToken):
    """Raised when the request has no Cookie header at all."""

    def __init__(self, message: str = "Cookies weren't present in the request") -> None:
        super().__init__(message)


class MissingIdTokenError(MissingToken):
    """Raised when cookies are present but none holds this client's idToken."""

    def __init__(self, message: str = "idToken isn't present in the request cookies") -> None:
        super().__init__(message)


class VerificationFailure(StrEnum):
    """Classification of a failed token verification.

    For local handling and logging only. Callers redirect to login instead of
    branching on the specific reason.
    """

    MALFORMED = "malformed"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    UNKNOWN_KEY = "unknown_key"
    KEYSET_UNAVAILABLE = "keyset_unavailable"
    SIGNATURE = "signature"
    EXPIRED = "expired"
    INVALID_CLAIMS = "invalid_claims"
    TOKEN_USE = "token_use"


class VerificationError(AuthError):
    """Raised when a token is present but cannot be verified.

    This occurs when:
    - Token is malformed (not a valid JWT structure)
    - The header algorithm is not in the allowed list
    - Signing key (kid) cannot be resolved
    - Signature verification fails (wrong key or tampered token)
    - The token has expired
    - Issuer, audience or token_use don't match

    Attributes:
        reason: The sub-check that failed.
    """

    def __init__(self, reason: VerificationFailure, message: str = "Token verification failed") -> None:
        super().__init__(message)
        self.reason = reason


class KeyNotFoundError(AuthError):
    """Raised when a key id is still unknown after a fresh JWKS fetch."""


class KeySetUnavailableError(AuthError):
    """Raised when the JWKS document cannot be fetched or parsed.

    Never cached as a negative result: the next lookup fetches again.
    """


class TransportError(AuthError):
    """Raised by the HTTP client on network failure, non-2xx or non-JSON body.

    Attributes:
        status_code: HTTP status when a response was received, else None.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TokenExchangeError(AuthError):
    """Raised when trading an authorization code for tokens fails.

    Fatal for the current request: the code has already been consumed, so
    there is no safe fallback.
    """
