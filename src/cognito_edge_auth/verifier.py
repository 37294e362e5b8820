"""JWT verification implementation using PyJWT.

This module provides an async verifier for Cognito user pool tokens that:
- Reads the key ID (kid) and algorithm from the unverified token header
- Resolves the signing key via an injected KeyProvider (may suspend on I/O)
- Validates signature, expiry, issuer and audience using PyJWT
- Checks the Cognito-specific ``token_use`` claim
- Maps every failure to a single VerificationError with a classification

Only the key lookup awaits. Parsing and signature checks are synchronous.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import jwt

from .errors import (
    KeyNotFoundError,
    KeySetUnavailableError,
    VerificationError,
    VerificationFailure,
)
from .logging import get_logger
from .protocols import Claims

if TYPE_CHECKING:
    from .config import AuthConfig
    from .protocols import KeyProvider

logger = get_logger(__name__)

USERNAME_CLAIM = "cognito:username"


@dataclass(frozen=True, slots=True)
class JWTVerifyOptions:
    """Configuration for token validation rules.

    Attributes:
        issuer: Expected ``iss`` claim, the user pool URL. If None, issuer is
            not validated.

        client_id: Application client id the token must be minted for. Id
            tokens carry it in ``aud``, access tokens in ``client_id``. If
            None, the audience is not validated.

        token_use: Expected ``token_use`` claim (``"id"`` or ``"access"``).
            If None, any token kind is accepted.

        algorithms: Allowed signing algorithms. Cognito signs with RS256.

        leeway: Clock skew tolerance in seconds for exp/nbf/iat. Default 0.
    """

    issuer: str | None
    client_id: str | None
    token_use: str | None = "id"
    algorithms: tuple[str, ...] = ("RS256",)
    leeway: int = 0

    @classmethod
    def for_config(cls, config: AuthConfig, *, token_use: str = "id") -> JWTVerifyOptions:
        return cls(issuer=config.issuer, client_id=config.user_pool_app_id, token_use=token_use)


class JWTVerifier:
    """Async JWT verification against a user pool key set.

    Architecture:
        1. Extract kid and alg from token header (unverified)
        2. Resolve signing key via KeyProvider
        3. Verify signature and claims via PyJWT
        4. Check token_use / client_id
        5. Map exceptions to VerificationError

    Example:
        ```python
        verifier = JWTVerifier(key_provider=provider, options=options)

        try:
            claims = await verifier.verify(raw_token)
        except VerificationError:
            ...  # redirect to login
        ```
    """

    def __init__(self, key_provider: KeyProvider, options: JWTVerifyOptions) -> None:
        self._keys = key_provider
        self._opt = options

    @property
    def options(self) -> JWTVerifyOptions:
        return self._opt

    async def verify(self, token: str) -> Claims:
        """Verify a JWT and return its decoded claims.

        Raises:
            VerificationError: With ``reason`` set to the failing sub-check.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise self._fail(VerificationFailure.MALFORMED) from e

        kid = header.get("kid")
        if not kid or not isinstance(kid, str):
            raise self._fail(VerificationFailure.MALFORMED)

        # Reject before any network work so forged headers can't trigger fetches.
        if header.get("alg") not in self._opt.algorithms:
            raise self._fail(VerificationFailure.UNSUPPORTED_ALGORITHM, kid=kid)

        try:
            key = await self._keys.get_key_for_token(kid)
        except KeyNotFoundError as e:
            raise self._fail(VerificationFailure.UNKNOWN_KEY, kid=kid) from e
        except KeySetUnavailableError as e:
            raise self._fail(VerificationFailure.KEYSET_UNAVAILABLE, kid=kid) from e

        claims = self._decode(token, key, kid)

        if self._opt.token_use is not None and claims.get("token_use") != self._opt.token_use:
            raise self._fail(VerificationFailure.TOKEN_USE, kid=kid)

        if (
            self._opt.client_id is not None
            and self._opt.token_use == "access"
            and claims.get("client_id") != self._opt.client_id
        ):
            raise self._fail(VerificationFailure.INVALID_CLAIMS, kid=kid)

        return claims

    def _decode(self, token: str, key: Any, kid: str) -> dict[str, Any]:
        # Access tokens carry no aud; their client is checked in verify().
        audience = self._opt.client_id if self._opt.token_use != "access" else None
        try:
            return jwt.decode(
                token,
                key,
                algorithms=list(self._opt.algorithms),
                audience=audience,
                issuer=self._opt.issuer,
                leeway=self._opt.leeway,
                options={
                    "require": ["exp"],
                    "verify_aud": audience is not None,
                },
            )
        except jwt.ExpiredSignatureError as e:
            raise self._fail(VerificationFailure.EXPIRED, kid=kid) from e
        except jwt.InvalidSignatureError as e:
            raise self._fail(VerificationFailure.SIGNATURE, kid=kid) from e
        except jwt.DecodeError as e:
            raise self._fail(VerificationFailure.MALFORMED, kid=kid) from e
        except jwt.InvalidTokenError as e:
            raise self._fail(VerificationFailure.INVALID_CLAIMS, kid=kid) from e

    @staticmethod
    def _fail(reason: VerificationFailure, **context: Any) -> VerificationError:
        logger.info("token_verification_failed", reason=reason.value, **context)
        return VerificationError(reason)
