"""
Cognito user pool JWKS key provider.

Resolves JWT signing keys from the user pool's well-known JWKS endpoint and
keeps them in a process-wide `KeySetCache`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from jwt import PyJWK
from jwt.exceptions import InvalidKeyError, PyJWKError

from ..cache_stores import KeySetCache
from ..errors import KeyNotFoundError, KeySetUnavailableError, TransportError
from ..logging import get_logger
from ..protocols import HttpClient

logger = get_logger(__name__)


class CognitoJWKSProvider:
    """
    Resolves JWT signing keys for one Cognito user pool.

    Resolution Strategy
    -------------------
    For each requested `kid`:

    1) Cache lookup (fast path)
        - If key is cached → return immediately, no I/O.

    2) Fetch on miss
        - GET `https://cognito-idp.<region>.amazonaws.com/<pool>/.well-known/jwks.json`
        - Parse every key record and cache all of them, not just the one
          requested, so later lookups for sibling keys are free.

    3) Failure
        - Still unknown after that single fetch → KeyNotFoundError.
        - Fetch or parse failure → KeySetUnavailableError. Nothing is
          remembered about the failure; the next lookup fetches again.

    There is no background refresh and no retry loop: one lookup costs at most
    one network call.

    Parameters
    ----------
    jwks_url : str
        Full URL of the JWKS document.

    http : HttpClient
        Client used for the JWKS GET.

    cache : KeySetCache
        Shared key cache. Pass the same instance to every provider of the
        same pool to share fetched keys.

    Example
    -------
    provider = CognitoJWKSProvider.for_user_pool(
        "us-east-1", "us-east-1_abcdef123", http=HttpxClient()
    )

    key = await provider.get_key_for_token(kid)
    """

    def __init__(
        self,
        jwks_url: str,
        http: HttpClient,
        cache: KeySetCache | None = None,
    ) -> None:
        self._jwks_url = jwks_url
        self._http = http
        self._cache = cache if cache is not None else KeySetCache()

    @classmethod
    def for_user_pool(
        cls,
        region: str,
        user_pool_id: str,
        *,
        http: HttpClient,
        cache: KeySetCache | None = None,
    ) -> CognitoJWKSProvider:
        url = f"https://cognito-idp.{region}.amazonaws.com/{user_pool_id}/.well-known/jwks.json"
        return cls(url, http=http, cache=cache)

    @property
    def jwks_url(self) -> str:
        return self._jwks_url

    @property
    def cache(self) -> KeySetCache:
        return self._cache

    async def get_key_for_token(self, kid: str) -> PyJWK:
        cached = self._cache.get(kid)
        if cached is not None:
            return cached

        await self.refresh()

        key = self._cache.get(kid)
        if key is None:
            logger.info("jwks_kid_not_found", kid=kid, known=len(self._cache))
            raise KeyNotFoundError(f"Signing key {kid!r} not found in the user pool key set")
        return key

    async def refresh(self) -> int:
        """Fetch the JWKS document and cache every usable key.

        Returns:
            Number of key ids that were not cached before.

        Raises:
            KeySetUnavailableError: If the document can't be fetched or has no
                ``keys`` array.
        """
        try:
            payload = await self._http.get_json(self._jwks_url)
        except TransportError as e:
            logger.warning("jwks_fetch_failed", url=self._jwks_url, error=str(e))
            raise KeySetUnavailableError("Unable to fetch the signing key set") from e

        added = self.cache_jwks(payload)
        logger.info("jwks_fetched", url=self._jwks_url, added=added, known=len(self._cache))
        return added

    def cache_jwks(self, jwks: Any) -> int:
        """Cache the keys of an already-loaded JWKS document.

        Malformed key records are skipped; the rest are still cached.

        Raises:
            KeySetUnavailableError: If ``jwks`` isn't a ``{"keys": [...]}`` object.
        """
        records = jwks.get("keys") if isinstance(jwks, Mapping) else None
        if not isinstance(records, list):
            raise KeySetUnavailableError("JWKS document is missing the 'keys' array")
        return self._cache.add_all(_parse_keys(records))


def _parse_keys(records: Iterable[Any]) -> Iterable[PyJWK]:
    for record in records:
        if not isinstance(record, Mapping) or not isinstance(record.get("kid"), str):
            logger.warning("jwks_record_skipped", reason="missing kid")
            continue
        try:
            yield PyJWK.from_dict(dict(record))
        except (PyJWKError, InvalidKeyError, ValueError, TypeError) as e:
            logger.warning("jwks_record_skipped", kid=record["kid"], reason=str(e))
