"""Process-wide cache for identity provider signing keys.

The identity provider rotates its signing keys rarely, so keys are kept for
the lifetime of the process: there is no TTL and no eviction. A cold cache
after a rotation costs one extra JWKS fetch.

The cache is append-only per key id. Two concurrent fetches that both add the
same kid leave the first stored key in place, so a reader never observes a
key being swapped underneath it.

Thread Safety:
    All mutations are protected by an internal lock. Reads of a single key are
    plain dict lookups.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jwt import PyJWK


class KeySetCache:
    """In-memory mapping of key id to parsed signing key.

    Example:
        ```python
        cache = KeySetCache()
        cache.add_all([pyjwk_a, pyjwk_b])
        key = cache.get("kid-a")  # PyJWK or None
        ```

    Attributes:
        _keys: Internal dict mapping kid -> PyJWK.
    """

    def __init__(self) -> None:
        self._keys: dict[str, PyJWK] = {}
        self._lock = threading.Lock()

    def get(self, kid: str) -> PyJWK | None:
        """Return the cached key for ``kid``, or None if it was never seen."""
        return self._keys.get(kid)

    def add(self, key: PyJWK) -> bool:
        """Cache a single key.

        Returns:
            True if the key id was new, False if it was already cached.

        Raises:
            ValueError: If the key has no key id.
        """
        kid = key.key_id
        if not kid:
            raise ValueError("PyJWK must have key_id populated to be cached")

        with self._lock:
            if kid in self._keys:
                return False
            self._keys[kid] = key
            return True

    def add_all(self, keys: Iterable[PyJWK]) -> int:
        """Cache every key; returns how many key ids were new."""
        return sum(1 for key in keys if self.add(key))

    def kids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._keys)

    def __contains__(self, kid: object) -> bool:
        return kid in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self.kids())
