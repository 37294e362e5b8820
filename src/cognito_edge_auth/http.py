"""HTTP access to the identity provider, built on httpx.

`HttpxClient` implements the `HttpClient` protocol: ``GET(url) -> JSON`` for
the JWKS document and ``POST(url, form) -> JSON`` for the token endpoint.

A fresh `httpx.AsyncClient` is opened per call. Edge handlers and Flask's
async views may run each request on its own event loop, and a pooled client
must not outlive the loop that created it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from .errors import TransportError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT: float = 5.0


class HttpxClient:
    """Async JSON client for the identity provider endpoints.

    Args:
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in
            tests.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def get_json(self, url: str) -> Any:
        """GET ``url`` and return the decoded JSON body.

        Raises:
            TransportError: On network failure, non-2xx status or invalid JSON.
        """
        async with self._client() as client:
            try:
                response = await client.get(url, headers={"Accept": "application/json"})
            except httpx.HTTPError as e:
                raise TransportError(f"GET {url} failed: {type(e).__name__}") from e
            return _decode(response)

    async def post_form(self, url: str, data: Mapping[str, str]) -> Any:
        """POST a form-encoded body to ``url`` and return the decoded JSON body.

        Raises:
            TransportError: On network failure, non-2xx status or invalid JSON.
        """
        async with self._client() as client:
            try:
                response = await client.post(
                    url,
                    data=dict(data),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            except httpx.HTTPError as e:
                raise TransportError(f"POST {url} failed: {type(e).__name__}") from e
            return _decode(response)


def _decode(response: httpx.Response) -> Any:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.warning(
            "idp_http_error",
            url=str(response.request.url),
            status_code=response.status_code,
        )
        raise TransportError(
            f"{response.request.method} {response.request.url} returned {response.status_code}",
            status_code=response.status_code,
        ) from e

    try:
        return response.json()
    except ValueError as e:
        raise TransportError(
            f"{response.request.method} {response.request.url} returned a non-JSON body",
            status_code=response.status_code,
        ) from e
