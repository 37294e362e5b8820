"""Edge request/response envelope helpers.

The edge platform hands the function a viewer-request event and expects back
either the request object (to forward it) or a response object. Headers on
both are keyed by lower-cased name and hold a list of ``{"key", "value"}``
entries, so one header name can appear several times::

    "cookie": [{"key": "Cookie", "value": "a=1; b=2"},
               {"key": "Cookie", "value": "c=3"}]
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Final

from .protocols import EdgeEvent, EdgeRequest, EdgeResponse

NO_CACHE_HEADERS: Final[dict[str, str]] = {
    "Cache-Control": "no-cache, no-store, max-age=0, must-revalidate",
    "Pragma": "no-cache",
}


def request_from_event(event: EdgeEvent) -> EdgeRequest:
    """Return the request object of a viewer-request event.

    Raises:
        ValueError: If the event doesn't have the edge envelope shape.
    """
    try:
        return event["Records"][0]["cf"]["request"]
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError("Event is not an edge viewer-request event") from e


def header_values(request: Mapping[str, Any], name: str) -> list[str] | None:
    """Return every value of header ``name``, or None if the header is absent.

    An empty list means the header key is present with no entries.
    """
    entries = request.get("headers", {}).get(name.lower())
    if entries is None:
        return None
    return [entry.get("value", "") for entry in entries]


def host_of(request: Mapping[str, Any]) -> str:
    hosts = header_values(request, "host")
    if not hosts:
        raise ValueError("Request has no Host header")
    return hosts[0]


def redirect(
    location: str,
    *,
    set_cookies: Iterable[str] = (),
) -> EdgeResponse:
    """Build a 302 response carrying the no-cache headers.

    ``set-cookie`` is only present when there is at least one directive.
    """
    headers: dict[str, list[dict[str, str]]] = {
        "location": [{"key": "Location", "value": location}],
    }
    for key, value in NO_CACHE_HEADERS.items():
        headers[key.lower()] = [{"key": key, "value": value}]
    cookies = [{"key": "Set-Cookie", "value": c} for c in set_cookies]
    if cookies:
        headers["set-cookie"] = cookies
    return {"status": "302", "headers": headers}


def is_response(result: Mapping[str, Any]) -> bool:
    """True for a generated response, False for a forwarded request."""
    return "status" in result and "uri" not in result
