"""Flask extension running the edge authenticator in front of an app.

Useful where the edge function can't run (local development, an origin that
must enforce the same session on its own) or to exercise the gatekeeper end
to end with Flask's test client.

Security Model:
1. Convert the Flask request into an edge viewer-request event
2. Run `Authenticator.handle` on it
3. Forward: let the view run, as an origin behind the edge would
4. Redirect: return the 302 with its Set-Cookie and cache headers
5. Failed code exchange: HTTP 502
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Final

from flask import Flask, Response, abort, request

from .edge import is_response
from .errors import TokenExchangeError
from .logging import get_logger

if TYPE_CHECKING:
    from flask import Request

    from .authenticator import Authenticator
    from .protocols import EdgeEvent, EdgeResponse

_EXT_KEY: Final[str] = "cognito_edge_auth"
"""Flask extensions registry key for EdgeAuthExtension."""

logger = get_logger(__name__)


class EdgeAuthExtension:
    """
    Flask glue for the edge authenticator.

    Responsibilities:
    - Translate each incoming request into the edge envelope
    - Run the authenticator
    - Turn redirects into Flask responses
    - Skip configured paths (health checks, static assets)

    Pattern:
        gate = EdgeAuthExtension()
        gate.init_app(app, authenticator=authenticator)

    Usage:
        gate = EdgeAuthExtension(authenticator, app)
    """

    def __init__(
        self,
        authenticator: Authenticator | None = None,
        app: Flask | None = None,
        *,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        self._authenticator = authenticator
        self._exempt = frozenset(exempt_paths)
        if app is not None:
            self.init_app(app)

    def init_app(
        self,
        app: Flask,
        *,
        authenticator: Authenticator | None = None,
        exempt_paths: Iterable[str] | None = None,
    ) -> None:
        """Register the gate as a ``before_request`` hook.

        Args:
            app (Flask): The Flask application instance.
            authenticator (Authenticator | None, optional): Replaces the
                authenticator given to the constructor.
            exempt_paths (Iterable[str] | None, optional): Paths served
                without authentication.
        """
        if authenticator is not None:
            self._authenticator = authenticator
        if exempt_paths is not None:
            self._exempt = frozenset(exempt_paths)
        if self._authenticator is None:
            raise RuntimeError("EdgeAuthExtension needs an Authenticator")

        app.extensions[_EXT_KEY] = self
        app.before_request(self._gate)

    async def _gate(self) -> Response | None:
        if request.path in self._exempt:
            return None

        authenticator = self._authenticator
        if authenticator is None:
            raise RuntimeError("EdgeAuthExtension needs an Authenticator")
        try:
            result = await authenticator.handle(event_from_request(request))
        except TokenExchangeError:
            logger.error("flask_token_exchange_failed", path=request.path)
            abort(502, description="Token exchange failed")

        if is_response(result):
            return response_from_edge(result)
        return None


def event_from_request(req: Request) -> EdgeEvent:
    """Build an edge viewer-request event from a Flask request."""
    headers: dict[str, list[dict[str, str]]] = {}
    for key, value in req.headers.items():
        headers.setdefault(key.lower(), []).append({"key": key, "value": value})

    cf_request: dict[str, Any] = {
        "clientIp": req.remote_addr or "",
        "method": req.method,
        "uri": req.path,
        "querystring": req.query_string.decode("latin-1"),
        "headers": headers,
    }
    return {"Records": [{"cf": {"config": {"eventType": "viewer-request"}, "request": cf_request}}]}


def response_from_edge(result: EdgeResponse) -> Response:
    """Convert an edge response object into a Flask response."""
    response = Response(status=int(result["status"]))
    for entries in result.get("headers", {}).values():
        for entry in entries:
            response.headers.add(entry["key"], entry["value"])
    return response
