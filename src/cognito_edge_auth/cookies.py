"""Session cookie codec.

A session is five cookies, named the way the identity provider's own client
libraries name them::

    <prefix>.<appClientId>.<username>.accessToken
    <prefix>.<appClientId>.<username>.idToken
    <prefix>.<appClientId>.<username>.refreshToken
    <prefix>.<appClientId>.<username>.tokenScopesString
    <prefix>.<appClientId>.LastAuthUser

Several application clients of one user pool can share a browser, so a Cookie
header may hold sessions for other client ids under the same prefix. Only
names with this client's id ever match.

The two directions are pure functions: `parse_cookie_header` turns header text
into name/value pairs and `format_set_cookie` turns attributes into a
``Set-Cookie`` directive. `SessionCookieCodec` binds them to a configuration.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Final
from urllib.parse import quote

from .errors import MissingCookiesError, MissingIdTokenError

if TYPE_CHECKING:
    from .config import AuthConfig, SameSite
    from .tokens import TokenSet

TOKEN_SCOPES: Final[str] = "phone email profile openid aws.cognito.signin.user.admin"
"""Scopes the hosted UI grants; stored URL-encoded in tokenScopesString."""

LAST_AUTH_USER: Final[str] = "LastAuthUser"

EXPIRED_PLACEHOLDER: Final[str] = "0"

EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=UTC)


class TokenKind(StrEnum):
    ACCESS = "accessToken"
    ID = "idToken"
    REFRESH = "refreshToken"
    SCOPES = "tokenScopesString"


# ============================================================================
# Pure helpers
# ============================================================================


def parse_cookie_header(value: str) -> list[tuple[str, str]]:
    """Split one Cookie header value into ordered ``(name, value)`` pairs.

    Pairs without ``=`` and empty segments (``a=1;;b=2``, trailing ``;``) are
    dropped. Names and values are stripped of surrounding whitespace but not
    otherwise decoded.
    """
    pairs: list[tuple[str, str]] = []
    for segment in value.split(";"):
        name, sep, val = segment.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        pairs.append((name, val.strip()))
    return pairs


def format_cookie_date(moment: datetime) -> str:
    """Format a datetime as an HTTP cookie date: ``Sun, 01 Jan 2017 00:00:00 GMT``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return format_datetime(moment.astimezone(UTC), usegmt=True)


def format_set_cookie(
    name: str,
    value: str,
    *,
    expires: datetime,
    domain: str | None = None,
    http_only: bool = False,
    same_site: SameSite | str | None = None,
) -> str:
    """Build a ``Set-Cookie`` directive.

    Attribute order is fixed:
    ``name=value; [Domain=d; ]Expires=date; Secure[; HttpOnly][; SameSite=p]``.
    """
    parts = [f"{name}={value}"]
    if domain:
        parts.append(f"Domain={domain}")
    parts.append(f"Expires={format_cookie_date(expires)}")
    parts.append("Secure")
    if http_only:
        parts.append("HttpOnly")
    if same_site:
        parts.append(f"SameSite={same_site}")
    return "; ".join(parts)


# ============================================================================
# Codec
# ============================================================================


class SessionCookieCodec:
    """Reads and writes the session cookies of one application client.

    Args:
        config: Supplies the cookie prefix, app client id and the Domain,
            Expires, HttpOnly and SameSite policies.
    """

    def __init__(self, config: AuthConfig) -> None:
        self._config = config
        self._base = config.cookie_base
        self._id_token_name = re.compile(
            rf"^{re.escape(self._base)}\..+\.{TokenKind.ID}$", re.DOTALL
        )

    def cookie_name(self, username: str, kind: TokenKind) -> str:
        # Username is used verbatim, as the IdP's client libraries do.
        return f"{self._base}.{username}.{kind}"

    @property
    def last_auth_user_name(self) -> str:
        return f"{self._base}.{LAST_AUTH_USER}"

    # -- reading -----------------------------------------------------------

    def extract_id_token(self, cookie_headers: Sequence[str] | None) -> str:
        """Return this client's id token from the request's Cookie headers.

        Args:
            cookie_headers: Every Cookie header value of the request, or None
                when the request has no Cookie header at all.

        Raises:
            MissingCookiesError: If ``cookie_headers`` is None.
            MissingIdTokenError: If no cookie named
                ``<prefix>.<appClientId>.<anything>.idToken`` is present.
        """
        if cookie_headers is None:
            raise MissingCookiesError()

        for name, value in self._pairs(cookie_headers):
            if self._id_token_name.match(name):
                return value

        raise MissingIdTokenError()

    def extract_last_auth_user(self, cookie_headers: Sequence[str] | None) -> str | None:
        """Return the username of this client's LastAuthUser cookie, if any."""
        if cookie_headers is None:
            return None
        wanted = self.last_auth_user_name
        for name, value in self._pairs(cookie_headers):
            if name == wanted and value:
                return value
        return None

    @staticmethod
    def _pairs(cookie_headers: Iterable[str]) -> Iterable[tuple[str, str]]:
        for header in cookie_headers:
            yield from parse_cookie_header(header)

    # -- writing -----------------------------------------------------------

    def build_session_cookies(
        self,
        tokens: TokenSet,
        username: str,
        domain: str,
        *,
        now: datetime | None = None,
    ) -> list[str]:
        """Build the five Set-Cookie directives establishing a session.

        Expiry is ``now + cookie_expiration_days``. Deterministic for a given
        ``now``.
        """
        now = now or datetime.now(UTC)
        expires = now + timedelta(days=self._config.cookie_expiration_days)
        values = {
            TokenKind.ACCESS: tokens.access_token,
            TokenKind.ID: tokens.id_token,
            TokenKind.REFRESH: tokens.refresh_token,
        }
        return self._directives(values, username, domain, expires)

    def build_expired_cookies(self, username: str, domain: str) -> list[str]:
        """Build the five Set-Cookie directives that end a session.

        Token values are replaced with a placeholder and every cookie expires
        at the Unix epoch.
        """
        values = {
            TokenKind.ACCESS: EXPIRED_PLACEHOLDER,
            TokenKind.ID: EXPIRED_PLACEHOLDER,
            TokenKind.REFRESH: EXPIRED_PLACEHOLDER,
        }
        return self._directives(values, username, domain, EPOCH)

    def _directives(
        self,
        values: dict[TokenKind, str],
        username: str,
        domain: str,
        expires: datetime,
    ) -> list[str]:
        cookies = [
            (self.cookie_name(username, TokenKind.ACCESS), values[TokenKind.ACCESS]),
            (self.cookie_name(username, TokenKind.ID), values[TokenKind.ID]),
            (self.cookie_name(username, TokenKind.REFRESH), values[TokenKind.REFRESH]),
            (self.cookie_name(username, TokenKind.SCOPES), quote(TOKEN_SCOPES, safe="")),
            (self.last_auth_user_name, username),
        ]
        cfg = self._config
        return [
            format_set_cookie(
                name,
                value,
                expires=expires,
                domain=None if cfg.disable_cookie_domain else domain,
                http_only=cfg.http_only,
                same_site=cfg.same_site,
            )
            for name, value in cookies
        ]
