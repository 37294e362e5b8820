"""Authenticator configuration.

`AuthConfig` is built once at startup and shared read-only by every request.
Validation runs in the constructor and reports every bad field at once, so an
instance either exists fully valid or not at all.

Parameters can come from three places:

- keyword arguments (snake_case field names),
- `AuthConfig.from_params` with the camelCase names used by edge deployments,
- `AuthConfig.from_env`, which reads ``EDGE_AUTH_*`` variables (and a ``.env``
  file, if present).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from typing import Any, Final

from dotenv import load_dotenv

from .errors import ConfigurationError, ConfigViolation

DEFAULT_COOKIE_PREFIX: Final[str] = "CognitoIdentityServiceProvider"
"""Cookie name prefix used by the identity provider's own client libraries."""

DEFAULT_COOKIE_EXPIRATION_DAYS: Final[int] = 365
MAX_COOKIE_EXPIRATION_DAYS: Final[int] = 36500

LOG_LEVELS: Final[frozenset[str]] = frozenset(
    {"debug", "info", "warning", "error", "critical", "silent"}
)

_REQUIRED_STRINGS: Final[tuple[str, ...]] = (
    "region",
    "user_pool_id",
    "user_pool_app_id",
    "user_pool_domain",
)

_BOOLEANS: Final[tuple[str, ...]] = ("disable_cookie_domain", "http_only", "enable_logout")

_PARAM_ALIASES: Final[dict[str, str]] = {
    "region": "region",
    "userPoolId": "user_pool_id",
    "userPoolAppId": "user_pool_app_id",
    "userPoolDomain": "user_pool_domain",
    "cookieExpirationDays": "cookie_expiration_days",
    "disableCookieDomain": "disable_cookie_domain",
    "httpOnly": "http_only",
    "sameSite": "same_site",
    "enableLogout": "enable_logout",
    "logoutUri": "logout_uri",
    "cookiePrefix": "cookie_prefix",
    "logLevel": "log_level",
}

_FIELD_PARAMS: Final[dict[str, str]] = {field: param for param, field in _PARAM_ALIASES.items()}


class SameSite(StrEnum):
    """Permitted SameSite cookie policies (case-sensitive)."""

    LAX = "Lax"
    STRICT = "Strict"
    NONE = "None"


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Immutable authenticator settings.

    Attributes:
        region: Identity provider region, e.g. ``us-east-1``.
        user_pool_id: User pool identifier.
        user_pool_app_id: Application (client) identifier.
        user_pool_domain: Hosted UI domain, without scheme.
        cookie_expiration_days: Lifetime of session cookies.
        disable_cookie_domain: Omit the ``Domain=`` attribute on cookies.
        http_only: Add ``HttpOnly`` to cookies.
        same_site: Add ``SameSite=<policy>`` to cookies when set.
        enable_logout: Handle requests to ``logout_uri``.
        logout_uri: Path that triggers the logout flow.
        cookie_prefix: First segment of every session cookie name.
        log_level: Verbosity for `configure_logging`; no effect on decisions.

    Raises:
        ConfigurationError: If any field is missing or has the wrong type.
    """

    region: str
    user_pool_id: str
    user_pool_app_id: str
    user_pool_domain: str
    cookie_expiration_days: int = DEFAULT_COOKIE_EXPIRATION_DAYS
    disable_cookie_domain: bool = False
    http_only: bool = False
    same_site: SameSite | None = None
    enable_logout: bool = False
    logout_uri: str = "/logout"
    cookie_prefix: str = DEFAULT_COOKIE_PREFIX
    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.same_site == "":
            object.__setattr__(self, "same_site", None)
        violations = _validate(self)
        if violations:
            raise ConfigurationError(violations)
        # Normalize after validation so callers may pass the plain string.
        if self.same_site is not None and not isinstance(self.same_site, SameSite):
            object.__setattr__(self, "same_site", SameSite(self.same_site))

    # ------------------------------------------------------------------
    # Derived endpoints
    # ------------------------------------------------------------------

    @property
    def issuer(self) -> str:
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"

    @property
    def hosted_ui_base(self) -> str:
        return f"https://{self.user_pool_domain}"

    @property
    def token_endpoint(self) -> str:
        return f"{self.hosted_ui_base}/oauth2/token"

    @property
    def cookie_base(self) -> str:
        """Common prefix of this client's cookies: ``<prefix>.<appClientId>``."""
        return f"{self.cookie_prefix}.{self.user_pool_app_id}"

    # ------------------------------------------------------------------
    # Alternative constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None) -> AuthConfig:
        """Build a config from a parameter mapping.

        Accepts the camelCase names (``userPoolId``, ``httpOnly``...) as well
        as the snake_case field names. Unknown keys are ignored.

        Raises:
            ConfigurationError: If params is None, or any value is invalid.
        """
        if params is None or not isinstance(params, Mapping):
            raise ConfigurationError("a mapping of authenticator parameters is required")

        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        used: dict[str, str] = {}
        for key, value in params.items():
            name = _PARAM_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
                used[name] = key

        # Absent required fields fail the same check as empty ones.
        for name in _REQUIRED_STRINGS:
            kwargs.setdefault(name, None)

        try:
            return cls(**kwargs)
        except ConfigurationError as e:
            # Report each field under the key the caller passed, or its
            # camelCase name when it was absent.
            raise ConfigurationError(
                [replace(v, param=used.get(v.field, _FIELD_PARAMS.get(v.field))) for v in e.violations]
            ) from None

    @classmethod
    def from_env(
        cls,
        prefix: str = "EDGE_AUTH_",
        *,
        environ: Mapping[str, str] | None = None,
        dotenv_path: str | None = None,
    ) -> AuthConfig:
        """Build a config from environment variables.

        Variables are the upper-cased field names behind ``prefix``, e.g.
        ``EDGE_AUTH_USER_POOL_ID``. Booleans accept ``true``/``false``/``1``/
        ``0``; ``cookie_expiration_days`` must be an integer literal.
        """
        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ

        params: dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            params[f.name] = _coerce_env(f.name, raw)
        return cls.from_params(params)


def _coerce_env(name: str, raw: str) -> Any:
    value = raw.strip()
    if name in _BOOLEANS:
        lowered = value.lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no", ""}:
            return False
        return value
    if name == "cookie_expiration_days":
        try:
            return int(value)
        except ValueError:
            return value
    if name == "same_site" and not value:
        return None
    return value


def _validate(config: AuthConfig) -> list[ConfigViolation]:
    """Return every violated field; an empty list means the config is usable."""
    violations: list[ConfigViolation] = []

    for name in _REQUIRED_STRINGS:
        value = getattr(config, name)
        if not isinstance(value, str) or not value.strip():
            violations.append(ConfigViolation(name, "must be a non-empty string"))

    days = config.cookie_expiration_days
    # bool is an int subclass; a flag is never a day count.
    if type(days) is not int or not 0 <= days <= MAX_COOKIE_EXPIRATION_DAYS:
        violations.append(
            ConfigViolation(
                "cookie_expiration_days",
                f"must be an integer between 0 and {MAX_COOKIE_EXPIRATION_DAYS}",
            )
        )

    for name in _BOOLEANS:
        if type(getattr(config, name)) is not bool:
            violations.append(ConfigViolation(name, "must be a boolean"))

    same_site = config.same_site
    allowed = [s.value for s in SameSite]
    if same_site is not None and (not isinstance(same_site, str) or same_site not in allowed):
        violations.append(ConfigViolation("same_site", f"must be one of {', '.join(allowed)}"))

    if not isinstance(config.logout_uri, str) or not config.logout_uri.startswith("/"):
        violations.append(ConfigViolation("logout_uri", "must be a path starting with '/'"))

    if not isinstance(config.cookie_prefix, str) or not config.cookie_prefix.strip():
        violations.append(ConfigViolation("cookie_prefix", "must be a non-empty string"))

    if not isinstance(config.log_level, str) or config.log_level.lower() not in LOG_LEVELS:
        violations.append(ConfigViolation("log_level", "must be a known log level"))

    return violations
