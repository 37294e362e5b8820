"""
Tests for AuthConfig construction and validation.
"""

from typing import Any

import pytest

import cognito_edge_auth as m
from conftest import CLIENT_ID, ISSUER, JWKS_URL, TOKEN_ENDPOINT


class TestAuthConfigDefaults:
    def test_from_params_builds_config(self, params: dict[str, Any]):
        config = m.AuthConfig.from_params(params)
        assert config.user_pool_app_id == CLIENT_ID
        assert config.enable_logout is True

    @pytest.mark.parametrize(
        "missing, attr, default",
        [
            ("cookieExpirationDays", "cookie_expiration_days", 365),
            ("disableCookieDomain", "disable_cookie_domain", False),
            ("httpOnly", "http_only", False),
            ("enableLogout", "enable_logout", False),
        ],
    )
    def test_optional_fields_default(self, params: dict[str, Any], missing: str, attr: str, default: Any):
        del params[missing]
        config = m.AuthConfig.from_params(params)
        assert getattr(config, attr) == default

    def test_same_site_defaults_to_unset(self, config: m.AuthConfig):
        assert config.same_site is None

    def test_same_site_is_normalized_to_enum(self, params: dict[str, Any]):
        params["sameSite"] = "Strict"
        config = m.AuthConfig.from_params(params)
        assert config.same_site is m.SameSite.STRICT

    def test_empty_same_site_means_unset(self, params: dict[str, Any]):
        params["sameSite"] = ""
        assert m.AuthConfig.from_params(params).same_site is None

    def test_derived_endpoints(self, config: m.AuthConfig):
        assert config.issuer == ISSUER
        assert config.jwks_url == JWKS_URL
        assert config.token_endpoint == TOKEN_ENDPOINT
        assert config.cookie_base == f"CognitoIdentityServiceProvider.{CLIENT_ID}"

    def test_snake_case_params_are_accepted(self, params: dict[str, Any]):
        params["http_only"] = True
        del params["httpOnly"]
        assert m.AuthConfig.from_params(params).http_only is True

    def test_config_is_immutable(self, config: m.AuthConfig):
        with pytest.raises(AttributeError):
            config.region = "eu-west-1"  # type: ignore[misc]


class TestAuthConfigValidation:
    def test_none_params_rejected(self):
        with pytest.raises(m.ConfigurationError, match="Expected params"):
            m.AuthConfig.from_params(None)

    @pytest.mark.parametrize(
        "key, field",
        [
            ("region", "region"),
            ("userPoolId", "user_pool_id"),
            ("userPoolAppId", "user_pool_app_id"),
            ("userPoolDomain", "user_pool_domain"),
        ],
    )
    def test_missing_required_field(self, params: dict[str, Any], key: str, field: str):
        del params[key]
        with pytest.raises(m.ConfigurationError, match=field) as exc:
            m.AuthConfig.from_params(params)
        assert exc.value.fields == (field,)
        assert key in str(exc.value)

    @pytest.mark.parametrize(
        "key, field",
        [
            ("region", "region"),
            ("userPoolId", "user_pool_id"),
            ("userPoolAppId", "user_pool_app_id"),
            ("userPoolDomain", "user_pool_domain"),
        ],
    )
    def test_non_string_required_field(self, params: dict[str, Any], key: str, field: str):
        params[key] = 123
        with pytest.raises(m.ConfigurationError, match=field) as exc:
            m.AuthConfig.from_params(params)
        assert key in str(exc.value)

    @pytest.mark.parametrize(
        "key, field",
        [
            ("cookieExpirationDays", "cookie_expiration_days"),
            ("disableCookieDomain", "disable_cookie_domain"),
            ("httpOnly", "http_only"),
            ("enableLogout", "enable_logout"),
        ],
    )
    def test_stringified_values_rejected(self, params: dict[str, Any], key: str, field: str):
        params[key] = "123"
        with pytest.raises(m.ConfigurationError, match=field) as exc:
            m.AuthConfig.from_params(params)
        assert key in str(exc.value)

    def test_error_names_the_camel_case_key(self, params: dict[str, Any]):
        del params["userPoolId"]
        with pytest.raises(m.ConfigurationError) as exc:
            m.AuthConfig.from_params(params)
        assert str(exc.value) == (
            "Expected params to be valid: userPoolId (user_pool_id) must be a non-empty string"
        )

    def test_snake_case_key_is_reported_as_given(self, params: dict[str, Any]):
        del params["httpOnly"]
        params["http_only"] = "yes"
        with pytest.raises(m.ConfigurationError) as exc:
            m.AuthConfig.from_params(params)
        assert str(exc.value) == "Expected params to be valid: http_only must be a boolean"

    @pytest.mark.parametrize("days", [-1, 36501, 3_000_000])
    def test_day_count_out_of_range_rejected(self, params: dict[str, Any], days: int):
        params["cookieExpirationDays"] = days
        with pytest.raises(m.ConfigurationError, match="cookieExpirationDays"):
            m.AuthConfig.from_params(params)

    def test_longest_day_count_builds_cookies(self, params: dict[str, Any]):
        params["cookieExpirationDays"] = m.config.MAX_COOKIE_EXPIRATION_DAYS
        codec = m.SessionCookieCodec(m.AuthConfig.from_params(params))
        tokens = m.TokenSet(access_token="a", refresh_token="r", id_token="i")
        assert len(codec.build_session_cookies(tokens, "toto", "example.com")) == 5

    def test_bool_is_not_a_day_count(self, params: dict[str, Any]):
        params["cookieExpirationDays"] = True
        with pytest.raises(m.ConfigurationError, match="cookie_expiration_days"):
            m.AuthConfig.from_params(params)

    @pytest.mark.parametrize("value", ["123", "lax", "STRICT", "none"])
    def test_unknown_same_site_rejected(self, params: dict[str, Any], value: str):
        params["sameSite"] = value
        with pytest.raises(m.ConfigurationError, match="Expected params.*same_site"):
            m.AuthConfig.from_params(params)

    def test_all_violations_reported_together(self, params: dict[str, Any]):
        del params["region"]
        params["httpOnly"] = "yes"
        params["sameSite"] = "Loose"
        with pytest.raises(m.ConfigurationError) as exc:
            m.AuthConfig.from_params(params)
        assert exc.value.fields == ("region", "http_only", "same_site")

    def test_logout_uri_must_be_a_path(self, params: dict[str, Any]):
        params["logoutUri"] = "logout"
        with pytest.raises(m.ConfigurationError, match="logout_uri"):
            m.AuthConfig.from_params(params)

    def test_direct_construction_validates(self):
        with pytest.raises(m.ConfigurationError, match="user_pool_domain"):
            m.AuthConfig(
                region="us-east-1",
                user_pool_id="us-east-1_abcdef123",
                user_pool_app_id=CLIENT_ID,
                user_pool_domain="",
            )


class TestAuthConfigFromEnv:
    def test_reads_prefixed_variables(self):
        environ = {
            "EDGE_AUTH_REGION": "us-east-1",
            "EDGE_AUTH_USER_POOL_ID": "us-east-1_abcdef123",
            "EDGE_AUTH_USER_POOL_APP_ID": CLIENT_ID,
            "EDGE_AUTH_USER_POOL_DOMAIN": "auth.example.com",
            "EDGE_AUTH_COOKIE_EXPIRATION_DAYS": "30",
            "EDGE_AUTH_HTTP_ONLY": "true",
            "EDGE_AUTH_SAME_SITE": "Lax",
            "EDGE_AUTH_ENABLE_LOGOUT": "0",
        }
        config = m.AuthConfig.from_env(environ=environ)
        assert config.cookie_expiration_days == 30
        assert config.http_only is True
        assert config.enable_logout is False
        assert config.same_site is m.SameSite.LAX

    def test_bad_values_fail_validation(self):
        environ = {
            "EDGE_AUTH_REGION": "us-east-1",
            "EDGE_AUTH_USER_POOL_ID": "us-east-1_abcdef123",
            "EDGE_AUTH_USER_POOL_APP_ID": CLIENT_ID,
            "EDGE_AUTH_USER_POOL_DOMAIN": "auth.example.com",
            "EDGE_AUTH_COOKIE_EXPIRATION_DAYS": "a year",
            "EDGE_AUTH_HTTP_ONLY": "maybe",
        }
        with pytest.raises(m.ConfigurationError) as exc:
            m.AuthConfig.from_env(environ=environ)
        assert exc.value.fields == ("cookie_expiration_days", "http_only")
