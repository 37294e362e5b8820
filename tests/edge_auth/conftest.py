import json
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from flask import Flask
from jwt.algorithms import RSAAlgorithm

from cognito_edge_auth import AuthConfig, TransportError

REGION = "us-east-1"
USER_POOL_ID = "us-east-1_abcdef123"
CLIENT_ID = "123456789qwertyuiop987abcd"
OTHER_CLIENT_ID = "5uka3k8840tap1g1i1617jh8pi"
USER_POOL_DOMAIN = "my-cognito-domain.auth.us-east-1.amazoncognito.com"
HOST = "d111111abcdef8.cloudfront.net"
ISSUER = f"https://cognito-idp.{REGION}.amazonaws.com/{USER_POOL_ID}"
JWKS_URL = f"{ISSUER}/.well-known/jwks.json"
TOKEN_ENDPOINT = f"https://{USER_POOL_DOMAIN}/oauth2/token"
FROZEN_NOW = datetime(2017, 1, 1, tzinfo=UTC)


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def make_jwk() -> Callable[..., dict[str, Any]]:
    """
    Factory fixture that returns a function.

    Usage in tests:
        record = make_jwk(private_key, kid="k1")
    """

    def _make(key: rsa.RSAPrivateKey, *, kid: str = "kid1") -> dict[str, Any]:
        record = json.loads(RSAAlgorithm.to_jwk(key.public_key()))
        record.update({"kid": kid, "alg": "RS256", "use": "sig"})
        return record

    return _make


@pytest.fixture
def jwks(make_jwk: Callable[..., dict[str, Any]], private_key: rsa.RSAPrivateKey) -> dict[str, Any]:
    return {"keys": [make_jwk(private_key, kid="kid1")]}


@pytest.fixture
def mint(private_key: rsa.RSAPrivateKey) -> Callable[..., str]:
    """
    Factory fixture minting RS256 id tokens for the test user pool.

    Usage in tests:
        token = mint(username="toto")
        token = mint(kid="other", exp_offset=-60, key=other_private_key)
    """

    def _mint(
        *,
        username: str = "toto",
        token_use: str = "id",
        kid: str = "kid1",
        exp_offset: int = 3600,
        key: rsa.RSAPrivateKey | None = None,
        **extra: Any,
    ) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "sub": "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee",
            "iss": ISSUER,
            "token_use": token_use,
            "cognito:username": username,
            "iat": now,
            "exp": now + exp_offset,
        }
        if token_use == "id":
            claims["aud"] = CLIENT_ID
        else:
            claims["client_id"] = CLIENT_ID
        claims.update(extra)
        return jwt.encode(
            claims, key or private_key, algorithm="RS256", headers={"kid": kid}
        )

    return _mint


@pytest.fixture
def params() -> dict[str, Any]:
    return {
        "region": REGION,
        "userPoolId": USER_POOL_ID,
        "userPoolAppId": CLIENT_ID,
        "userPoolDomain": USER_POOL_DOMAIN,
        "cookieExpirationDays": 365,
        "disableCookieDomain": False,
        "httpOnly": False,
        "enableLogout": True,
        "logLevel": "error",
    }


@pytest.fixture
def config(params: dict[str, Any]) -> AuthConfig:
    return AuthConfig.from_params(params)


class FakeHttp:
    """
    Duck-typed HttpClient.
    Serves a fixed JWKS document and token response, and records calls.
    """

    def __init__(
        self,
        jwks: Any = None,
        token_response: Any = None,
        *,
        fail_get: bool = False,
        fail_post: bool = False,
    ):
        self.jwks = jwks
        self.token_response = token_response
        self.fail_get = fail_get
        self.fail_post = fail_post
        self.gets: list[str] = []
        self.posts: list[tuple[str, dict[str, str]]] = []

    async def get_json(self, url: str) -> Any:
        self.gets.append(url)
        if self.fail_get:
            raise TransportError(f"GET {url} failed", status_code=503)
        return self.jwks

    async def post_form(self, url: str, data: Any) -> Any:
        self.posts.append((url, dict(data)))
        if self.fail_post:
            raise TransportError(f"POST {url} returned 400", status_code=400)
        return self.token_response


@pytest.fixture
def fake_http(jwks: dict[str, Any]) -> FakeHttp:
    return FakeHttp(jwks=jwks)


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """
    Factory for edge viewer-request events.

    Usage in tests:
        event = make_event(uri="/logout", cookies=None)
    """

    def _make(
        *,
        uri: str = "/lol",
        querystring: str = "?param=1",
        cookies: list[str] | None = None,
        host: str = HOST,
    ) -> dict[str, Any]:
        headers: dict[str, Any] = {
            "host": [{"key": "Host", "value": host}],
            "user-agent": [{"key": "User-Agent", "value": "curl/7.51.0"}],
        }
        if cookies is not None:
            headers["cookie"] = [{"key": "Cookie", "value": c} for c in cookies]
        return {
            "Records": [
                {
                    "cf": {
                        "config": {
                            "distributionDomainName": "d123.cloudfront.net",
                            "distributionId": "EDFDVBD6EXAMPLE",
                            "eventType": "viewer-request",
                        },
                        "request": {
                            "clientIp": "2001:0db8:85a3:0:0:8a2e:0370:7334",
                            "querystring": querystring,
                            "uri": uri,
                            "method": "GET",
                            "headers": headers,
                        },
                    }
                }
            ]
        }

    return _make


@pytest.fixture()
def app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    return app
