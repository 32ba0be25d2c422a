import json
import os
import time
from datetime import datetime, timedelta, timezone

import boto3
import jwt
from jwt.algorithms import RSAAlgorithm
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from moto import mock_aws

# Settings are read once, so the environment must be in place before import
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["DDB_TABLE_NAME"] = "worthwatch-test"
os.environ["USER_POOL_ID"] = "us-east-1_TestPool"
os.environ["USER_POOL_CLIENT_ID"] = "test-client-id"
os.environ.pop("DYNAMODB_ENDPOINT", None)

from fastapi.testclient import TestClient  # noqa: E402

from worthwatch.core.auth import AuthorizationGate, TokenVerifier  # noqa: E402
from worthwatch.core.cache import JWKSCache  # noqa: E402
from worthwatch.db import create_table, get_table  # noqa: E402
from worthwatch.main import create_app  # noqa: E402

REGION = "us-east-1"
TABLE_NAME = "worthwatch-test"
ISSUER = "https://cognito-idp.us-east-1.amazonaws.com/us-east-1_TestPool"
CLIENT_ID = "test-client-id"
KID = "test-key-1"


class FakeClock:
    """Timestamp source that advances one second per call"""

    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> str:
        value = self.current
        self.current += timedelta(seconds=1)
        return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ManualClock:
    """Monotonic clock for the key cache, moved by hand"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubJWKSFetcher:
    """Serves a mutable key set and counts downloads"""

    def __init__(self, jwks):
        self.jwks = list(jwks)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return {"keys": list(self.jwks)}


def public_jwk(private_key, kid: str) -> dict:
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return jwk


def mint_token(private_key, kid: str = KID, expires_in: int = 3600, **claims) -> str:
    now = int(time.time())
    payload = {
        "sub": "user-1",
        "email": "user1@example.com",
        "cognito:username": "user1",
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "token_use": "id",
        "iat": now,
        "exp": now + expires_in,
    }
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


@pytest.fixture(scope="session")
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_fetcher(signing_key):
    return StubJWKSFetcher([public_jwk(signing_key, KID)])


@pytest.fixture
def cache_clock():
    return ManualClock()


@pytest.fixture
def jwks_cache(jwks_fetcher, cache_clock):
    return JWKSCache(fetcher=jwks_fetcher, ttl_seconds=600, min_refresh_seconds=30, clock=cache_clock)


@pytest.fixture
def verifier(jwks_cache):
    return TokenVerifier(jwks_cache, issuer=ISSUER, client_id=CLIENT_ID)


@pytest.fixture
def table():
    """Empty table with every secondary index, backed by moto"""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name=REGION)
        yield create_table(dynamodb, TABLE_NAME)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(table, verifier):
    app = create_app(AuthorizationGate(verifier))
    app.dependency_overrides[get_table] = lambda: table
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(signing_key):
    """Build Authorization headers for a given subject"""

    def build(sub: str = "user-1", **claims):
        token = mint_token(signing_key, sub=sub, **claims)
        return {"Authorization": f"Bearer {token}"}

    return build
