"""
Shared test fixtures for the authorizer test suite.

Key fixtures:
- make_token: factory for HS256 JWTs with any claims
- make_catalog: factory for lists of PermissionBinding
- unreachable_catalog: a catalog store that always fails

The fakes for the external services live in tests/fakes.py.

Testing approach:
- test_engine.py / test_policy.py: the decision core in isolation
- test_tokens.py / test_capabilities.py / test_catalog.py: each adapter
  against httpx.MockTransport or a fake boto3 client (no network)
- test_handler.py: the state machine with fakes for all collaborators
- test_lambda_function.py / test_server.py: transport mapping
"""

import datetime

import jwt
import pytest

from edge_authorizer.errors import CatalogErrorKind, CatalogLoadError
from edge_authorizer.models import PermissionBinding
from tests.fakes import ARN_PREFIX, TEST_ALGORITHM, TEST_SECRET, FakeCatalogStore


@pytest.fixture
def make_token():
    """
    Factory fixture to generate JWT tokens for testing.

    Usage in tests:
        def test_something(make_token):
            token = make_token(sub="alice")
    """

    def _make_token(
        sub: str = "test-user",
        secret: str = TEST_SECRET,
        algorithm: str = TEST_ALGORITHM,
        exp_hours: float = 1.0,
        extra_claims: dict | None = None,
        include_exp: bool = True,
        include_sub: bool = True,
    ) -> str:
        now = datetime.datetime.now(datetime.timezone.utc)
        payload: dict = {"iat": now}

        if include_sub:
            payload["sub"] = sub
        if include_exp:
            payload["exp"] = now + datetime.timedelta(hours=exp_hours)
        if extra_claims:
            payload.update(extra_claims)

        return jwt.encode(payload, secret, algorithm=algorithm)

    return _make_token


@pytest.fixture
def make_catalog():
    """
    Factory for catalogs: make_catalog("read", "write") gives two bindings,
    each granting one GET resource named after the permission.
    """

    def _make_catalog(*names: str) -> list[PermissionBinding]:
        return [
            PermissionBinding(abstract_name=name, resources=(f"{ARN_PREFIX}/GET/{name}",))
            for name in names
        ]

    return _make_catalog


@pytest.fixture
def unreachable_catalog():
    return FakeCatalogStore(
        error=CatalogLoadError(CatalogErrorKind.UNREACHABLE, "Cannot read catalog: AccessDenied")
    )
