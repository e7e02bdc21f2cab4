"""In-memory stand-ins for the external services, recording every call."""

import threading
import time

from edge_authorizer.errors import CatalogLoadError
from edge_authorizer.models import AuthorizationContext

ARN_PREFIX = "arn:aws:execute-api:us-east-1:123456789012:abc123/prod"

# HS256 secrets shorter than the hash output trigger PyJWT key-length warnings.
TEST_SECRET = "test-secret-for-the-edge-authorizer-suite"
TEST_ALGORITHM = "HS256"


class FakeChecker:
    """
    Capability checker answering from a grant set.

    Args:
        granted: permission names the caller holds
        errors: permission name -> CapabilityCheckError to raise
        delays: permission name -> seconds to sleep before answering
    """

    def __init__(self, granted=(), errors=None, delays=None):
        self.granted = set(granted)
        self.errors = errors or {}
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def check(self, caller_identity: str, permission: str) -> bool:
        with self._lock:
            self.calls.append((caller_identity, permission))
        if permission in self.delays:
            time.sleep(self.delays[permission])
        if permission in self.errors:
            raise self.errors[permission]
        return permission in self.granted


class FakeCatalogStore:
    def __init__(self, catalog=None, error: CatalogLoadError | None = None):
        self.catalog = catalog or []
        self.error = error
        self.loads = 0

    def load(self):
        self.loads += 1
        if self.error is not None:
            raise self.error
        return list(self.catalog)


class FakeTokenValidator:
    def __init__(self, ctx: AuthorizationContext | None = None, error=None):
        self.ctx = ctx or AuthorizationContext(caller_identity="alice", is_active=True)
        self.error = error
        self.tokens = []

    def validate(self, token: str) -> AuthorizationContext:
        self.tokens.append(token)
        if self.error is not None:
            raise self.error
        return self.ctx
