"""
Capability checks: does caller X hold abstract permission Y?

The decision engine asks this once per catalog binding, so implementations
must be pure queries with no per-call mutable state; the engine may call
them from several threads at once.

- HttpCapabilityChecker asks the external authorization backend.
- StaticCapabilityChecker answers from an in-memory grant table, for local
  development and tests.
"""

import json
from pathlib import Path
from typing import Iterable, Mapping, Protocol

import httpx

from edge_authorizer.errors import CapabilityCheckError, CapabilityErrorKind


class CapabilityChecker(Protocol):
    def check(self, caller_identity: str, permission: str) -> bool: ...


class HttpCapabilityChecker:
    """
    Ask the capability check service over HTTP.

    Request:  POST <url>  {"principalId": "alice", "permission": "read-orders"}
    Response: 200 {"granted": true}

    403 and 404 are read as an explicit "not held". Anything else the service
    says that is not a boolean verdict is a backend failure.
    """

    def __init__(self, url: str, *, timeout: float = 5.0, client: httpx.Client | None = None):
        self._url = url
        self._timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def check(self, caller_identity: str, permission: str) -> bool:
        try:
            response = self._client.post(
                self._url,
                json={"principalId": caller_identity, "permission": permission},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise CapabilityCheckError(
                CapabilityErrorKind.TIMEOUT, f"Capability check for '{permission}' timed out"
            ) from e
        except httpx.HTTPError as e:
            raise CapabilityCheckError(
                CapabilityErrorKind.BACKEND_UNAVAILABLE,
                f"Capability check for '{permission}' failed: {e}",
            ) from e

        if response.status_code in (403, 404):
            return False

        if response.status_code != 200:
            raise CapabilityCheckError(
                CapabilityErrorKind.BACKEND_UNAVAILABLE,
                f"Capability check returned HTTP {response.status_code}",
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise CapabilityCheckError(
                CapabilityErrorKind.BACKEND_UNAVAILABLE, "Capability check returned invalid JSON"
            ) from e

        granted = payload.get("granted") if isinstance(payload, dict) else None
        if not isinstance(granted, bool):
            raise CapabilityCheckError(
                CapabilityErrorKind.BACKEND_UNAVAILABLE,
                "Capability check response has no boolean 'granted' member",
            )
        return granted


class StaticCapabilityChecker:
    """Grant table lookup: {"alice": ["read-orders", "write-orders"], ...}."""

    def __init__(self, grants: Mapping[str, Iterable[str]]):
        self._grants = {identity: frozenset(perms) for identity, perms in grants.items()}

    @classmethod
    def from_file(cls, path: Path) -> "StaticCapabilityChecker":
        grants = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(grants, dict):
            raise ValueError(f"Grants file {path} must contain a JSON object")
        return cls(grants)

    def check(self, caller_identity: str, permission: str) -> bool:
        return permission in self._grants.get(caller_identity, frozenset())
