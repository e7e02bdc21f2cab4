"""
Error types raised by the authorizer components.

Every failure the authorizer can hit is classified into one of these
exceptions before it reaches the request handler. Each carries a `kind`
so that logs can tell an authoritative denial (the caller simply has no
matching permission) apart from a system fault (a backend was down or
too slow to answer).

    TokenValidationError   MALFORMED | BACKEND_UNAVAILABLE | TIMEOUT
    CapabilityCheckError   BACKEND_UNAVAILABLE | TIMEOUT
    AuthorizationError     NO_MATCHING_PERMISSION
    CatalogLoadError       UNREACHABLE | MALFORMED | TIMEOUT

The request handler is the only place that turns these into a
`RequestRejected`, which the transports then map to their own status
conventions (401 / 403 / 500).
"""

from enum import Enum


class AuthorizerError(Exception):
    """
    Base class for all classified authorizer failures.

    Attributes:
        kind: Enum member classifying the failure (subclass specific)
        message: Human-readable description, logged server-side only
    """

    def __init__(self, kind: Enum, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)

    @property
    def reason(self) -> str:
        """Machine-readable reason used in structured logs (e.g. "timeout")."""
        return self.kind.value


class TokenErrorKind(Enum):
    MALFORMED = "malformed_token"
    BACKEND_UNAVAILABLE = "token_backend_unavailable"
    TIMEOUT = "token_backend_timeout"


class CapabilityErrorKind(Enum):
    BACKEND_UNAVAILABLE = "capability_backend_unavailable"
    TIMEOUT = "capability_backend_timeout"


class AuthorizationErrorKind(Enum):
    NO_MATCHING_PERMISSION = "no_matching_permission"


class CatalogErrorKind(Enum):
    UNREACHABLE = "catalog_unreachable"
    MALFORMED = "catalog_malformed"
    TIMEOUT = "catalog_timeout"


class TokenValidationError(AuthorizerError):
    """
    The token could not be judged active or inactive.

    MALFORMED is raised before any network call and means the caller sent
    garbage. BACKEND_UNAVAILABLE and TIMEOUT mean the identity provider
    could not give a verdict; these are retry-worthy, unlike an explicit
    "inactive" answer.
    """

    def __init__(self, kind: TokenErrorKind, message: str):
        super().__init__(kind, message)


class CapabilityCheckError(AuthorizerError):
    """The capability check backend failed to answer for one permission."""

    def __init__(self, kind: CapabilityErrorKind, message: str):
        super().__init__(kind, message)


class AuthorizationError(AuthorizerError):
    """No catalog binding matched the caller. This is a denial, not a fault."""

    def __init__(self, message: str = "No matching permission"):
        super().__init__(AuthorizationErrorKind.NO_MATCHING_PERMISSION, message)


class CatalogLoadError(AuthorizerError):
    """The permission catalog could not be fetched or parsed."""

    def __init__(self, kind: CatalogErrorKind, message: str):
        super().__init__(kind, message)


# ---------------------------------------------------------------------------
# Request rejection
# ---------------------------------------------------------------------------
# Raised by the request handler once a failure has been classified. The
# transports only ever see this exception.


class HandlerState(Enum):
    RECEIVED = "received"
    TOKEN_VALIDATED = "token_validated"
    PERMISSION_RESOLVED = "permission_resolved"
    RESPONDED = "responded"
    REJECTED = "rejected"


class Rejection(Enum):
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    INTERNAL_ERROR = "InternalError"


class RequestRejected(Exception):
    """
    The request ended in the REJECTED state.

    Attributes:
        reason: What the transport should answer (401 / 403 / 500)
        state: The state the request was in when it was rejected
        detail: Machine-readable cause, e.g. "token_inactive" or the
                `reason` of the underlying AuthorizerError
        principal_id: Caller identity, when token validation got that far
    """

    def __init__(
        self,
        reason: Rejection,
        state: HandlerState,
        detail: str,
        principal_id: str | None = None,
    ):
        self.reason = reason
        self.state = state
        self.detail = detail
        self.principal_id = principal_id
        super().__init__(f"{reason.value} at {state.value}: {detail}")
