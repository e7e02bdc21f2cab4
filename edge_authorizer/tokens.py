"""
Bearer token validation.

This module answers the Authentication (AuthN) question for the authorizer:
is the presented token live, and whose is it? It produces an
AuthorizationContext and never makes an authorization decision itself.

Two validators are provided:

- IntrospectionTokenValidator asks an OAuth 2.0 authorization server
  (RFC 7662 token introspection). This is the production path: the
  identity provider is the only party that knows whether a token was
  revoked.
- JWTTokenValidator verifies a self-contained JWT locally with PyJWT.
  Useful for local development together with scripts/generate_token.py.

Both share the same contract:

    validate(token) -> AuthorizationContext(caller_identity, is_active)

and raise TokenValidationError with a distinct kind when no verdict can be
reached:

- MALFORMED: empty or structurally bad token, raised before any network call
- BACKEND_UNAVAILABLE: the identity provider failed or answered nonsense
- TIMEOUT: the identity provider did not answer in time

An explicit "inactive" answer is NOT an error: it is returned as
AuthorizationContext(is_active=False) so the caller can tell an
authoritative denial from a retry-worthy outage.
"""

import hashlib
from typing import Protocol

import httpx
import jwt

from edge_authorizer.errors import TokenErrorKind, TokenValidationError
from edge_authorizer.models import AuthorizationContext

INACTIVE = AuthorizationContext(caller_identity="", is_active=False)


class TokenValidator(Protocol):
    def validate(self, token: str) -> AuthorizationContext: ...


def normalize_token(raw: str | None) -> str:
    """
    Extract the bare token from an authorizationToken value.

    API Gateway passes the raw Authorization header through, so the value is
    usually "Bearer <token>". A bare token is accepted as well. The scheme is
    matched case-insensitively (RFC 6750).

    Raises:
        TokenValidationError(MALFORMED): empty value, a scheme other than
            Bearer, "Bearer" without a token, embedded whitespace, or characters
            that cannot be encoded as UTF-8
    """
    if raw is None or not raw.strip():
        raise TokenValidationError(TokenErrorKind.MALFORMED, "Missing token")

    try:
        raw.encode("utf-8")
    except UnicodeEncodeError as e:
        raise TokenValidationError(TokenErrorKind.MALFORMED, "Token is not valid UTF-8") from e

    parts = raw.split()
    if len(parts) == 1:
        if parts[0].lower() == "bearer":
            raise TokenValidationError(TokenErrorKind.MALFORMED, "Bearer scheme without a token")
        return parts[0]

    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]

    raise TokenValidationError(
        TokenErrorKind.MALFORMED,
        "Invalid token format, expected 'Bearer <token>'",
    )


def token_fingerprint(token: str) -> str:
    """Short, non-reversible token id for logs. Raw tokens are never logged."""
    return hashlib.sha256(token.encode("utf-8", errors="surrogatepass")).hexdigest()[:12]


class IntrospectionTokenValidator:
    """
    Validate tokens against an OAuth 2.0 introspection endpoint.

    The endpoint receives `token=<token>` form-encoded and answers with a
    JSON object whose `active` member is the verdict. The caller identity is
    taken from `sub`, falling back to `username` and then `client_id`
    (client-credentials tokens often have no subject).

    Exactly one attempt is made per call; there are no retries.
    """

    def __init__(
        self,
        url: str,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ):
        self._url = url
        self._auth = (client_id, client_secret) if client_id and client_secret else None
        self._timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def validate(self, token: str) -> AuthorizationContext:
        token = normalize_token(token)

        try:
            response = self._client.post(
                self._url,
                data={"token": token, "token_type_hint": "access_token"},
                auth=self._auth,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise TokenValidationError(
                TokenErrorKind.TIMEOUT, f"Introspection timed out: {e}"
            ) from e
        except httpx.HTTPError as e:
            raise TokenValidationError(
                TokenErrorKind.BACKEND_UNAVAILABLE, f"Introspection request failed: {e}"
            ) from e

        if response.status_code >= 400:
            raise TokenValidationError(
                TokenErrorKind.BACKEND_UNAVAILABLE,
                f"Introspection returned HTTP {response.status_code}",
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenValidationError(
                TokenErrorKind.BACKEND_UNAVAILABLE, "Introspection returned invalid JSON"
            ) from e

        if not isinstance(payload, dict) or not isinstance(payload.get("active"), bool):
            raise TokenValidationError(
                TokenErrorKind.BACKEND_UNAVAILABLE,
                "Introspection response has no boolean 'active' member",
            )

        if not payload["active"]:
            return INACTIVE

        identity = payload.get("sub") or payload.get("username") or payload.get("client_id")
        if not isinstance(identity, str) or not identity:
            # An active token must identify someone, otherwise the
            # capability checks have nothing to ask about.
            raise TokenValidationError(
                TokenErrorKind.BACKEND_UNAVAILABLE,
                "Introspection marked the token active but returned no identity",
            )

        return AuthorizationContext(caller_identity=identity, is_active=True)


class JWTTokenValidator:
    """
    Validate self-contained JWTs locally with PyJWT.

    PyJWT does several things here:
    - Parses the JWT structure (header.payload.signature)
    - Verifies the signature using the shared secret
    - Checks the "exp" claim against the current time
    - Checks "iss" / "aud" when an issuer / audience is configured

    A token that cannot even be decoded is MALFORMED. A well-formed token
    that fails verification (expired, forged, missing claims) is simply
    inactive: the verdict is authoritative, there is nothing to retry.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        issuer: str | None = None,
        audience: str | None = None,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience

    def validate(self, token: str) -> AuthorizationContext:
        token = normalize_token(token)

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                audience=self._audience,
                # Reject tokens without expiration or subject.
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            return INACTIVE
        except jwt.InvalidSignatureError:
            # Subclass of DecodeError: the structure was fine, the signature not.
            return INACTIVE
        except jwt.DecodeError as e:
            raise TokenValidationError(TokenErrorKind.MALFORMED, f"Undecodable token: {e}") from e
        except jwt.InvalidTokenError:
            return INACTIVE

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return INACTIVE

        return AuthorizationContext(caller_identity=subject, is_active=True)
