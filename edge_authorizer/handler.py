"""
Request orchestration: catalog -> token -> decision -> policy.

Every authorization request walks the same state machine:

    RECEIVED --load catalog, validate token--> TOKEN_VALIDATED
    TOKEN_VALIDATED --decide--> PERMISSION_RESOLVED
    PERMISSION_RESOLVED --build policy--> RESPONDED

and any step can end in REJECTED:

    catalog load failed            -> InternalError  (token is not even looked at)
    token malformed                -> Unauthorized
    token inactive                 -> Unauthorized   (no capability check is made)
    active token without identity  -> InternalError
    token backend down / timeout   -> InternalError
    no matching permission         -> Forbidden
    capability backend failure     -> InternalError  (only with the FAIL policy)

Each outcome is logged with a classified reason before the handler
returns or raises. Nothing is retried here.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

from edge_authorizer.capabilities import (
    CapabilityChecker,
    HttpCapabilityChecker,
    StaticCapabilityChecker,
)
from edge_authorizer.catalog import CatalogStore, FileCatalogStore, S3CatalogStore
from edge_authorizer.config import Settings
from edge_authorizer.engine import CheckErrorPolicy, DecisionEngine
from edge_authorizer.errors import (
    AuthorizationError,
    AuthorizerError,
    CapabilityCheckError,
    CatalogLoadError,
    HandlerState,
    Rejection,
    RequestRejected,
    TokenErrorKind,
    TokenValidationError,
)
from edge_authorizer.models import Decision
from edge_authorizer.policy import build_auth_response, build_policy
from edge_authorizer.tokens import (
    IntrospectionTokenValidator,
    JWTTokenValidator,
    TokenValidator,
    token_fingerprint,
)

logger = logging.getLogger("edge-authorizer")

# Value of the "decision" log field for each rejection.
DECISION_LABELS = {
    Rejection.UNAUTHORIZED: "rejected",
    Rejection.FORBIDDEN: "denied",
    Rejection.INTERNAL_ERROR: "error",
}


def _new_request_id() -> str:
    return str(uuid.uuid4())[:8]


@dataclass(frozen=True)
class AuthorizerRequest:
    """
    An inbound authorization request.

    Attributes:
        token: Raw authorizationToken, usually "Bearer <token>"
        method_arn: ARN of the API method being called. Logged, not matched
                    against the catalog.
        type: Authorizer type reported by API Gateway ("TOKEN")
        request_id: Correlation id for the logs
    """

    token: str
    method_arn: str = ""
    type: str = "TOKEN"
    request_id: str = field(default_factory=_new_request_id)

    @classmethod
    def from_event(
        cls, event: Mapping[str, Any], request_id: str | None = None
    ) -> "AuthorizerRequest":
        """Build a request from an API Gateway TOKEN authorizer event."""
        return cls(
            token=event.get("authorizationToken") or "",
            method_arn=event.get("methodArn") or "",
            type=event.get("type") or "TOKEN",
            request_id=request_id or _new_request_id(),
        )


@dataclass(frozen=True)
class AuthorizerResult:
    """A request that reached RESPONDED."""

    principal_id: str
    decision: Decision
    policy_document: dict[str, Any]

    def to_response(self) -> dict[str, Any]:
        context = {"permission": self.decision.permission} if self.decision.permission else None
        return build_auth_response(self.principal_id, self.policy_document, context)


class RequestHandler:
    def __init__(
        self,
        catalog_store: CatalogStore,
        token_validator: TokenValidator,
        engine: DecisionEngine,
    ):
        self.catalog_store = catalog_store
        self._token_validator = token_validator
        self._engine = engine

    def handle(self, request: AuthorizerRequest) -> AuthorizerResult:
        """
        Run one request through the state machine.

        Returns:
            AuthorizerResult when the request reaches RESPONDED

        Raises:
            RequestRejected: for every path that ends in REJECTED
        """
        state = HandlerState.RECEIVED
        base = {
            "request_id": request.request_id,
            "method_arn": request.method_arn,
            "type": request.type,
            "token_fingerprint": token_fingerprint(request.token) if request.token else None,
        }
        logger.info("Authorization request received", extra={"auth_data": dict(base)})

        # Step 1: Load the catalog. Without it no decision is possible, so
        # don't bother the identity provider.
        try:
            catalog = self.catalog_store.load()
        except CatalogLoadError as e:
            raise self._reject(base, state, Rejection.INTERNAL_ERROR, e)

        # Step 2: Authenticate
        try:
            ctx = self._token_validator.validate(request.token)
        except TokenValidationError as e:
            if e.kind is TokenErrorKind.MALFORMED:
                raise self._reject(base, state, Rejection.UNAUTHORIZED, e)
            raise self._reject(base, state, Rejection.INTERNAL_ERROR, e)

        if not ctx.is_active:
            raise self._reject(base, state, Rejection.UNAUTHORIZED, "token_inactive")
        if not ctx.caller_identity:
            # Active but anonymous: the validator broke its contract.
            raise self._reject(base, state, Rejection.INTERNAL_ERROR, "token_no_identity")

        state = HandlerState.TOKEN_VALIDATED
        base["subject"] = ctx.caller_identity
        logger.info("Authentication successful", extra={"auth_data": dict(base)})

        # Step 3: Authorize
        try:
            decision = self._engine.decide(catalog, ctx)
        except AuthorizationError as e:
            raise self._reject(
                base, state, Rejection.FORBIDDEN, e, principal_id=ctx.caller_identity
            )
        except CapabilityCheckError as e:
            raise self._reject(
                base, state, Rejection.INTERNAL_ERROR, e, principal_id=ctx.caller_identity
            )

        state = HandlerState.PERMISSION_RESOLVED

        # Step 4: Respond
        result = AuthorizerResult(
            principal_id=ctx.caller_identity,
            decision=decision,
            policy_document=build_policy(decision.effect, decision.resources),
        )
        state = HandlerState.RESPONDED
        logger.info(
            "Verified access",
            extra={
                "auth_data": {
                    **base,
                    "permission": decision.permission,
                    "resources": list(decision.resources),
                    "decision": "allowed",
                    "state": state.value,
                }
            },
        )
        return result

    def _reject(
        self,
        base: dict[str, Any],
        state: HandlerState,
        reason: Rejection,
        cause: AuthorizerError | str,
        principal_id: str | None = None,
    ) -> RequestRejected:
        detail = cause.reason if isinstance(cause, AuthorizerError) else cause
        auth_data = {
            **base,
            "decision": DECISION_LABELS[reason],
            "rejection": reason.value,
            "reason": detail,
            "state": state.value,
        }
        if isinstance(cause, AuthorizerError):
            auth_data["error"] = cause.message

        if reason is Rejection.INTERNAL_ERROR:
            logger.error("Request failed", extra={"auth_data": auth_data})
        else:
            logger.warning("Request rejected", extra={"auth_data": auth_data})

        return RequestRejected(reason, state, detail, principal_id=principal_id)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_catalog_store(settings: Settings) -> CatalogStore:
    if settings.catalog_bucket:
        return S3CatalogStore(
            settings.catalog_bucket,
            settings.catalog_key,
            region=settings.catalog_store_region,
            timeout=settings.request_timeout_seconds,
        )
    if settings.catalog_path:
        return FileCatalogStore(settings.catalog_path)
    raise ValueError("Set AUTHORIZER_CATALOG_BUCKET or AUTHORIZER_CATALOG_PATH")


def build_token_validator(settings: Settings) -> TokenValidator:
    if settings.token_validator == "jwt":
        return JWTTokenValidator(
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    if not settings.introspection_url:
        raise ValueError("AUTHORIZER_INTROSPECTION_URL is required for introspection")
    return IntrospectionTokenValidator(
        settings.introspection_url,
        client_id=settings.introspection_client_id,
        client_secret=settings.introspection_client_secret,
        timeout=settings.request_timeout_seconds,
    )


def build_capability_checker(settings: Settings) -> CapabilityChecker:
    if settings.checker_backend == "static":
        if not settings.static_grants_path:
            raise ValueError("AUTHORIZER_STATIC_GRANTS_PATH is required for the static checker")
        return StaticCapabilityChecker.from_file(settings.static_grants_path)
    if not settings.capability_check_url:
        raise ValueError("AUTHORIZER_CAPABILITY_CHECK_URL is required for the http checker")
    return HttpCapabilityChecker(
        settings.capability_check_url,
        timeout=settings.request_timeout_seconds,
    )


def build_request_handler(settings: Settings) -> RequestHandler:
    """Assemble a RequestHandler from explicit settings."""
    engine = DecisionEngine(
        build_capability_checker(settings),
        on_check_error=CheckErrorPolicy(settings.check_error_policy),
        max_workers=settings.check_concurrency,
    )
    return RequestHandler(
        catalog_store=build_catalog_store(settings),
        token_validator=build_token_validator(settings),
        engine=engine,
    )
