"""
AWS Lambda entry point for an API Gateway TOKEN authorizer.

Event:
    {"type": "TOKEN",
     "authorizationToken": "Bearer eyJhbGci...",
     "methodArn": "arn:aws:execute-api:us-east-1:123456789012:abc123/prod/GET/orders"}

API Gateway's conventions for authorizer failures:
- raising an error whose message is exactly "Unauthorized" -> 401
- returning a Deny policy for the method                 -> 403
- raising anything else                                  -> 500

Handler: edge_authorizer.lambda_function.lambda_handler
"""

import logging
from typing import Any

from edge_authorizer.config import get_settings
from edge_authorizer.errors import Rejection, RequestRejected
from edge_authorizer.handler import AuthorizerRequest, RequestHandler, build_request_handler
from edge_authorizer.log import configure_logging
from edge_authorizer.models import Effect
from edge_authorizer.policy import build_auth_response, build_policy

logger = logging.getLogger("edge-authorizer")

# Built on the first invocation and reused while the container stays warm.
_request_handler: RequestHandler | None = None


def get_request_handler() -> RequestHandler:
    global _request_handler
    if _request_handler is None:
        settings = get_settings()
        configure_logging(settings.log_level)
        _request_handler = build_request_handler(settings)
    return _request_handler


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    request = AuthorizerRequest.from_event(
        event, request_id=getattr(context, "aws_request_id", None)
    )

    try:
        result = get_request_handler().handle(request)
    except RequestRejected as e:
        if e.reason is Rejection.UNAUTHORIZED:
            raise Exception("Unauthorized") from e
        if e.reason is Rejection.FORBIDDEN:
            return build_auth_response(
                e.principal_id or "anonymous",
                build_policy(Effect.DENY, [request.method_arn or "*"]),
            )
        raise Exception("Internal Server Error") from e

    return result.to_response()
