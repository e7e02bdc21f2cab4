"""
HTTP front end for the authorizer.

Exposes the same decision the Lambda entry point makes, for local
development and for deployments that put the authorizer behind a plain
HTTP call instead of API Gateway:

- POST /authorize  body is the authorizer event:
      {"authorizationToken": "Bearer <jwt>", "methodArn": "arn:...", "type": "TOKEN"}
  200 with the authorizer response on Allow,
  401 / 403 / 500 with {"error": "<reason>"} otherwise,
  400 when the body is not a JSON object with a string authorizationToken.
- GET /health      liveness, no dependencies
- GET /ready       readiness: the permission catalog can be loaded

The request handler does blocking I/O (boto3, httpx), so it runs in
Starlette's threadpool rather than on the event loop.

Running the server:
    python -m edge_authorizer.server
"""

import logging

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from edge_authorizer.errors import CatalogLoadError, Rejection, RequestRejected
from edge_authorizer.handler import AuthorizerRequest, RequestHandler

logger = logging.getLogger("edge-authorizer")

REJECTION_STATUS = {
    Rejection.UNAUTHORIZED: 401,
    Rejection.FORBIDDEN: 403,
    Rejection.INTERNAL_ERROR: 500,
}


def create_app(handler: RequestHandler) -> Starlette:
    """Build the Starlette app around an already-wired request handler."""

    async def authorize(request: Request) -> Response:
        try:
            event = await request.json()
        except ValueError:
            # JSONDecodeError, or UnicodeDecodeError for a non-UTF-8 body
            return JSONResponse({"error": "Request body must be JSON"}, status_code=400)

        if not isinstance(event, dict) or not isinstance(event.get("authorizationToken"), str):
            return JSONResponse(
                {"error": "Request body must be an object with a string authorizationToken"},
                status_code=400,
            )

        auth_request = AuthorizerRequest.from_event(
            event, request_id=request.headers.get("x-request-id")
        )
        try:
            result = await run_in_threadpool(handler.handle, auth_request)
        except RequestRejected as e:
            return JSONResponse({"error": e.reason.value}, status_code=REJECTION_STATUS[e.reason])

        return JSONResponse(result.to_response())

    async def health_check(request: Request) -> Response:
        """Liveness probe: is the server process alive and responsive?"""
        return JSONResponse({"status": "healthy"})

    async def readiness_check(request: Request) -> Response:
        """Readiness probe: can the permission catalog be loaded?"""
        try:
            catalog = await run_in_threadpool(handler.catalog_store.load)
        except CatalogLoadError as e:
            logger.warning(
                "Readiness check failed",
                extra={"auth_data": {"reason": e.reason, "error": e.message}},
            )
            return JSONResponse(
                {"status": "not_ready", "reason": e.reason},
                status_code=503,
            )
        return JSONResponse({"status": "ready", "permissions": len(catalog)})

    return Starlette(
        routes=[
            Route("/authorize", authorize, methods=["POST"]),
            Route("/health", health_check, methods=["GET"]),
            Route("/ready", readiness_check, methods=["GET"]),
        ]
    )


if __name__ == "__main__":
    import uvicorn

    from edge_authorizer.config import get_settings
    from edge_authorizer.handler import build_request_handler
    from edge_authorizer.log import configure_logging

    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting authorizer on %s:%d", settings.host, settings.port)
    uvicorn.run(
        create_app(build_request_handler(settings)),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
