"""
HTTP middleware: bearer-token gate for protected paths, and CORS preflights
answered with 204.
"""
from typing import Iterable
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from ..core.exceptions import MissingSecretError, UnauthorizedError, error_response
from ..core.security import TokenError, extract_bearer_token, verify_token

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

class AccessMiddleware(BaseHTTPMiddleware):
    """
    Reject requests to protected path prefixes that lack a valid bearer token.

    Only identity is proven here. The decoded claim is stored on
    ``request.state.claim`` and handlers decide per-route permissions.
    Every failure gets the same 401 body; the cause is only logged.
    """
    def __init__(self, app: ASGIApp, protected_prefixes: Iterable[str]):
        super().__init__(app)
        self.protected_prefixes = tuple(protected_prefixes)

    def is_protected(self, path: str) -> bool:
        return path.startswith(self.protected_prefixes)

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or not self.is_protected(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            logger.info(f"Missing or malformed Authorization header on {request.url.path}")
            return error_response(UnauthorizedError())

        try:
            claim = verify_token(token)
        except MissingSecretError as exc:
            logger.critical("JWT_SECRET is not set, refusing to verify tokens")
            return error_response(exc)
        except TokenError as exc:
            logger.info(f"Rejected token on {request.url.path}: {exc.reason}")
            return error_response(UnauthorizedError())

        request.state.claim = claim
        return await call_next(request)

class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that answers every OPTIONS request itself with 204 No Content.

    Real preflights go through the usual CORS checks. OPTIONS requests that are
    not preflights never reach the router.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            if "access-control-request-method" not in Headers(scope=scope):
                response = Response(status_code=204, headers=CORS_HEADERS)
                await response(scope, receive, send)
                return
        await super().__call__(scope, receive, send)

    def preflight_response(self, request_headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response

        headers = {
            key: value for key, value in response.headers.items()
            if key.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)
