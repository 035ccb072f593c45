"""Request pipeline middleware: rate limiting, security headers, body
ceiling, request statistics and the catch-all API error responder."""

import logging
import time

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from realty_server.errors import error_response, status_code_for
from realty_server.ratelimit import FixedWindowRateLimiter
from realty_server.routing import RouteTable
from realty_server.stats import RequestStats
from realty_server.utils import is_api_path

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."
PAYLOAD_TOO_LARGE_MESSAGE = "request entity too large"

# Same defaults the helmet package ships with.
SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limiter: FixedWindowRateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        path = request.scope["path"]
        if not is_api_path(path):
            return await call_next(request)

        result = self.limiter.hit(client_key(request))
        headers = result.headers()
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {client_key(request)} on {path}")
            headers["Retry-After"] = str(result.reset_after)
            return JSONResponse(
                {"success": False, "message": RATE_LIMIT_MESSAGE},
                status_code=429,
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if is_api_path(request.scope["path"]):
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
        return response


class BodySizeLimitMiddleware:
    """Reject request bodies above ``max_body_size`` bytes with a 413.

    A declared Content-Length is checked up front. Bodies sent without one
    are read here before the application sees them, so the 413 goes out
    before any route starts parsing.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        content_length = headers.get("content-length")
        if content_length is not None:
            if content_length.isdigit() and int(content_length) > self.max_body_size:
                logger.warning(f"Rejected {content_length}-byte body on {scope['path']}")
                await self._too_large(scope["path"])(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        if "transfer-encoding" not in headers:
            await self.app(scope, receive, send)
            return

        chunks = []
        received = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            body = message.get("body", b"")
            received += len(body)
            if received > self.max_body_size:
                logger.warning(f"Rejected streamed body over {self.max_body_size} bytes on {scope['path']}")
                await self._too_large(scope["path"])(scope, receive, send)
                return
            chunks.append(body)
            if not message.get("more_body", False):
                break

        await self.app(scope, self._replay(b"".join(chunks), receive), send)

    @staticmethod
    def _replay(body: bytes, receive: Receive) -> Receive:
        pending = True

        async def replay_receive() -> Message:
            nonlocal pending
            if pending:
                pending = False
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        return replay_receive

    def _too_large(self, path: str):
        if is_api_path(path):
            return error_response(413, PAYLOAD_TOO_LARGE_MESSAGE)
        return PlainTextResponse("Payload Too Large", status_code=413)


class RequestStatsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, stats: RequestStats, routes: RouteTable):
        super().__init__(app)
        self.stats = stats
        self.routes = routes

    async def dispatch(self, request: Request, call_next):
        path = request.scope["path"]
        if not is_api_path(path):
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            group = self.routes.match(path)
            self.stats.record(
                group.name if group else RequestStats.OTHER,
                request.method,
                status_code,
                duration_ms,
            )
            logger.debug(f"{request.method} {path} -> {status_code} in {duration_ms:.1f}ms")


class ApiErrorMiddleware(BaseHTTPMiddleware):
    """Turn unexpected exceptions on /api routes into the JSON error envelope."""

    def __init__(self, app: ASGIApp, include_stack: bool = False):
        super().__init__(app)
        self.include_stack = include_stack

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            if not is_api_path(request.scope["path"]):
                raise
            logger.error(f"API Error: {exc}", exc_info=exc)
            return error_response(
                status_code_for(exc),
                str(exc) or "Internal server error",
                exc,
                include_stack=self.include_stack,
            )
