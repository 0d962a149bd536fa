"""
Custom middleware for security headers, request logging and timeouts.
"""
import time
import uuid

import anyio
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .database import request_deadline
from .logging_config import bind_context, request_logger
from .responses import timeout_response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        start_time = time.time()
        with bind_context(request_id=request_id):
            response = await call_next(request)
            process_time = time.time() - start_time

            level = "info" if response.status_code < 400 else "warning" if response.status_code < 500 else "error"
            getattr(request_logger, level)(
                f"{request.method} {request.url.path} -> {response.status_code}",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(process_time * 1000, 2),
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)
        return response


class RequestTimeoutMiddleware:
    """Bound every HTTP request; a handler still running at the deadline gets a 504.

    The app runs in its own task and is raced against the deadline, so sync
    handlers sitting in a worker thread are cut off too. Such a thread keeps
    running until it returns, but its output is discarded and any commit it
    attempts is refused (see ``database.refuse_late_commit``).
    """

    def __init__(self, app: ASGIApp, timeout: float):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False
        failure = None

        with request_deadline(self.timeout) as deadline:

            async def send_wrapper(message: Message) -> None:
                nonlocal response_started
                if deadline.timed_out:
                    return
                if message["type"] == "http.response.start":
                    response_started = True
                await send(message)

            async def run_app() -> None:
                nonlocal failure
                try:
                    await self.app(scope, receive, send_wrapper)
                except Exception as exc:
                    if not deadline.passed:
                        failure = exc
                    else:
                        request_logger.warning(
                            "Handler failed after its deadline",
                            path=scope.get("path", ""),
                            error_type=type(exc).__name__,
                        )
                if failure is not None or not deadline.passed:
                    tg.cancel_scope.cancel()

            async with anyio.create_task_group() as tg:
                tg.start_soon(run_app)
                await anyio.sleep(self.timeout)
                if response_started:
                    return
                deadline.timed_out = True
                response = timeout_response(scope.get("path", ""), self.timeout)
                await response(scope, receive, send)
                tg.cancel_scope.cancel()

        # Re-raised here so callers see the original error, not a task group
        if failure is not None:
            raise failure
