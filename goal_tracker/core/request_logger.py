import logging
import time
import uuid
from contextvars import ContextVar
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger("goal_tracker.request")

# Context variables
request_id_ctx = ContextVar("request_id", default=None)
user_id_ctx = ContextVar("user_id", default=None)


class ContextLoggingMiddleware:
    """Assigns a unique request ID and picks up the caller's user id."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        request_id_ctx.set(request_id)

        # Clients identify themselves with x-user-id; userId in paths/bodies stays authoritative
        headers = dict(scope.get("headers", []))
        user_id = headers.get(b"x-user-id", b"").decode("utf-8") or None
        user_id_ctx.set(user_id)

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)


class RequestLoggingMiddleware:
    """Logs every request with timing, request_id, and user_id."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        status_code = None

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        await self.app(scope, receive, send_wrapper)

        process_time = (time.time() - start_time) * 1000

        logger.info("", extra={
            "event": "HTTP Request",
            "method": scope["method"],
            "path": scope["path"],
            "status_code": status_code,
            "duration_ms": round(process_time, 2),
            "request_id": request_id_ctx.get(),
            "user_id": user_id_ctx.get(),
        })
