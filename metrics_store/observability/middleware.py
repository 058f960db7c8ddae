from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders


class RequestContextMiddleware:
    """Binds a request id into the log context and writes one access log per request."""

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=scope.get("path"),
            method=scope.get("method"),
        )
        log = structlog.get_logger("access")

        start = perf_counter()
        status_code: int = 500
        send_failed = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code, send_failed

            if send_failed:
                return
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                MutableHeaders(scope=message)["X-Request-ID"] = request_id

            try:
                await send(message)
            except OSError:
                # Client went away mid-response; nothing left to retry.
                send_failed = True
                log.exception("http_response_send_failed", status_code=status_code)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            log.info(
                "http_request",
                status_code=status_code,
                elapsed_ms=round((perf_counter() - start) * 1000.0, 2),
                response_sent=not send_failed,
            )
            structlog.contextvars.clear_contextvars()
