"""Request middleware for tracing and rate limiting."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.errors import RateLimitError
from app.core.trace_context import reset_trace_id, resolve_trace_id, set_trace_id
from app.schemas.base_schemas import ErrorResponse

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-Id"
SLOW_REQUEST_MS = 10_000


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Binds a trace id for the duration of a request and echoes it back.

    Analysis calls routinely take tens of seconds, so requests slower than
    ``SLOW_REQUEST_MS`` are logged at WARNING to stand out.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = resolve_trace_id(request.headers.get(TRACE_HEADER))
        token = set_trace_id(trace_id)
        started = time.perf_counter()
        status_code: Optional[int] = None

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[TRACE_HEADER] = trace_id
            return response
        finally:
            latency_ms = int((time.perf_counter() - started) * 1000)
            level = logging.WARNING if latency_ms >= SLOW_REQUEST_MS else logging.INFO
            if status_code is None:
                level = logging.ERROR
            logger.log(
                level,
                "ACCESS %s %s status=%s latency_ms=%s client_ip=%s",
                request.method,
                request.url.path,
                status_code if status_code is not None else 500,
                latency_ms,
                request.client.host if request.client else "unknown",
            )
            reset_trace_id(token)


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class FixedWindowRateLimiter:
    """Counts requests per client in fixed windows, held in process memory.

    A ``max_requests`` of 0 disables limiting.
    """

    PURGE_THRESHOLD = 10_000

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}

    @property
    def enabled(self) -> bool:
        return self.max_requests > 0 and self.window_seconds > 0

    @property
    def message(self) -> str:
        window_minutes = math.ceil(self.window_seconds / 60)
        return f"Too many requests. Maximum {self.max_requests} requests per {window_minutes} minutes."

    def hit(self, client_key: str) -> RateLimitDecision:
        now = self._clock()
        if len(self._windows) >= self.PURGE_THRESHOLD:
            self._purge(now)

        started, count = self._windows.get(client_key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        count += 1
        self._windows[client_key] = (started, count)

        return RateLimitDecision(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_seconds=max(0, math.ceil(started + self.window_seconds - now)),
        )

    def reset(self) -> None:
        self._windows.clear()

    def _purge(self, now: float) -> None:
        expired = [
            key for key, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects clients over their request budget with a 429 on API routes."""

    def __init__(self, app, limiter: FixedWindowRateLimiter, path_prefix: str = "/api") -> None:
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.limiter.enabled or not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        decision = self.limiter.hit(client_ip)
        headers = {
            "RateLimit-Limit": str(decision.limit),
            "RateLimit-Remaining": str(decision.remaining),
            "RateLimit-Reset": str(decision.reset_seconds),
        }

        if not decision.allowed:
            exc = RateLimitError(self.limiter.message)
            logger.warning(
                f"[API] Rate limit exceeded: client_ip={client_ip}, path={request.url.path}"
            )
            headers["Retry-After"] = str(decision.reset_seconds)
            body = ErrorResponse(message=exc.message, error_code=exc.code)
            return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
