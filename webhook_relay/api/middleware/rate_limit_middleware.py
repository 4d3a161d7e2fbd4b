# ===== webhook_relay/api/middleware/rate_limit_middleware.py =====
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import time


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client sliding window rate limit on the management API.

    Counters live in process memory, so each worker limits independently.
    Clients idle for a full window are swept out once per window.
    """

    def __init__(self, app, max_requests: int = 100, window_seconds: int = 900, path_prefix: str = "/api/"):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.path_prefix = path_prefix
        self.request_times = {}
        self.last_sweep = 0.0

    def evict_expired(self, current_time: float) -> None:
        """Forget clients whose newest request fell out of the window"""
        expired = [
            client_id for client_id, times in self.request_times.items()
            if not times or current_time - times[-1] >= self.window_seconds
        ]
        for client_id in expired:
            del self.request_times[client_id]
        self.last_sweep = current_time

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        current_time = time.time()

        if current_time - self.last_sweep >= self.window_seconds:
            self.evict_expired(current_time)

        # Drop timestamps that fell out of the window
        recent = [
            t for t in self.request_times.get(client_id, [])
            if current_time - t < self.window_seconds
        ]

        if len(recent) >= self.max_requests:
            self.request_times[client_id] = recent
            retry_after = max(1, int(self.window_seconds - (current_time - recent[0])))
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Too many requests from this IP, please try again later",
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        recent.append(current_time)
        self.request_times[client_id] = recent

        return await call_next(request)
