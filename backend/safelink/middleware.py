"""
Middleware: Rate Limiting
─────────────────────────
"""

import time
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger("safelink.middleware")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window in-memory rate limiter (per-IP + endpoint-specific)."""

    # Paths that must NEVER be rate-limited (health probes, root)
    EXEMPT_PATHS = frozenset({"/", "/health", "/openapi.json", "/docs", "/redoc"})

    def __init__(self, app, global_limit: int = 120, window: int = 60,
                 endpoint_limits: Optional[Dict[str, int]] = None):
        super().__init__(app)
        self.global_limit = global_limit
        self.window = window
        self.buckets: Dict[str, List[float]] = defaultdict(list)
        self.endpoint_limits = endpoint_limits if endpoint_limits is not None else {
            "/api/scan-link": 30,
        }

    def _hit(self, key: str, limit: int, now: float) -> bool:
        """Record a request; False if the key is already at its limit."""
        cutoff = now - self.window
        self.buckets[key] = [t for t in self.buckets[key] if t > cutoff]
        if len(self.buckets[key]) >= limit:
            return False
        self.buckets[key].append(now)
        return True

    async def dispatch(self, request: Request, call_next):
        path = request.url.path.rstrip("/") or "/"
        if path in self.EXEMPT_PATHS:
            return await call_next(request)

        ip = request.client.host if request.client else "0.0.0.0"
        now = time.time()

        if not self._hit(f"g:{ip}", self.global_limit, now):
            logger.warning("Global rate limit hit by %s", ip)
            return JSONResponse(status_code=429, content={"detail": "Too many requests. Slow down."})

        # Endpoint limit (POST only)
        if request.method == "POST":
            limit = self.endpoint_limits.get(path, self.global_limit)
            if not self._hit(f"e:{ip}:{path}", limit, now):
                logger.warning("Rate limit for %s hit by %s", path, ip)
                return JSONResponse(status_code=429, content={"detail": f"Rate limit exceeded for {path}"})

        return await call_next(request)
