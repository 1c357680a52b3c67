"""
Prompt & Pause Backend — Rate Limiting Middleware
==================================================

What:  In-memory sliding-window rate limiter with per-path rules.
How:   Every rule keeps its own timestamp list per client key. A request is
       matched to the first rule whose prefix matches its path, falling back
       to the default rule. Rejections are 429 with Retry-After; every
       limited response carries X-RateLimit-Limit / -Remaining / -Reset.

Client key:
    The bearer token (hashed) when present, so users behind one NAT do not
    share a budget; otherwise the client IP.

Single-process only: counters live in this worker's memory.
"""

import hashlib
import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from promptpause.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    requests: int
    window_seconds: int
    path_prefix: str = "/"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Args:
        default_rule: Applied to any path without a more specific rule
        rules:        Path-specific rules, checked in order before the default
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    CLEANUP_EVERY = 1000

    def __init__(
        self,
        app,
        default_rule: RateLimitRule,
        rules: Optional[Sequence[RateLimitRule]] = None,
    ):
        super().__init__(app)
        self.default_rule = default_rule
        self.rules: List[RateLimitRule] = list(rules or [])
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._seen = 0

    def rule_for(self, path: str) -> RateLimitRule:
        for rule in self.rules:
            if path.startswith(rule.path_prefix):
                return rule
        return self.default_rule

    @staticmethod
    def client_key(request: Request) -> str:
        authorization = request.headers.get("Authorization", "")
        if authorization.lower().startswith("bearer "):
            digest = hashlib.sha256(authorization[7:].strip().encode("utf-8")).hexdigest()
            return f"token:{digest[:16]}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        rule = self.rule_for(path)
        key = (rule.name, self.client_key(request))
        now = time.time()
        window_start = now - rule.window_seconds

        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= rule.requests:
            retry_after = max(1, math.ceil(timestamps[0] + rule.window_seconds - now))
            logger.warning(
                "Rate limit '%s' exceeded for %s: %d requests in %ds",
                rule.name,
                key[1],
                len(timestamps),
                rule.window_seconds,
            )
            headers = self._headers(rule, 0, now + retry_after)
            headers["Retry-After"] = str(retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": (
                        f"Rate limit exceeded. Please wait {retry_after} seconds "
                        "before making more requests."
                    ),
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get("") or None,
                },
                headers=headers,
            )

        timestamps.append(now)
        self._seen += 1
        if self._seen % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive(now)

        response = await call_next(request)
        reset_at = timestamps[0] + rule.window_seconds
        response.headers.update(
            self._headers(rule, rule.requests - len(timestamps), reset_at)
        )
        return response

    @staticmethod
    def _headers(rule: RateLimitRule, remaining: int, reset_at: float) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(rule.requests),
            "X-RateLimit-Remaining": str(max(remaining, 0)),
            "X-RateLimit-Reset": str(math.ceil(reset_at)),
        }

    def _cleanup_inactive(self, now: float) -> None:
        stale = [
            key
            for key, timestamps in self._requests.items()
            if not timestamps
            or timestamps[-1] < now - self._window_for(key[0])
        ]
        for key in stale:
            del self._requests[key]
        if stale:
            logger.debug("Cleaned up %d inactive rate-limit entries", len(stale))

    def _window_for(self, rule_name: str) -> int:
        for rule in self.rules:
            if rule.name == rule_name:
                return rule.window_seconds
        return self.default_rule.window_seconds
