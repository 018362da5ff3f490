"""
Rate Limiting Middleware
Throttles the credential endpoints, client creation and outgoing mail per
caller. Windows are kept in process memory, like the credential cache.
"""
from collections import defaultdict, deque
from datetime import datetime, timedelta
from typing import Deque, Dict, NamedTuple, Optional
import logging
import re
import threading

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from clientdesk.core.database import utcnow
from clientdesk.core.security import decode_access_token

logger = logging.getLogger(__name__)

# /api/v1/invoices/12/send-email -> /api/v1/invoices/{id}/send-email
ID_SEGMENT = re.compile(r"/\d+(?=/|$)")


class Rule(NamedTuple):
    limit: int
    window: int  # seconds


class Decision(NamedTuple):
    allowed: bool
    rule: Optional[Rule] = None
    remaining: int = 0
    retry_after: int = 0


DEFAULT_RULES: Dict[str, Rule] = {
    '/api/v1/auth/login': Rule(5, 60),
    '/api/v1/auth/forgot-password': Rule(3, 300),
    '/api/v1/auth/reset-password': Rule(5, 300),
    '/api/v1/auth/change-password': Rule(3, 300),
    '/api/v1/auth/logout': Rule(10, 60),
    '/api/v1/clients': Rule(20, 60),
    '/api/v1/invoices/{id}/send-email': Rule(10, 60),
    '/api/v1/receipts/{id}/send-email': Rule(10, 60),
}
FALLBACK_RULE = Rule(100, 60)


class RateLimiter:
    """Sliding window counter keyed by route template and caller"""

    def __init__(self, rules: Dict[str, Rule] = None, fallback: Rule = FALLBACK_RULE, clock=utcnow):
        self.rules = dict(DEFAULT_RULES if rules is None else rules)
        self.fallback = fallback
        self._clock = clock
        self._hits: Dict[str, Deque[datetime]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._longest = timedelta(seconds=max([fallback.window] + [r.window for r in self.rules.values()]))
        self._last_sweep = None

    @staticmethod
    def route_of(path: str) -> str:
        return ID_SEGMENT.sub("/{id}", path.rstrip('/'))

    def rule_for(self, route: str) -> Rule:
        if route in self.rules:
            return self.rules[route]
        # writes under /api/v1/clients/{id}/... share the collection's budget
        for prefix, rule in self.rules.items():
            if '{id}' not in prefix and route.startswith(prefix + '/'):
                return rule
        return self.fallback

    def check(self, method: str, path: str, caller: str) -> Decision:
        route = self.route_of(path)

        # Reads are free except on the auth endpoints
        if method in ('GET', 'HEAD', 'OPTIONS') and not route.startswith('/api/v1/auth'):
            return Decision(True)

        rule = self.rule_for(route)
        key = f"{route}:{caller}"

        with self._lock:
            now = self._clock()
            self._sweep(now)
            hits = self._hits[key]
            cutoff = now - timedelta(seconds=rule.window)
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= rule.limit:
                retry_after = int((hits[0] + timedelta(seconds=rule.window) - now).total_seconds())
                logger.warning(f"Rate limit exceeded for {key}: {len(hits)}/{rule.limit} requests")
                return Decision(False, rule, 0, max(1, retry_after))

            hits.append(now)
            return Decision(True, rule, rule.limit - len(hits))

    def _sweep(self, now: datetime):
        """Drop callers idle for longer than the longest window"""
        if self._last_sweep is not None and now - self._last_sweep < self._longest:
            return
        self._last_sweep = now
        cutoff = now - self._longest
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]

    def __len__(self):
        return len(self._hits)

    @staticmethod
    def caller_of(request: Request) -> str:
        """Client address, plus the token subject from the bearer header or session cookie"""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")

        auth_header = request.headers.get("Authorization", "")
        token = auth_header[7:] if auth_header.startswith("Bearer ") else request.cookies.get("access_token")
        payload = decode_access_token(token) if token else None
        subject = payload.get("sub") if payload else None
        return f"{ip}:{subject or 'anonymous'}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a ``RateLimiter`` to every /api/ request"""

    def __init__(self, app, limiter: RateLimiter = None):
        super().__init__(app)
        self.limiter = limiter or RateLimiter()

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith('/api/'):
            return await call_next(request)

        decision = self.limiter.check(request.method, request.url.path, self.limiter.caller_of(request))

        if not decision.allowed:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    'success': False,
                    'error': 'Too many requests. Please try again later.',
                    'retry_after': decision.retry_after
                },
                headers={
                    'Retry-After': str(decision.retry_after),
                    'X-RateLimit-Limit': str(decision.rule.limit),
                    'X-RateLimit-Remaining': '0',
                }
            )

        response = await call_next(request)

        if decision.rule is not None:
            response.headers['X-RateLimit-Limit'] = str(decision.rule.limit)
            response.headers['X-RateLimit-Remaining'] = str(decision.remaining)
            response.headers['X-RateLimit-Reset'] = str(decision.rule.window)

        return response
