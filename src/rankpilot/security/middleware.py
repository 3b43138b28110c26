from __future__ import annotations

import json
import logging
import math
import typing as t

from rankpilot.core.errors import RateLimitExceededError

from .guard import RateLimitGuard

Scope = t.Dict[str, t.Any]
Receive = t.Callable[[], t.Awaitable[t.Dict[str, t.Any]]]
Send = t.Callable[[t.Dict[str, t.Any]], t.Awaitable[None]]
ASGIApp = t.Callable[[Scope, Receive, Send], t.Awaitable[None]]

_logger = logging.getLogger(__name__)


def default_subject(scope: Scope) -> str:
    """User id set on the scope state by an upstream auth layer, otherwise the client address.

    Request headers are never consulted; a client could put anything there.
    """
    user_id = (scope.get("state") or {}).get("user_id")
    if user_id:
        return f"user:{user_id}"
    client = scope.get("client") or ("unknown", 0)
    return f"ip:{client[0]}"


def default_tier(scope: Scope) -> t.Optional[str]:
    return None


def default_operation(scope: Scope) -> str:
    return str(scope.get("path") or "/")


class SecurityMiddleware:
    """ASGI middleware that rejects requests over the configured rate limit.

    Usage:
        middleware = SecurityMiddleware(guard)
        asgi_app = middleware.wrap(inner_app)

    Rejected requests never reach the inner app; they receive a 429 with a
    JSON error body and a `Retry-After` header. Subject and tier come from
    resolvers reading server-side state; with no tier the operation policy
    applies.
    """

    def __init__(
        self,
        guard: RateLimitGuard,
        *,
        subject_resolver: t.Callable[[Scope], str] = default_subject,
        tier_resolver: t.Callable[[Scope], t.Optional[str]] = default_tier,
        operation_resolver: t.Callable[[Scope], str] = default_operation,
        exempt_paths: t.Iterable[str] = ("/health",),
    ) -> None:
        self._guard = guard
        self._subject_resolver = subject_resolver
        self._tier_resolver = tier_resolver
        self._operation_resolver = operation_resolver
        self._exempt_paths = frozenset(exempt_paths)

    def wrap(self, inner_app: ASGIApp) -> ASGIApp:
        async def app(scope: Scope, receive: Receive, send: Send) -> None:
            if scope.get("type") != "http" or scope.get("path") in self._exempt_paths:
                # Lifespan, websockets and exempt paths pass through untouched
                await inner_app(scope, receive, send)
                return

            subject = self._subject_resolver(scope)
            operation = self._operation_resolver(scope)
            tier = self._tier_resolver(scope)
            try:
                await self._guard.enforce(subject, operation, tier)
            except RateLimitExceededError as exc:
                _logger.info(
                    "SecurityMiddleware: rejected method=%s path=%s subject=%s",
                    scope.get("method"),
                    scope.get("path"),
                    subject,
                )
                await self._send_error(send, exc)
                return

            await inner_app(scope, receive, send)

        return app

    async def _send_error(self, send: Send, exc: RateLimitExceededError) -> None:
        body = json.dumps({"error": exc.to_dict()}).encode("utf-8")
        retry_after = max(1, math.ceil(exc.retry_after_seconds))
        await send(
            {
                "type": "http.response.start",
                "status": exc.http_status,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"content-length", str(len(body)).encode("latin1")),
                    (b"retry-after", str(retry_after).encode("latin1")),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body, "more_body": False})
