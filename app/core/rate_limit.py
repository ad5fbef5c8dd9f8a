"""Rate limiting dependencies for FastAPI routes.

This module wires the window policy into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency built per policy.
- Swap-friendly: counter storage can be replaced (e.g., Redis) behind an
  abstract interface.
- Fail fast: policies are validated when routes are declared, not per request.

Rate limiting strategy:
- Fixed window per (client address, route path).
- Client address comes from the first X-Forwarded-For entry, then the
  transport peer, then the shared "unknown" bucket.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable

from fastapi import Request, Response

from app.adapters.rate_limit.base import AbstractCounterStore, ClientKey
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.core.config import RateLimitSettings, settings
from app.core.errors import ConfigurationAppError, RateLimitExceededError
from app.services.rate_limit_service import RateLimitPolicy, RateLimitResult, RateLimitService

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"
FORWARDED_FOR_HEADER = "X-Forwarded-For"

ANALYTICS_MESSAGE = "Too many analytics events. Please slow down."
STATS_MESSAGE = "Too many stats requests. Please try again later."
STRICT_MESSAGE = "This action is rate limited. Please try again later."


_store: AbstractCounterStore = InMemoryCounterStore()
_service: RateLimitService | None = None


def get_counter_store() -> AbstractCounterStore:
    """Return the process-wide counter store shared by every policy."""

    return _store


def get_rate_limit_service() -> RateLimitService:
    """Return a process-wide rate limit service instance.

    The instance is cached in-module to preserve state across requests.

    Returns:
        RateLimitService: Service bound to the shared counter store.
    """

    global _service

    if _service is None:
        _service = RateLimitService(_store)
    return _service


def set_rate_limit_service(service: RateLimitService | None) -> None:
    """Replace the process-wide service (``None`` restores the default)."""

    global _service
    _service = service


def _forwarded_for(request: Request) -> str | None:
    header = request.headers.get(FORWARDED_FOR_HEADER)
    if not header:
        return None
    first = header.split(",")[0].strip()
    return first or None


def _peer_address(request: Request) -> str | None:
    return request.client.host if request.client and request.client.host else None


_ADDRESS_SOURCES: tuple[Callable[[Request], str | None], ...] = (
    _forwarded_for,
    _peer_address,
)


def resolve_client_address(request: Request) -> str:
    """Attribute the request to a client address.

    Sources are tried in order: first X-Forwarded-For entry, transport peer
    address. When neither is available every such client shares the
    ``"unknown"`` bucket.

    Args:
        request: FastAPI request.

    Returns:
        str: Client address or the "unknown" sentinel.
    """

    for source in _ADDRESS_SOURCES:
        address = source(request)
        if address:
            return address

    logger.debug(
        "rate_limit.identity_unresolved",
        extra={"route": request.url.path},
    )
    return UNKNOWN_CLIENT


def _hash_address(address: str) -> str:
    """Hash the client address for logging without exposing it."""
    return hashlib.sha256(address.encode()).hexdigest()[:16]


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Build the X-RateLimit-* headers describing a decision."""

    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": result.reset_at_iso,
    }


def rate_limiter(policy: RateLimitPolicy) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a FastAPI dependency enforcing policy on the decorated routes.

    Usage:
        @router.post("/visit", dependencies=[Depends(rate_limiter(policy))])

    Args:
        policy: Validated rate limit policy.

    Returns:
        Async dependency that counts the request and raises
        RateLimitExceededError when the quota is exceeded.

    Raises:
        ConfigurationAppError: If policy is not a RateLimitPolicy.
    """

    if not isinstance(policy, RateLimitPolicy):
        raise ConfigurationAppError(
            code="rate_limit_policy_missing",
            message="A RateLimitPolicy is required to build a rate limiter",
        )

    async def enforce_rate_limit(request: Request, response: Response) -> None:
        if not settings.rate_limit.enabled:
            return

        key = ClientKey(address=resolve_client_address(request), route=request.url.path)
        result = get_rate_limit_service().check(policy, key)

        log_extra = {
            "policy": policy.name,
            "route": key.route,
            "client_hash": _hash_address(key.address),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_ms": policy.window_ms,
        }

        if result.allowed:
            if settings.rate_limit.include_headers:
                response.headers.update(build_rate_limit_headers(result))
            logger.debug("rate_limit.allowed", extra=log_extra)
            return

        retry_after = result.retry_after_seconds or 0
        logger.info("rate_limit.exceeded", extra={**log_extra, "retry_after_s": retry_after})

        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message=policy.message,
            details={
                "policy": policy.name,
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at_iso,
                "retry_after": retry_after,
            },
        )

    enforce_rate_limit.__name__ = f"enforce_{policy.name}_rate_limit"
    return enforce_rate_limit


def build_preset_policies(cfg: RateLimitSettings) -> dict[str, RateLimitPolicy]:
    """Build the named policies used by the analytics routes.

    Args:
        cfg: Rate limit settings holding the per-preset quotas.

    Returns:
        Mapping of preset name to policy.
    """

    return {
        "analytics": RateLimitPolicy(
            name="analytics",
            window_ms=cfg.analytics_window_ms,
            max_requests=cfg.analytics_max_requests,
            message=ANALYTICS_MESSAGE,
        ),
        "stats": RateLimitPolicy(
            name="stats",
            window_ms=cfg.stats_window_ms,
            max_requests=cfg.stats_max_requests,
            message=STATS_MESSAGE,
        ),
        "strict": RateLimitPolicy(
            name="strict",
            window_ms=cfg.strict_window_ms,
            max_requests=cfg.strict_max_requests,
            message=STRICT_MESSAGE,
        ),
    }


PRESET_POLICIES = build_preset_policies(settings.rate_limit)

analytics_rate_limit = rate_limiter(PRESET_POLICIES["analytics"])
stats_rate_limit = rate_limiter(PRESET_POLICIES["stats"])
strict_rate_limit = rate_limiter(PRESET_POLICIES["strict"])
