"""Routing provider factory and fallback resolution.

Provides get_router() / set_router() / reset_router() to swap
implementations:
- None (default): fees use straight-line distance only
- FakeRouter for development and testing
- OpenRouteServiceRouter for production

``resolve_route`` is the only entry point pricing code uses. It never
raises on provider failure: it falls back to haversine distance and a
speed-based duration, and flags the result so consumers can tell an
estimate from a routed figure.
"""

import structlog

from delivery.errors import ExternalServiceError
from delivery.geo import Coordinate, haversine_distance
from delivery.routing.port import RouteResult, RoutingProvider
from delivery.settings import get_settings

logger = structlog.get_logger(__name__)

FALLBACK_SPEED_KMH = 25

_current_router: RoutingProvider | None = None
_loaded = False


def get_router() -> RoutingProvider | None:
    """Return the configured routing provider, or None when routing is disabled.

    Selected by the ROUTING_ADAPTER setting: "none", "fake" or "openroute".
    """
    global _current_router, _loaded
    if not _loaded:
        settings = get_settings()
        adapter = settings.routing_adapter
        if adapter == "none":
            _current_router = None
        elif adapter == "fake":
            from delivery.routing.fake_adapter import FakeRouter

            _current_router = FakeRouter()
        elif adapter == "openroute":
            from delivery.routing.openroute_adapter import OpenRouteServiceRouter

            _current_router = OpenRouteServiceRouter(
                api_key=settings.openroute_api_key,
                timeout=settings.routing_timeout_seconds,
            )
        else:
            raise ValueError(f"Unknown routing adapter: {adapter}")
        _loaded = True
    return _current_router


def set_router(router: RoutingProvider | None) -> None:
    """Override the active routing provider (useful for tests)."""
    global _current_router, _loaded
    _current_router = router
    _loaded = True


def reset_router() -> None:
    global _current_router, _loaded
    _current_router = None
    _loaded = False


def estimate_route(start: Coordinate, end: Coordinate, fallback: bool = True) -> RouteResult:
    """Straight-line distance with a duration at the fallback average speed."""
    distance = haversine_distance(start, end)
    return RouteResult(
        distance_km=distance,
        duration_min=round(distance / FALLBACK_SPEED_KMH * 60),
        fallback=fallback,
        provider="haversine",
    )


def resolve_route(start: Coordinate, end: Coordinate, router: RoutingProvider | None = None) -> RouteResult:
    if router is None:
        return estimate_route(start, end, fallback=False)

    try:
        return router.get_directions(start.latitude, start.longitude, end.latitude, end.longitude)
    except ExternalServiceError as exc:
        logger.warning(
            "Routing failed, falling back to straight-line estimate",
            provider=exc.provider,
            error=exc.message,
        )
        return estimate_route(start, end)
    except Exception:
        logger.exception(
            "Unexpected routing provider failure, falling back to straight-line estimate",
            provider=getattr(router, "name", type(router).__name__),
        )
        return estimate_route(start, end)
