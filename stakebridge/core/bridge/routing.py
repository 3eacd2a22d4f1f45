"""Route selection policies.

The routing service returns candidates in its own order; which one to take is a
policy decision. The default keeps the service's first candidate.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from ..errors import ConfigurationError
from .models import Route

RouteSelector = Callable[[List[Route]], Route]


def first_route(routes: List[Route]) -> Route:
    return routes[0]


def max_output_route(routes: List[Route]) -> Route:
    """Highest guaranteed output; ties keep service order."""
    return max(routes, key=lambda route: route.to_amount_min)


def fastest_route(routes: List[Route]) -> Route:
    return min(routes, key=lambda route: route.execution_duration)


ROUTE_SELECTORS: Dict[str, RouteSelector] = {
    "first": first_route,
    "max_output": max_output_route,
    "fastest": fastest_route,
}


def get_route_selector(name: str) -> RouteSelector:
    try:
        return ROUTE_SELECTORS[name.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown route selection policy {name!r}",
            allowed=sorted(ROUTE_SELECTORS),
        ) from None
