"""Core building blocks shared across planroute modules."""

from planroute.core.exceptions import (
    PlanrouteError,
    ConfigurationError,
    RegistryError,
    HandlerError,
    HandlerUnavailableError,
    HandlerInvocationError,
    RoutingError,
    AllHandlersExhaustedError,
    RouteTimeoutError,
    CacheTierError,
)

__all__ = [
    "PlanrouteError",
    "ConfigurationError",
    "RegistryError",
    "HandlerError",
    "HandlerUnavailableError",
    "HandlerInvocationError",
    "RoutingError",
    "AllHandlersExhaustedError",
    "RouteTimeoutError",
    "CacheTierError",
]
