"""Explicit Router construction from settings.

There is no module-level router. Applications call ``build_router`` once at
startup with their settings and handlers and keep the returned instance.

Example:
    >>> settings = get_settings()
    >>> router = build_router(settings, handlers=[
    ...     FunctionHandler("docs", {"technical"}, fetch_docs),
    ...     TavilyHandler(api_key=settings.api_keys.tavily_api_key),
    ... ])
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from planroute.cache.decision_cache import DecisionCache
from planroute.cache.shared import InMemorySharedTier, RedisSharedTier, SharedTier
from planroute.config.settings import PlanrouteSettings, get_settings
from planroute.handlers.base import Handler
from planroute.handlers.direct import DirectExecutor, acknowledge
from planroute.handlers.registry import HandlerRegistry
from planroute.handlers.tavily import TavilyHandler
from planroute.routing.profiles import RoutingProfile, get_profile
from planroute.routing.router import Router
from planroute.telemetry.metrics import MetricsRecorder


logger = logging.getLogger(__name__)


def build_shared_tier(settings: PlanrouteSettings) -> Optional[SharedTier]:
    """Create the configured shared cache tier, or None."""
    backend = settings.cache.shared_backend
    if backend == "redis":
        return RedisSharedTier(url=settings.cache.redis_url)
    if backend == "memory":
        return InMemorySharedTier()
    return None


def build_profile(settings: PlanrouteSettings) -> RoutingProfile:
    """Resolve the routing profile with file and settings overrides.

    The rules file is applied first; ``routing.fallback_order`` from the
    settings wins over the file's ``fallbackOrder``.

    Raises:
        ConfigurationError: If the variant is unknown or the rules file is
            invalid.
    """
    profile = get_profile(settings.routing.variant)
    overrides = settings.load_rule_overrides()
    if overrides:
        logger.info("Applying routing overrides from %s", settings.routing.rules_file)
        profile = profile.apply_overrides(overrides)
    if settings.routing.fallback_order:
        profile = profile.with_overrides(fallback_order=settings.routing.fallback_order)
    return profile


def default_handlers(settings: PlanrouteSettings) -> list[Handler]:
    """Handlers available from configuration alone.

    Currently the Tavily handler, when a Tavily API key is configured.
    """
    handlers: list[Handler] = []
    if settings.api_keys.tavily_api_key:
        handlers.append(TavilyHandler(api_key=settings.api_keys.tavily_api_key))
    else:
        logger.info("TAVILY_API_KEY not set; Tavily handler not registered")
    return handlers


def build_router(
    settings: Optional[PlanrouteSettings] = None,
    handlers: Optional[Iterable[Handler]] = None,
    direct_executor: DirectExecutor = acknowledge,
    shared_tier: Optional[SharedTier] = None,
) -> Router:
    """Compose a Router.

    Args:
        settings: Settings to build from; defaults to get_settings().
        handlers: Handlers to register, in fallback-priority order. None
            registers default_handlers(settings).
        direct_executor: Executor for use_handler=False decisions.
        shared_tier: Explicit shared cache tier; overrides
            ``cache.shared_backend``.

    Returns:
        A ready Router with a frozen registry.
    """
    settings = settings or get_settings()
    registry = HandlerRegistry(default_handlers(settings) if handlers is None else handlers)
    cache = DecisionCache(
        max_entries=settings.cache.max_entries,
        ttl_seconds=settings.cache.ttl_seconds,
        shared=shared_tier if shared_tier is not None else build_shared_tier(settings),
        shared_ttl_seconds=settings.cache.shared_ttl_seconds,
    )
    return Router(
        registry=registry,
        profile=build_profile(settings),
        cache=cache,
        metrics=MetricsRecorder(window_size=settings.metrics.window_size),
        direct_executor=direct_executor,
        route_timeout_seconds=settings.routing.route_timeout_seconds,
    )


__all__ = ["build_router", "build_profile", "build_shared_tier", "default_handlers"]
