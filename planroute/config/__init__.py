"""Configuration module for planroute.

Usage:
    from planroute.config import get_settings, PlanrouteSettings

    settings = get_settings()
    print(settings.routing.variant)
"""

from planroute.config.settings import (
    PlanrouteSettings,
    RoutingSettings,
    CacheSettings,
    MetricsSettings,
    LoggingSettings,
    APIKeySettings,
    get_settings,
    reload_settings,
    clear_settings_cache,
)

__all__ = [
    "PlanrouteSettings",
    "RoutingSettings",
    "CacheSettings",
    "MetricsSettings",
    "LoggingSettings",
    "APIKeySettings",
    "get_settings",
    "reload_settings",
    "clear_settings_cache",
]
