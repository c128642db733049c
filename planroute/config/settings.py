"""Pydantic settings for the planroute routing engine.

This module defines the PlanrouteSettings class that loads configuration from
environment variables and .env files. It uses pydantic-settings for automatic
environment variable parsing and validation.

Settings Categories:
    - Core: Log level, debug mode
    - Routing: Profile variant, fallback order, route deadline, rule overrides
    - Cache: Local tier bounds and the optional shared tier
    - Metrics: Rolling window size
    - Logging: Output format and optional log file
    - API Keys: External provider credentials

Environment Variables:
    PLANROUTE_LOG_LEVEL: Logging level (default: INFO)
    PLANROUTE_ROUTING__VARIANT: default, research or synthesis (default: default)
    PLANROUTE_ROUTING__ROUTE_TIMEOUT_SECONDS: Per-route deadline (default: none)
    PLANROUTE_CACHE__MAX_ENTRIES: Local decision cache size cap (default: 1024)
    PLANROUTE_CACHE__TTL_SECONDS: Local decision cache TTL (default: 3600)
    PLANROUTE_CACHE__SHARED_BACKEND: none, memory or redis (default: none)
    PLANROUTE_CACHE__REDIS_URL: Redis URL for the shared tier
    PLANROUTE_METRICS__WINDOW_SIZE: Samples kept per operation (default: 100)
    TAVILY_API_KEY: API key for Tavily web search

Usage:
    from planroute.config.settings import get_settings

    settings = get_settings()
    print(settings.routing.variant)
    print(settings.cache.max_entries)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from planroute.core.exceptions import ConfigurationError


# =============================================================================
# Default Constants
# =============================================================================

DEFAULT_METRICS_WINDOW = 100
"""Samples retained per operation name."""

DEFAULT_CACHE_MAX_ENTRIES = 1024
"""Local decision cache size cap."""

DEFAULT_CACHE_TTL_SECONDS = 3600
"""Local decision cache TTL."""

DEFAULT_SHARED_TTL_SECONDS = 3600
"""Shared tier TTL for routing decisions (one hour)."""

VALID_VARIANTS = {"default", "research", "synthesis"}


# =============================================================================
# Nested Settings Models
# =============================================================================


class RoutingSettings(BaseModel):
    """Settings for the routing profile and fallback chain.

    Attributes:
        variant: Routing profile to build ('default', 'research', 'synthesis').
        fallback_order: Global fallback order of handler ids. Empty means
            registration order.
        route_timeout_seconds: Deadline applied to every route call.
        rules_file: Optional JSON file overriding fallback order and
            classification keywords.
    """

    variant: str = Field(
        default="default",
        description="Routing profile: 'default', 'research' or 'synthesis'"
    )
    fallback_order: list[str] = Field(
        default_factory=list,
        description="Global fallback order of handler ids"
    )
    route_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Per-route deadline in seconds"
    )
    rules_file: Optional[Path] = Field(
        default=None,
        description="JSON file with routing overrides"
    )

    @field_validator("variant")
    @classmethod
    def validate_variant(cls, v: str) -> str:
        """Validate routing profile variant."""
        normalized = v.lower().strip()
        if normalized not in VALID_VARIANTS:
            raise ValueError(
                f"Invalid routing variant '{v}'. Must be one of: {', '.join(sorted(VALID_VARIANTS))}"
            )
        return normalized

    @field_validator("rules_file", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Optional[Path]:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v) if v.strip() else None
        return v


class CacheSettings(BaseModel):
    """Settings for the two-tier routing decision cache.

    Attributes:
        max_entries: Local tier size cap (least recently used evicted first).
        ttl_seconds: Local tier entry lifetime; 0 disables expiry.
        shared_backend: Shared tier type ('none', 'memory', 'redis').
        redis_url: Connection URL when shared_backend is 'redis'.
        shared_ttl_seconds: TTL passed to the shared tier on writes.

    Shared Backend Types:
        - 'none': Local tier only (default).
        - 'memory': In-process shared tier, mainly for tests.
        - 'redis': Redis via redis.asyncio; failures degrade to local only.
    """

    max_entries: int = Field(
        default=DEFAULT_CACHE_MAX_ENTRIES,
        ge=1,
        description="Local decision cache size cap"
    )
    ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        ge=0,
        description="Local decision cache TTL in seconds (0 = no expiry)"
    )
    shared_backend: str = Field(
        default="none",
        description="Shared cache tier: 'none', 'memory' or 'redis'"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the shared tier"
    )
    shared_ttl_seconds: int = Field(
        default=DEFAULT_SHARED_TTL_SECONDS,
        ge=1,
        description="Shared tier TTL in seconds"
    )

    @field_validator("shared_backend")
    @classmethod
    def validate_shared_backend(cls, v: str) -> str:
        """Validate shared tier backend type."""
        valid_backends = {"none", "memory", "redis"}
        normalized = v.lower().strip()
        if normalized not in valid_backends:
            raise ValueError(
                f"Invalid shared cache backend '{v}'. Must be one of: {', '.join(sorted(valid_backends))}"
            )
        return normalized


class MetricsSettings(BaseModel):
    """Settings for the per-operation metrics recorder.

    Attributes:
        window_size: Number of latency samples kept per operation name.
    """

    window_size: int = Field(
        default=DEFAULT_METRICS_WINDOW,
        ge=1,
        le=100000,
        description="Samples retained per operation"
    )


class LoggingSettings(BaseModel):
    """Settings for log output.

    Attributes:
        json_lines: Emit one JSON object per line instead of text.
        log_file: Optional rotating log file path.
    """

    json_lines: bool = Field(
        default=False,
        description="Emit JSON Lines instead of text"
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Optional rotating log file"
    )


class APIKeySettings(BaseSettings):
    """Settings for external API keys.

    These are loaded WITHOUT a prefix since they use standard env var names.

    Attributes:
        tavily_api_key: API key for Tavily web search.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tavily_api_key: Optional[str] = Field(
        default=None,
        description="Tavily API key for web search"
    )


# =============================================================================
# Main Settings Class
# =============================================================================


class PlanrouteSettings(BaseSettings):
    """Main settings class for planroute configuration.

    Environment variables use the PLANROUTE_ prefix (except for API keys which
    use standard names like TAVILY_API_KEY). Nested groups use '__'.

    Attributes:
        debug: Enable debug mode for verbose logging.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        routing: Routing profile and fallback configuration.
        cache: Decision cache configuration.
        metrics: Metrics recorder configuration.
        logging: Log output configuration.
        api_keys: External API credentials.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLANROUTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    routing: RoutingSettings = Field(
        default_factory=RoutingSettings,
        description="Routing configuration"
    )
    cache: CacheSettings = Field(
        default_factory=CacheSettings,
        description="Decision cache configuration"
    )
    metrics: MetricsSettings = Field(
        default_factory=MetricsSettings,
        description="Metrics configuration"
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration"
    )

    api_keys: APIKeySettings = Field(
        default_factory=APIKeySettings,
        description="API key configuration"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        return normalized

    def load_rule_overrides(self) -> dict[str, Any]:
        """Read the optional routing rules file.

        The file is a JSON object that may contain ``fallbackOrder`` (list of
        handler ids) and ``classificationKeywords`` (category -> keywords).

        Returns:
            Parsed overrides, or an empty dict when no file is configured.

        Raises:
            ConfigurationError: If the file is missing or not valid JSON.
        """
        path = self.routing.rules_file
        if path is None:
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Routing rules file not found: {path}",
                config_key="routing.rules_file",
            ) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Routing rules file is not valid JSON: {path}",
                config_key="routing.rules_file",
                validation_details=str(e),
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Routing rules file must contain a JSON object",
                config_key="routing.rules_file",
            )
        return data

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a dictionary.

        Sensitive values (API keys) are masked for safe logging.

        Returns:
            Dictionary representation of settings with masked secrets.
        """
        data = self.model_dump(mode="json")
        if "api_keys" in data:
            for key in data["api_keys"]:
                if data["api_keys"][key]:
                    data["api_keys"][key] = "***MASKED***"
        return data


# =============================================================================
# Cached Instance
# =============================================================================

_settings_instance: Optional[PlanrouteSettings] = None


def get_settings() -> PlanrouteSettings:
    """Get the cached settings instance.

    Settings are created once and cached to avoid repeated .env parsing.
    Routers never call this themselves; the composition root passes settings
    in explicitly.

    Returns:
        The cached PlanrouteSettings instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = PlanrouteSettings()
    return _settings_instance


def reload_settings() -> PlanrouteSettings:
    """Reload settings from environment, clearing the cache.

    Returns:
        A fresh PlanrouteSettings instance.
    """
    global _settings_instance
    _settings_instance = PlanrouteSettings()
    return _settings_instance


def clear_settings_cache() -> None:
    """Clear the settings cache without creating a new instance."""
    global _settings_instance
    _settings_instance = None


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
    "DEFAULT_METRICS_WINDOW",
    "DEFAULT_CACHE_MAX_ENTRIES",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_SHARED_TTL_SECONDS",
]
