"""Custom exceptions for the planroute routing engine.

This module defines the exception hierarchy used throughout planroute. All
exceptions inherit from PlanrouteError, enabling catch-all handling while
still allowing callers to match specific failure types.

Exception Hierarchy:
    PlanrouteError (base)
    ├── ConfigurationError: Invalid configuration or settings
    ├── RegistryError: Handler registration problems
    ├── HandlerError: Failures local to a single handler
    │   ├── HandlerUnavailableError: Availability probe said no
    │   └── HandlerInvocationError: Handler raised while serving a request
    ├── RoutingError: Route-level failures surfaced to the caller
    │   ├── AllHandlersExhaustedError: Every fallback candidate failed
    │   └── RouteTimeoutError: Caller deadline expired mid-route
    └── CacheTierError: Shared cache tier failures (never fatal)

Only AllHandlersExhaustedError and RouteTimeoutError describe route-level
failures. HandlerError subclasses are absorbed by the fallback chain and
CacheTierError is absorbed by the decision cache.
"""

from typing import Any, Optional, Sequence


class PlanrouteError(Exception):
    """Base exception for all planroute errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        context: Additional context information about the error
        recoverable: Whether the error is potentially recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "PLANROUTE_ERROR"
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_log_dict(self) -> dict[str, Any]:
        """Return structured dict for logging.

        Returns:
            Dictionary with error details suitable for structured logging
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ConfigurationError(PlanrouteError):
    """Raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that caused the error
        validation_details: Details about why validation failed
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        validation_details: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if config_key:
            context["config_key"] = config_key
        if validation_details:
            context["validation_details"] = validation_details
        super().__init__(message, code="CONFIG_ERROR", context=context, **kwargs)
        self.config_key = config_key
        self.validation_details = validation_details


class RegistryError(PlanrouteError):
    """Raised on invalid handler registration (duplicates, frozen registry)."""

    def __init__(self, message: str, handler_id: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if handler_id:
            context["handler_id"] = handler_id
        super().__init__(message, code="REGISTRY_ERROR", context=context, **kwargs)
        self.handler_id = handler_id


class HandlerError(PlanrouteError):
    """Base exception for failures local to one handler.

    Attributes:
        handler_id: Identifier of the handler that failed
    """

    def __init__(
        self,
        message: str,
        handler_id: Optional[str] = None,
        code: str = "HANDLER_ERROR",
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if handler_id:
            context["handler_id"] = handler_id
        kwargs.setdefault("recoverable", True)
        super().__init__(message, code=code, context=context, **kwargs)
        self.handler_id = handler_id


class HandlerUnavailableError(HandlerError):
    """Raised when a handler's availability probe reports it cannot serve."""

    def __init__(self, handler_id: str, reason: str = "availability check failed", **kwargs: Any) -> None:
        super().__init__(
            f"Handler '{handler_id}' unavailable: {reason}",
            handler_id=handler_id,
            code="HANDLER_UNAVAILABLE",
            **kwargs,
        )
        self.reason = reason


class HandlerInvocationError(HandlerError):
    """Raised when a handler fails while serving a request.

    Attributes:
        cause: The original exception raised by the handler, if any
    """

    def __init__(
        self,
        handler_id: str,
        reason: str,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Handler '{handler_id}' failed: {reason}",
            handler_id=handler_id,
            code="HANDLER_INVOCATION_FAILED",
            **kwargs,
        )
        self.reason = reason
        self.cause = cause


class RoutingError(PlanrouteError):
    """Base exception for route-level failures."""

    def __init__(self, message: str, operation_name: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if operation_name:
            context["operation_name"] = operation_name
        kwargs.setdefault("code", "ROUTING_ERROR")
        super().__init__(message, context=context, **kwargs)
        self.operation_name = operation_name


class AllHandlersExhaustedError(RoutingError):
    """Raised when no fallback candidate could serve the request.

    Attributes:
        attempts: Every attempted handler with its failure reason, in order
    """

    def __init__(
        self,
        attempts: Sequence[Any],
        operation_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        attempts = list(attempts)
        if attempts:
            detail = "; ".join(f"{a.handler_id}: {a.reason}" for a in attempts)
        else:
            detail = "no candidate handlers"
        context = kwargs.pop("context", {}) or {}
        context["attempts"] = [a.to_dict() for a in attempts]
        super().__init__(
            f"All handlers exhausted ({detail})",
            operation_name=operation_name,
            code="ALL_HANDLERS_EXHAUSTED",
            context=context,
            **kwargs,
        )
        self.attempts = attempts

    @property
    def handler_ids(self) -> list[str]:
        """Ids of every attempted handler, in attempt order."""
        return [a.handler_id for a in self.attempts]


class RouteTimeoutError(RoutingError):
    """Raised when a route exceeds its deadline.

    Attributes:
        timeout_seconds: The deadline that was exceeded
    """

    def __init__(
        self,
        timeout_seconds: Optional[float],
        operation_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        context["timeout_seconds"] = timeout_seconds
        message = (
            "Route timed out" if timeout_seconds is None
            else f"Route timed out after {timeout_seconds:g}s"
        )
        super().__init__(
            message,
            operation_name=operation_name,
            code="ROUTE_TIMEOUT",
            context=context,
            **kwargs,
        )
        self.timeout_seconds = timeout_seconds


class CacheTierError(PlanrouteError):
    """Raised by a shared cache tier backend. Never fatal to routing.

    Attributes:
        tier: Name of the tier that failed (e.g. 'redis')
    """

    def __init__(self, message: str, tier: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if tier:
            context["tier"] = tier
        kwargs.setdefault("recoverable", True)
        super().__init__(message, code="CACHE_TIER_ERROR", context=context, **kwargs)
        self.tier = tier


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
