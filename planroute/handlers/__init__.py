"""Handlers: the capability interface, the registry and concrete handlers."""

from planroute.handlers.base import FunctionHandler, Handler
from planroute.handlers.direct import DirectExecutor, acknowledge
from planroute.handlers.registry import HandlerRegistry
from planroute.handlers.tavily import TavilyHandler

__all__ = [
    "Handler",
    "FunctionHandler",
    "HandlerRegistry",
    "TavilyHandler",
    "DirectExecutor",
    "acknowledge",
]
