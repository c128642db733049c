"""Canonical request fingerprints used as decision cache keys.

Two requests that are semantically identical (same operation name, same tool
set in any order, deep-equal context and parameters regardless of key order)
always produce the same fingerprint.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping, Set
from enum import Enum
from typing import Any

from planroute.routing.schemas import Request


def _canonical_key(key: Any) -> str:
    return str(key.value) if isinstance(key, Enum) else str(key)


def canonicalize(value: Any) -> Any:
    """Return a JSON-ready copy of ``value`` with a stable shape.

    Mappings get string keys in sorted order, sets become sorted lists,
    tuples become lists, enums collapse to their values. Anything else that
    JSON cannot encode is replaced by its ``repr``.
    """
    if isinstance(value, Mapping):
        items = {_canonical_key(k): canonicalize(v) for k, v in value.items()}
        return {k: items[k] for k in sorted(items)}
    if isinstance(value, Set):
        items = [canonicalize(v) for v in value]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True))
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if isinstance(value, Enum):
        return canonicalize(value.value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return repr(value)


def digest(value: Any) -> str:
    """Hex SHA-256 of the canonical JSON form of ``value``."""
    encoded = json.dumps(
        canonicalize(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def fingerprint(request: Request) -> str:
    """Compute the cache key for a request.

    Priority is part of the fingerprint because it feeds the complexity score.

    Args:
        request: Request to fingerprint.

    Returns:
        Hex SHA-256 digest of the canonical JSON form.
    """
    return digest({
        "operation": request.operation_name,
        "tools": sorted(request.tools),
        "context": request.context,
        "parameters": request.parameters,
        "priority": request.priority.value,
    })


__all__ = ["canonicalize", "digest", "fingerprint"]
