"""
supply_engines.tracer -- one SUPPLY_ENGINE_TRACE record per engine call.

``@traced_engine`` wraps a pure engine function.  Each call logs the engine
name and version, a short fingerprint of the chosen arguments, the wall
time spent, and whatever the optional ``outcome`` callable extracts from
the return value.  Arguments and results pass through untouched.

Usage:
    @traced_engine(
        "fefo", "1.0",
        fingerprint_fields=("desired_qty",),
        outcome=lambda r: {"success": r.success},
    )
    def consume(lots, desired_qty):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable, Mapping
from typing import Any

from supply_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")


def input_fingerprint(arguments: Mapping[str, Any], fields: tuple[str, ...]) -> str:
    """First 16 hex chars of SHA-256 over the selected arguments as JSON."""
    selected = {name: arguments.get(name) for name in fields}
    encoded = json.dumps(selected, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    outcome: Callable[[Any], Mapping[str, Any]] | None = None,
) -> Callable:
    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 3)

            record: dict[str, Any] = {
                "trace_type": "SUPPLY_ENGINE_TRACE",
                "engine_name": engine_name,
                "engine_version": engine_version,
                "function": func.__qualname__,
                "duration_ms": elapsed_ms,
            }
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs).arguments
                record["input_fingerprint"] = input_fingerprint(bound, fingerprint_fields)
            if outcome is not None:
                record.update(outcome(result))

            logger.info("SUPPLY_ENGINE_TRACE", extra=record)
            return result

        return wrapper

    return decorator
