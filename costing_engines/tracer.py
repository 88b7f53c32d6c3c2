"""
costing_engines.tracer -- COSTING_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps an engine entry point and, after it returns,
    logs one COSTING_ENGINE_TRACE record carrying the engine name and
    version, a fingerprint of the selected inputs, the item the call was
    about (when an argument exposes ``item_id``) and the duration.

Architecture position:
    Engines -- support for the pure calculation layer. Emits a log record
    and nothing else; arguments are read, never modified.

Invariants enforced:
    - The fingerprint depends only on the selected argument values, whether
      they were passed positionally or by keyword: SHA-256 over a canonical
      text form, truncated to 16 hex chars.
    - Calls that raise produce no trace record.

Usage:
    from costing_engines.tracer import traced_engine

    @traced_engine("costing", "1.0", fingerprint_fields=("quantity", "mode"))
    def consume(self, ledger, quantity, mode):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from dataclasses import fields, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from costing_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_EVENT = "COSTING_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    """Stable text form of a fingerprinted argument."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return _canonicalize(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        # 2.50 and 2.5 are the same price
        return str(value.normalize())
    if isinstance(value, (int, float, str)):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return _canonicalize({f.name: getattr(value, f.name) for f in fields(value)})
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Fingerprint of ``arguments`` restricted to ``fingerprint_fields``.

    A field missing from ``arguments`` hashes the same as an explicit None.
    """
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def _subject_item(arguments: Mapping[str, Any]) -> str | None:
    for name, value in arguments.items():
        if name == "self":
            continue
        item_id = getattr(value, "item_id", None)
        if isinstance(item_id, str):
            return item_id
    return None


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator emitting COSTING_ENGINE_TRACE after each successful call.

    Args:
        engine_name: Engine identifier, e.g. "costing".
        engine_version: Version of the engine's rules, e.g. "1.0".
        fingerprint_fields: Parameter names hashed into the fingerprint.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)
        unknown = set(fingerprint_fields) - set(signature.parameters)
        if unknown:
            raise TypeError(
                f"{func.__qualname__} has no parameter(s) {sorted(unknown)} to fingerprint"
            )

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            arguments = signature.bind_partial(*args, **kwargs).arguments
            started = time.monotonic()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.monotonic() - started) * 1000, 2)

            _logger.info(TRACE_EVENT, extra={
                "trace_type": TRACE_EVENT,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": compute_input_fingerprint(fingerprint_fields, arguments),
                "subject_item_id": _subject_item(arguments),
                "duration_ms": elapsed_ms,
                "function": func.__qualname__,
            })
            return result

        return wrapper

    return decorator
