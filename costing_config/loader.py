"""
Settings Loader (``costing_config.loader``).

Responsibility
--------------
Load a YAML settings document and parse it into a frozen
``EngineSettings``.  Missing sections fall back to the documented
defaults; present values are validated strictly.

Invariants enforced
-------------------
* Every parse error raises ``InvalidSettingsError`` naming the field.
* Unknown currency units never default silently.
* ``compute_checksum`` is deterministic for equal settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``InvalidSettingsError``.

Example document::

    low_stock:
      enabled: true
      global_threshold: 5
      item_thresholds:
        sword: 10
    display:
      max_tier: DL
      rounding: half_up
    default_currency: WL
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from costing_config.schema import (
    DEFAULT_GLOBAL_THRESHOLD,
    DisplaySettings,
    EngineSettings,
    LowStockSettings,
)
from costing_kernel.domain.currency import BreakdownRounding, CurrencyUnit
from costing_kernel.exceptions import InvalidSettingsError, InvalidUnitError
from costing_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _non_negative_int(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSettingsError(field, f"expected an integer, got {value!r}")
    if value < 0:
        raise InvalidSettingsError(field, "cannot be negative")
    return value


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidSettingsError(name, "expected a mapping")
    return section


def _unit(field: str, value: Any) -> CurrencyUnit:
    try:
        return CurrencyUnit.parse(value)
    except InvalidUnitError as e:
        raise InvalidSettingsError(field, str(e)) from e


def parse_low_stock(data: dict[str, Any]) -> LowStockSettings:
    """Parse the ``low_stock`` section."""
    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise InvalidSettingsError("low_stock.enabled", "expected a boolean")

    raw_items = data.get("item_thresholds") or {}
    if not isinstance(raw_items, dict):
        raise InvalidSettingsError("low_stock.item_thresholds", "expected a mapping")

    return LowStockSettings(
        enabled=enabled,
        global_threshold=_non_negative_int(
            "low_stock.global_threshold",
            data.get("global_threshold", DEFAULT_GLOBAL_THRESHOLD),
        ),
        item_thresholds={
            str(item_id): _non_negative_int(f"low_stock.item_thresholds.{item_id}", v)
            for item_id, v in raw_items.items()
        },
    )


def parse_display(data: dict[str, Any]) -> DisplaySettings:
    """Parse the ``display`` section."""
    rounding_raw = data.get("rounding", BreakdownRounding.HALF_UP.value)
    try:
        rounding = BreakdownRounding(str(rounding_raw).lower())
    except ValueError as e:
        raise InvalidSettingsError(
            "display.rounding", f"unknown rounding mode {rounding_raw!r}"
        ) from e

    max_tier = _unit("display.max_tier", data.get("max_tier", CurrencyUnit.BGL.value))
    if max_tier is CurrencyUnit.WL:
        raise InvalidSettingsError("display.max_tier", "must be DL or BGL")

    return DisplaySettings(max_tier=max_tier, rounding=rounding)


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse a full settings document.

    Raises:
        InvalidSettingsError: on any invalid value.
    """
    if not isinstance(data, dict):
        raise InvalidSettingsError("<root>", "expected a mapping")
    return EngineSettings(
        low_stock=parse_low_stock(_section(data, "low_stock")),
        display=parse_display(_section(data, "display")),
        default_currency=_unit(
            "default_currency", data.get("default_currency", CurrencyUnit.WL.value)
        ),
    )


def load_settings(path: Path | str) -> EngineSettings:
    """Load and parse a YAML settings file."""
    path = Path(path)
    settings = parse_settings(load_yaml_file(path))
    logger.info("settings_loaded", extra={
        "path": str(path),
        "checksum": compute_checksum(settings),
        "low_stock_enabled": settings.low_stock.enabled,
        "global_threshold": settings.low_stock.global_threshold,
    })
    return settings


def compute_checksum(settings: EngineSettings) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(settings.to_dict(), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
