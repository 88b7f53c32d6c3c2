"""
EngineSettings schema.

The typed, frozen form of a tenant's engine settings.  YAML documents are
parsed into these types by ``costing_config.loader``; engines receive the
values they need through ``costing_config.bridges``.  Nothing here reads
files or the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from costing_kernel.domain.currency import BreakdownRounding, CurrencyUnit

DEFAULT_GLOBAL_THRESHOLD = 5


@dataclass(frozen=True)
class LowStockSettings:
    """Low-stock alerting toggle and thresholds."""

    enabled: bool = True
    global_threshold: int = DEFAULT_GLOBAL_THRESHOLD
    item_thresholds: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class DisplaySettings:
    """How base-unit amounts are decomposed for display."""

    max_tier: CurrencyUnit = CurrencyUnit.BGL  # DL = two-tier mode
    rounding: BreakdownRounding = BreakdownRounding.HALF_UP


@dataclass(frozen=True)
class EngineSettings:
    """Complete settings for one tenant."""

    low_stock: LowStockSettings = field(default_factory=LowStockSettings)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    default_currency: CurrencyUnit = CurrencyUnit.WL

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-safe form (used for checksums)."""
        return {
            "low_stock": {
                "enabled": self.low_stock.enabled,
                "global_threshold": self.low_stock.global_threshold,
                "item_thresholds": dict(sorted(self.low_stock.item_thresholds.items())),
            },
            "display": {
                "max_tier": self.display.max_tier.value,
                "rounding": self.display.rounding.value,
            },
            "default_currency": self.default_currency.value,
        }
