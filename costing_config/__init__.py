"""
costing_config -- typed engine settings.

Responsibility:
    Turn a tenant's settings document into a frozen ``EngineSettings`` and
    bridge it into the explicit values engine calls take.  Engines never
    look settings up themselves.

Architecture position:
    Configuration -- sits above ``costing_kernel``, ``costing_engines`` and
    ``costing_services``; none of them imports this package.
"""

from costing_config.bridges import (
    build_low_stock_thresholds,
    build_profit_calculator,
    build_sale_service,
    display_breakdown,
)
from costing_config.loader import (
    compute_checksum,
    load_settings,
    load_yaml_file,
    parse_settings,
)
from costing_config.schema import DisplaySettings, EngineSettings, LowStockSettings

__all__ = [
    "DisplaySettings",
    "EngineSettings",
    "LowStockSettings",
    "build_low_stock_thresholds",
    "build_profit_calculator",
    "build_sale_service",
    "compute_checksum",
    "display_breakdown",
    "load_settings",
    "load_yaml_file",
    "parse_settings",
]
