"""
Module: costing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    costing_services and for reporting consumers.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import costing_kernel (domain, logging) and sibling engine
    modules.  MUST NOT import costing_services or costing_config.

Invariants enforced:
    - Purity: engines never read the clock; timestamps arrive on records.
    - Decimal-only arithmetic for every amount.
    - Determinism: identical inputs produce identical outputs (REAL-mode
      consumption aside, which decrements the ledger it is given).

Usage:
    from costing_engines import CostingEngine, ConsumptionMode, LotLedger

    ledger = LotLedger("sword", lots)
    result = CostingEngine().consume(ledger, 12, ConsumptionMode.REAL)
"""

from costing_engines.costing import (
    ConsumptionMode,
    ConsumptionResult,
    ConsumptionStatus,
    CostContribution,
    CostingEngine,
    LotUpdate,
)
from costing_engines.ledger import LotLedger
from costing_engines.low_stock import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    LowStockAlert,
    LowStockDetector,
    LowStockThresholds,
)
from costing_engines.profit import (
    PeriodGranularity,
    ProfitCalculator,
    ProfitReport,
    ReportWindow,
    Rollup,
    SimulationResult,
    margin_pct,
)
from costing_engines.reporting import (
    CategoryStats,
    ItemStats,
    category_stats,
    inventory_valuation,
    item_stats,
    top_items,
)

__all__ = [
    "CategoryStats",
    "ConsumptionMode",
    "ConsumptionResult",
    "ConsumptionStatus",
    "CostContribution",
    "CostingEngine",
    "DEFAULT_LOW_STOCK_THRESHOLD",
    "ItemStats",
    "LotLedger",
    "LotUpdate",
    "LowStockAlert",
    "LowStockDetector",
    "LowStockThresholds",
    "PeriodGranularity",
    "ProfitCalculator",
    "ProfitReport",
    "ReportWindow",
    "Rollup",
    "SimulationResult",
    "category_stats",
    "inventory_valuation",
    "item_stats",
    "margin_pct",
    "top_items",
]
