"""
Config → Engine Bridges.

Functions that convert EngineSettings into the explicit values engines and
services take.  They live in costing_config (the producer) because engines
and services must never import costing_config.

Usage:
    from costing_config import load_settings
    from costing_config.bridges import build_low_stock_thresholds

    settings = load_settings("tenant.yaml")
    alerts = LowStockDetector().evaluate(
        items, ledgers, build_low_stock_thresholds(settings)
    )
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from costing_config.schema import EngineSettings
from costing_engines.costing import CostingEngine
from costing_engines.low_stock import LowStockThresholds
from costing_engines.profit import ProfitCalculator
from costing_kernel.domain.currency import Breakdown, DenominationConverter
from costing_services.sale_service import SaleService


def build_low_stock_thresholds(settings: EngineSettings) -> LowStockThresholds:
    return LowStockThresholds(
        global_threshold=settings.low_stock.global_threshold,
        item_overrides=dict(settings.low_stock.item_thresholds),
        enabled=settings.low_stock.enabled,
    )


def display_breakdown(
    settings: EngineSettings,
    base_amount: Decimal | int | str,
) -> Breakdown:
    """Decompose a base-unit amount with the tenant's display mode."""
    return DenominationConverter.to_breakdown(
        base_amount,
        max_tier=settings.display.max_tier,
        rounding=settings.display.rounding,
    )


def build_profit_calculator(
    settings: EngineSettings,
    engine: CostingEngine | None = None,
) -> ProfitCalculator:
    """Calculator whose simulations price in the tenant's default currency."""
    return ProfitCalculator(engine, default_unit=settings.default_currency)


def build_sale_service(
    settings: EngineSettings,
    session: Session,
    engine: CostingEngine | None = None,
    max_retries: int = 1,
) -> SaleService:
    """Sale service recording unit-less sales in the tenant's default currency."""
    return SaleService(
        session,
        engine=engine,
        max_retries=max_retries,
        default_unit=settings.default_currency,
    )
