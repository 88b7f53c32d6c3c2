"""
costing_engines.profit -- Realized profit, period rollups and simulation.

Responsibility:
    Combine sales with their FIFO cost basis to produce realized profit per
    sale, roll profit up per calendar period and per item, and project the
    profit of a hypothetical sale without touching any lot.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on costing_engines.costing for cost basis and on the
    DenominationConverter (through Amount) for cross-unit normalization.

Invariants enforced:
    - A single sale's profit is stated in the sale's unit; foreign-unit
      cost contributions are converted through base units first.
    - Rollups keep one figure per currency unit and never coerce units
      into a single number.
    - ``simulate`` runs the costing engine in SIMULATE mode only.

Failure modes:
    - Sales whose lot is missing are costed at zero, listed in
      ``ProfitReport.unmatched_sales`` and logged as a warning.
    - ValueError for a missing ledger or a negative simulation quantity
      or price.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from costing_engines.costing import (
    ConsumptionMode,
    CostContribution,
    CostingEngine,
    total_cost_in,
)
from costing_engines.ledger import LotLedger
from costing_engines.tracer import traced_engine
from costing_kernel.domain.currency import BASE_UNIT, CurrencyUnit
from costing_kernel.domain.lots import InventoryEntry, Sale
from costing_kernel.domain.values import Amount
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.profit")


def margin_pct(revenue: Decimal, profit: Decimal) -> Decimal:
    """
    Margin on revenue: ``profit / revenue * 100``; 0 when there is no revenue.

    This is the margin used by every rollup here.  It is not markup on
    cost (``profit / cogs``); callers wanting markup divide by the cost
    figure themselves.
    """
    if revenue == 0:
        return Decimal("0")
    return profit / revenue * 100


class PeriodGranularity(str, Enum):
    DAY = "day"
    MONTH = "month"


@dataclass(frozen=True)
class ReportWindow:
    """Half-open time window ``[start, end)``; open ends are unbounded."""

    start: datetime | None = None
    end: datetime | None = None
    granularity: PeriodGranularity = PeriodGranularity.DAY

    def __post_init__(self) -> None:
        object.__setattr__(self, "granularity", PeriodGranularity(self.granularity))
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError("ReportWindow end precedes start")

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True

    def period_key(self, moment: datetime) -> date:
        """First day of the calendar period containing ``moment``."""
        if self.granularity is PeriodGranularity.MONTH:
            return date(moment.year, moment.month, 1)
        return moment.date()


@dataclass(frozen=True)
class Rollup:
    """Revenue, cost and profit kept per currency unit."""

    revenue: dict[CurrencyUnit, Decimal] = field(default_factory=dict)
    cost: dict[CurrencyUnit, Decimal] = field(default_factory=dict)
    profit: dict[CurrencyUnit, Decimal] = field(default_factory=dict)
    quantity_sold: int = 0
    sale_count: int = 0

    def margin(self) -> dict[CurrencyUnit, Decimal]:
        return {
            unit: margin_pct(self.revenue.get(unit, Decimal("0")), profit)
            for unit, profit in self.profit.items()
        }


class _RollupBuilder:
    def __init__(self) -> None:
        self.revenue: dict[CurrencyUnit, Decimal] = {}
        self.cost: dict[CurrencyUnit, Decimal] = {}
        self.profit: dict[CurrencyUnit, Decimal] = {}
        self.quantity_sold = 0
        self.sale_count = 0

    def add(self, sale: Sale, cost: Amount) -> None:
        unit = sale.currency_unit
        zero = Decimal("0")
        self.revenue[unit] = self.revenue.get(unit, zero) + sale.amount_gained
        self.cost[unit] = self.cost.get(unit, zero) + cost.amount
        self.profit[unit] = self.profit.get(unit, zero) + (sale.amount_gained - cost.amount)
        self.quantity_sold += sale.quantity_sold
        self.sale_count += 1

    def build(self) -> Rollup:
        return Rollup(
            revenue=dict(self.revenue),
            cost=dict(self.cost),
            profit=dict(self.profit),
            quantity_sold=self.quantity_sold,
            sale_count=self.sale_count,
        )


@dataclass(frozen=True)
class ProfitReport:
    """Period and item rollups for the sales inside a window."""

    window: ReportWindow
    by_period: dict[date, Rollup]
    by_item: dict[str, Rollup]
    totals: Rollup
    unmatched_sales: tuple[str, ...] = ()


@dataclass(frozen=True)
class SimulationResult:
    """
    Projection of a hypothetical sale. Never persisted.

    When ``capped`` is set the request exceeded stock and every figure
    describes the ``simulated_quantity`` that was actually available.
    """

    item_id: str
    requested_quantity: int
    simulated_quantity: int
    available_quantity: int
    assumed_unit_price: Amount
    projected_revenue: Amount
    simulated_cogs: Amount
    projected_profit: Amount
    breakdown: tuple[CostContribution, ...]
    capped: bool
    shortfall: int


class ProfitCalculator:
    """
    Realized and projected profit.

    Contract:
        Pure functions over already-loaded records. No clock, no I/O.
    Guarantees:
        - ``sale_profit`` is stated in the sale's unit.
        - ``aggregate`` never mixes currency units in one figure.
        - ``simulate`` leaves every lot of the ledger untouched.

    ``default_unit`` is the price unit ``simulate`` assumes when the caller
    names none; without it the oldest open lot's unit is used.
    """

    def __init__(
        self,
        engine: CostingEngine | None = None,
        default_unit: CurrencyUnit | str | None = None,
    ):
        self.engine = engine or CostingEngine()
        self.default_unit = (
            CurrencyUnit.parse(default_unit) if default_unit is not None else None
        )

    def sale_profit(
        self,
        sale: Sale,
        contributions: Iterable[CostContribution],
    ) -> Amount:
        """Revenue minus cost of goods sold, in the sale's unit."""
        cost = total_cost_in(contributions, sale.currency_unit)
        return sale.revenue - cost

    def sale_profit_for_lot(self, sale: Sale, entry: InventoryEntry) -> Amount:
        return self.sale_profit(sale, self.engine.historical_cost(sale, entry))

    @traced_engine("profit_aggregate", "1.0", fingerprint_fields=("window",))
    def aggregate(
        self,
        sales: Iterable[Sale],
        lots: Mapping[str, InventoryEntry] | Iterable[InventoryEntry],
        window: ReportWindow | None = None,
    ) -> ProfitReport:
        """
        Roll sales up per calendar period and per item.

        Args:
            sales: Recorded sales, any order.
            lots: The lots the sales reference, keyed by entry_id or as a
                plain iterable.
            window: Time window and period granularity; all time by day
                when omitted.
        """
        window = window or ReportWindow()
        lots_by_id = (
            dict(lots) if isinstance(lots, Mapping)
            else {lot.entry_id: lot for lot in lots}
        )

        by_period: dict[date, _RollupBuilder] = {}
        by_item: dict[str, _RollupBuilder] = {}
        totals = _RollupBuilder()
        unmatched: list[str] = []

        for sale in sorted(sales, key=lambda s: (s.sold_at, s.sale_id)):
            if not window.contains(sale.sold_at):
                continue

            entry = lots_by_id.get(sale.entry_id)
            if entry is None:
                logger.warning("profit_sale_lot_missing", extra={
                    "sale_id": sale.sale_id,
                    "entry_id": sale.entry_id,
                    "item_id": sale.item_id,
                })
                unmatched.append(sale.sale_id)
                cost = Amount.zero(sale.currency_unit)
            else:
                cost = total_cost_in(
                    self.engine.historical_cost(sale, entry), sale.currency_unit
                )

            by_period.setdefault(window.period_key(sale.sold_at), _RollupBuilder()).add(sale, cost)
            by_item.setdefault(sale.item_id, _RollupBuilder()).add(sale, cost)
            totals.add(sale, cost)

        report = ProfitReport(
            window=window,
            by_period={k: by_period[k].build() for k in sorted(by_period)},
            by_item={k: by_item[k].build() for k in sorted(by_item)},
            totals=totals.build(),
            unmatched_sales=tuple(unmatched),
        )

        logger.info("profit_aggregated", extra={
            "granularity": window.granularity.value,
            "periods": len(report.by_period),
            "items": len(report.by_item),
            "sale_count": report.totals.sale_count,
            "unmatched": len(unmatched),
        })
        return report

    @traced_engine(
        "profit_simulate", "1.0",
        fingerprint_fields=("simulate_qty", "assumed_unit_price", "price_unit"),
    )
    def simulate(
        self,
        ledger: LotLedger,
        simulate_qty: int,
        assumed_unit_price: Decimal | int | str,
        price_unit: CurrencyUnit | str | None = None,
    ) -> SimulationResult:
        """
        Project the profit of selling ``simulate_qty`` at ``assumed_unit_price``.

        Args:
            ledger: The item's ledger (read only).
            simulate_qty: Units to hypothetically sell.
            assumed_unit_price: Sell price per unit.
            price_unit: Unit of the price; defaults to ``default_unit``,
                then to the unit of the oldest open lot, or WL for an
                empty ledger.

        Raises:
            ValueError: Missing ledger, negative quantity or price.
        """
        if ledger is None:
            raise ValueError("simulate() requires a ledger")
        price = Decimal(str(assumed_unit_price))
        if price < 0:
            raise ValueError(f"Assumed unit price cannot be negative, got {price}")

        if price_unit is not None:
            unit = CurrencyUnit.parse(price_unit)
        elif self.default_unit is not None:
            unit = self.default_unit
        else:
            open_lots = ledger.open_lots_fifo()
            unit = open_lots[0].currency_unit if open_lots else BASE_UNIT

        available = ledger.total_remaining()
        consumption = self.engine.consume(ledger, simulate_qty, ConsumptionMode.SIMULATE)

        simulated_qty = consumption.consumed_quantity
        revenue = Amount(amount=price * simulated_qty, unit=unit)
        cogs = consumption.total_cost(unit)

        result = SimulationResult(
            item_id=ledger.item_id,
            requested_quantity=simulate_qty,
            simulated_quantity=simulated_qty,
            available_quantity=available,
            assumed_unit_price=Amount(amount=price, unit=unit),
            projected_revenue=revenue,
            simulated_cogs=cogs,
            projected_profit=revenue - cogs,
            breakdown=consumption.contributions,
            capped=consumption.is_capped,
            shortfall=consumption.shortfall,
        )

        logger.info("profit_simulated", extra={
            "item_id": ledger.item_id,
            "requested": simulate_qty,
            "simulated": simulated_qty,
            "capped": result.capped,
            "projected_profit": str(result.projected_profit.amount),
            "unit": unit.value,
        })
        return result
