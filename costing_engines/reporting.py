"""
costing_engines.reporting -- Item, category and inventory rollups.

Responsibility:
    Build the plain data structures dashboards and report generators
    render: per-item revenue/COGS/profit with remaining stock, per-category
    totals, top items by profit, and remaining inventory value.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Built on ProfitCalculator.aggregate so per-item figures match the
    profit report exactly.

Invariants enforced:
    - Every figure is kept per currency unit.
    - Items without sales still appear with zero revenue.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from costing_engines.ledger import LotLedger
from costing_engines.profit import ProfitCalculator, Rollup, margin_pct
from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import Category, Item, Sale
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.reporting")

UNCATEGORIZED = "Uncategorized"


def _merge(into: dict[CurrencyUnit, Decimal], values: Mapping[CurrencyUnit, Decimal]) -> None:
    for unit, amount in values.items():
        into[unit] = into.get(unit, Decimal("0")) + amount


@dataclass(frozen=True)
class ItemStats:
    item_id: str
    item_name: str
    category_id: str
    revenue: dict[CurrencyUnit, Decimal]
    cogs: dict[CurrencyUnit, Decimal]
    profit: dict[CurrencyUnit, Decimal]
    margin: dict[CurrencyUnit, Decimal]
    total_sold: int
    remaining_qty: int
    remaining_value: dict[CurrencyUnit, Decimal]


@dataclass(frozen=True)
class CategoryStats:
    category_id: str
    category_name: str
    revenue: dict[CurrencyUnit, Decimal]
    cogs: dict[CurrencyUnit, Decimal]
    profit: dict[CurrencyUnit, Decimal]
    margin: dict[CurrencyUnit, Decimal]
    item_count: int


def item_stats(
    items: Iterable[Item],
    ledgers: Mapping[str, LotLedger],
    sales: Iterable[Sale],
    calculator: ProfitCalculator | None = None,
) -> list[ItemStats]:
    """Per-item sales and stock figures, in item_id order."""
    calculator = calculator or ProfitCalculator()
    lots = [lot for ledger in ledgers.values() for lot in ledger.lots()]
    report = calculator.aggregate(sales, lots)
    empty = Rollup()

    stats: list[ItemStats] = []
    for item in sorted(items, key=lambda i: i.item_id):
        rollup = report.by_item.get(item.item_id, empty)
        ledger = ledgers.get(item.item_id)
        stats.append(ItemStats(
            item_id=item.item_id,
            item_name=item.name,
            category_id=item.category_id,
            revenue=dict(rollup.revenue),
            cogs=dict(rollup.cost),
            profit=dict(rollup.profit),
            margin=rollup.margin(),
            total_sold=rollup.quantity_sold,
            remaining_qty=ledger.total_remaining() if ledger else 0,
            remaining_value=ledger.remaining_value() if ledger else {},
        ))
    return stats


def category_stats(
    stats: Iterable[ItemStats],
    categories: Iterable[Category] | Mapping[str, str] = (),
) -> list[CategoryStats]:
    """Fold item stats into their categories, in category_id order."""
    names = (
        dict(categories) if isinstance(categories, Mapping)
        else {c.category_id: c.name for c in categories}
    )

    grouped: dict[str, list[ItemStats]] = {}
    for s in stats:
        grouped.setdefault(s.category_id, []).append(s)

    result: list[CategoryStats] = []
    for category_id in sorted(grouped):
        revenue: dict[CurrencyUnit, Decimal] = {}
        cogs: dict[CurrencyUnit, Decimal] = {}
        profit: dict[CurrencyUnit, Decimal] = {}
        for s in grouped[category_id]:
            _merge(revenue, s.revenue)
            _merge(cogs, s.cogs)
            _merge(profit, s.profit)
        result.append(CategoryStats(
            category_id=category_id,
            category_name=names.get(category_id, UNCATEGORIZED),
            revenue=revenue,
            cogs=cogs,
            profit=profit,
            margin={u: margin_pct(revenue.get(u, Decimal("0")), p) for u, p in profit.items()},
            item_count=len(grouped[category_id]),
        ))
    return result


def top_items(
    stats: Iterable[ItemStats],
    unit: CurrencyUnit | str,
    limit: int = 5,
) -> list[ItemStats]:
    """Items with sales in ``unit``, highest profit first."""
    target = CurrencyUnit.parse(unit)
    ranked = [s for s in stats if target in s.profit]
    ranked.sort(key=lambda s: (-s.profit[target], s.item_id))
    return ranked[:limit]


def inventory_valuation(ledgers: Mapping[str, LotLedger]) -> dict[CurrencyUnit, Decimal]:
    """Remaining cost basis across all items, per currency unit."""
    totals: dict[CurrencyUnit, Decimal] = {}
    for ledger in ledgers.values():
        _merge(totals, ledger.remaining_value())
    logger.debug("inventory_valued", extra={
        "items": len(ledgers),
        "totals": {u.value: str(v) for u, v in totals.items()},
    })
    return totals
