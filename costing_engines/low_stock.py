"""
costing_engines.low_stock -- Low-stock and out-of-stock detection.

Responsibility:
    Aggregate open-lot remaining quantity per item and flag items whose
    stock is positive but at or below their threshold.  Items with nothing
    left are a distinct out-of-stock condition, reported separately.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Thresholds arrive as an explicit LowStockThresholds value; the
    config layer builds it (costing_config.bridges).

Invariants enforced:
    - Alert iff 0 < total_remaining <= threshold.
    - An item override (thresholds mapping first, then the item's own
      ``low_stock_threshold``) wins over the global default.
    - Alerts are ordered by remaining ascending, then item_id.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from costing_engines.ledger import LotLedger
from costing_engines.tracer import traced_engine
from costing_kernel.domain.lots import Item
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.low_stock")

DEFAULT_LOW_STOCK_THRESHOLD = 5


@dataclass(frozen=True)
class LowStockThresholds:
    """Resolved threshold configuration for one evaluation."""

    global_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    item_overrides: Mapping[str, int] = field(default_factory=dict)
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.global_threshold < 0:
            raise ValueError("global_threshold cannot be negative")
        if any(v < 0 for v in self.item_overrides.values()):
            raise ValueError("item threshold overrides cannot be negative")

    def threshold_for(self, item: Item) -> int:
        if item.item_id in self.item_overrides:
            return self.item_overrides[item.item_id]
        if item.low_stock_threshold is not None:
            return item.low_stock_threshold
        return self.global_threshold


@dataclass(frozen=True)
class LowStockAlert:
    item_id: str
    item_name: str
    category_id: str
    remaining_qty: int
    threshold: int


class LowStockDetector:
    """
    Pure aggregation over loaded ledgers.

    Contract:
        ``ledgers`` maps item_id to that item's LotLedger; an item with no
        ledger has zero remaining.
    Non-goals:
        - Does not send notifications or remember previous alerts.
    """

    @traced_engine("low_stock", "1.0")
    def evaluate(
        self,
        items: Iterable[Item],
        ledgers: Mapping[str, LotLedger],
        thresholds: LowStockThresholds | None = None,
    ) -> list[LowStockAlert]:
        thresholds = thresholds or LowStockThresholds()
        if not thresholds.enabled:
            logger.debug("low_stock_disabled")
            return []

        alerts: list[LowStockAlert] = []
        for item in items:
            if item is None:
                raise ValueError("evaluate() received a null item reference")
            remaining = _remaining(item, ledgers)
            threshold = thresholds.threshold_for(item)
            if 0 < remaining <= threshold:
                alerts.append(LowStockAlert(
                    item_id=item.item_id,
                    item_name=item.name,
                    category_id=item.category_id,
                    remaining_qty=remaining,
                    threshold=threshold,
                ))

        alerts.sort(key=lambda a: (a.remaining_qty, a.item_id))
        logger.info("low_stock_evaluated", extra={
            "alert_count": len(alerts),
            "global_threshold": thresholds.global_threshold,
        })
        return alerts

    def out_of_stock(
        self,
        items: Iterable[Item],
        ledgers: Mapping[str, LotLedger],
    ) -> list[str]:
        """Ids of items with nothing remaining, sorted."""
        return sorted(
            item.item_id for item in items if _remaining(item, ledgers) == 0
        )


def _remaining(item: Item, ledgers: Mapping[str, LotLedger]) -> int:
    ledger = ledgers.get(item.item_id)
    return ledger.total_remaining() if ledger is not None else 0
