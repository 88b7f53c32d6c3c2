"""
costing_engines.costing -- FIFO cost-of-goods-sold engine.

Responsibility:
    Consume quantity from a LotLedger oldest lot first and report the cost
    contribution of every lot touched, either for a real sale (the ledger
    is decremented) or for a simulation (a throwaway copy is decremented).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on costing_engines.ledger and costing_kernel.domain.
    Persistence of the resulting lot updates belongs to the caller
    (costing_services.lot_repository).

Invariants enforced:
    - FIFO: lots are drawn in ``open_lots_fifo()`` order; a request no
      larger than the oldest lot's remaining never touches a newer lot.
    - Native units: each contribution keeps its lot's currency unit; no
      implicit cross-unit conversion happens here.
    - All-or-nothing REAL mode: a request above ``total_remaining()`` is
      rejected with INSUFFICIENT_STOCK and nothing is decremented.
    - SIMULATE mode is a pure function of (ledger snapshot, quantity).

Failure modes:
    - Business conditions are returned, never raised:
      INSUFFICIENT_STOCK (with shortfall), SIMULATION_CAPPED (with
      shortfall), ``empty_ledger`` when no open lots exist.
    - ValueError for a negative or non-integer quantity or a missing ledger.

Audit relevance:
    REAL mode is not idempotent: every call permanently advances ledger
    state, so one sale must invoke it exactly once.  Each invocation is
    traced via ``@traced_engine``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from costing_engines.ledger import LotLedger
from costing_engines.tracer import traced_engine
from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import InventoryEntry, LotStatus, Sale
from costing_kernel.domain.values import Amount
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.costing")


class ConsumptionMode(str, Enum):
    REAL = "real"          # decrement the ledger
    SIMULATE = "simulate"  # decrement a throwaway copy


class ConsumptionStatus(str, Enum):
    FULFILLED = "fulfilled"
    INSUFFICIENT_STOCK = "insufficient_stock"
    SIMULATION_CAPPED = "simulation_capped"


@dataclass(frozen=True, slots=True)
class CostContribution:
    """Quantity and cost drawn from one lot, in the lot's own unit."""

    entry_id: str
    bought_at: datetime
    unit_cost: Decimal
    qty_used: int
    cost: Amount

    @property
    def currency_unit(self) -> CurrencyUnit:
        return self.cost.unit

    @classmethod
    def from_lot(cls, lot: InventoryEntry, qty_used: int) -> CostContribution:
        return cls(
            entry_id=lot.entry_id,
            bought_at=lot.bought_at,
            unit_cost=lot.unit_cost,
            qty_used=qty_used,
            cost=Amount(amount=lot.unit_cost * qty_used, unit=lot.currency_unit),
        )


@dataclass(frozen=True, slots=True)
class LotUpdate:
    """Post-consumption state of one lot, for the caller to persist."""

    entry_id: str
    used: int
    remaining_qty: int
    status: LotStatus


@dataclass(frozen=True)
class ConsumptionResult:
    """
    Outcome of one consumption request.

    ``lot_updates`` is populated only for a fulfilled REAL consumption.
    """

    item_id: str
    mode: ConsumptionMode
    status: ConsumptionStatus
    requested_quantity: int
    contributions: tuple[CostContribution, ...]
    lot_updates: tuple[LotUpdate, ...]
    shortfall: int
    remaining_after: int
    empty_ledger: bool = False

    @property
    def consumed_quantity(self) -> int:
        return sum(c.qty_used for c in self.contributions)

    @property
    def is_fulfilled(self) -> bool:
        return self.status is ConsumptionStatus.FULFILLED

    @property
    def is_insufficient(self) -> bool:
        return self.status is ConsumptionStatus.INSUFFICIENT_STOCK

    @property
    def is_capped(self) -> bool:
        return self.status is ConsumptionStatus.SIMULATION_CAPPED

    def cost_by_unit(self) -> dict[CurrencyUnit, Decimal]:
        """Contribution totals kept apart per currency unit."""
        totals: dict[CurrencyUnit, Decimal] = {}
        for c in self.contributions:
            totals[c.cost.unit] = totals.get(c.cost.unit, Decimal("0")) + c.cost.amount
        return totals

    def total_cost(self, unit: CurrencyUnit | str) -> Amount:
        """All contributions normalized into one unit via base units."""
        return Amount.sum_in((c.cost for c in self.contributions), unit)


def total_cost_in(
    contributions: Iterable[CostContribution],
    unit: CurrencyUnit | str,
) -> Amount:
    return Amount.sum_in((c.cost for c in contributions), unit)


class CostingEngine:
    """
    FIFO consumption over a LotLedger.

    Contract:
        Pure apart from the REAL-mode ledger decrement. No clock, no I/O.
    Guarantees:
        - Identical SIMULATE inputs yield identical contributions.
        - Sum of contribution quantities never exceeds the request.
        - REAL mode never decrements a lot below zero.
    Non-goals:
        - Does not persist lot updates or sales.
        - Does not resolve concurrent writers; see LotRepository.
    """

    @traced_engine("costing", "1.0", fingerprint_fields=("quantity", "mode"))
    def consume(
        self,
        ledger: LotLedger,
        quantity: int,
        mode: ConsumptionMode = ConsumptionMode.REAL,
    ) -> ConsumptionResult:
        """
        Consume ``quantity`` units oldest lot first.

        Args:
            ledger: The item's ledger. Decremented in REAL mode only.
            quantity: Units to consume (non-negative integer).
            mode: REAL or SIMULATE.

        Returns:
            ConsumptionResult. REAL over-requests come back as
            INSUFFICIENT_STOCK; SIMULATE over-requests come back capped.

        Raises:
            ValueError: Missing ledger or negative / non-integer quantity.
        """
        if ledger is None:
            raise ValueError("consume() requires a ledger")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValueError(f"Quantity must be an integer, got {quantity!r}")
        if quantity < 0:
            raise ValueError(f"Quantity cannot be negative, got {quantity}")
        mode = ConsumptionMode(mode)

        available = ledger.total_remaining()
        empty = not ledger.open_lots_fifo()

        logger.info("consumption_started", extra={
            "item_id": ledger.item_id,
            "mode": mode.value,
            "quantity": quantity,
            "available": available,
        })

        if mode is ConsumptionMode.REAL and quantity > available:
            logger.warning("consumption_insufficient_stock", extra={
                "item_id": ledger.item_id,
                "requested": quantity,
                "available": available,
                "shortfall": quantity - available,
                "empty_ledger": empty,
            })
            return ConsumptionResult(
                item_id=ledger.item_id,
                mode=mode,
                status=ConsumptionStatus.INSUFFICIENT_STOCK,
                requested_quantity=quantity,
                contributions=(),
                lot_updates=(),
                shortfall=quantity - available,
                remaining_after=available,
                empty_ledger=empty,
            )

        target = ledger if mode is ConsumptionMode.REAL else ledger.copy()
        contributions, updates = self._consume_fifo(target, min(quantity, available))
        shortfall = quantity - sum(c.qty_used for c in contributions)

        if mode is ConsumptionMode.SIMULATE and shortfall > 0:
            status = ConsumptionStatus.SIMULATION_CAPPED
            logger.info("simulation_capped", extra={
                "item_id": ledger.item_id,
                "requested": quantity,
                "available": available,
                "shortfall": shortfall,
            })
        else:
            status = ConsumptionStatus.FULFILLED

        result = ConsumptionResult(
            item_id=ledger.item_id,
            mode=mode,
            status=status,
            requested_quantity=quantity,
            contributions=contributions,
            lot_updates=updates if mode is ConsumptionMode.REAL else (),
            shortfall=shortfall,
            remaining_after=target.total_remaining(),
            empty_ledger=empty,
        )

        logger.info("consumption_completed", extra={
            "item_id": ledger.item_id,
            "mode": mode.value,
            "status": status.value,
            "lots_touched": len(contributions),
            "consumed": result.consumed_quantity,
            "remaining_after": result.remaining_after,
            "cost_by_unit": {u.value: str(v) for u, v in result.cost_by_unit().items()},
        })
        return result

    def _consume_fifo(
        self,
        ledger: LotLedger,
        quantity: int,
    ) -> tuple[tuple[CostContribution, ...], tuple[LotUpdate, ...]]:
        """Shared core: walk open lots oldest first, decrementing ``ledger``."""
        contributions: list[CostContribution] = []
        updates: list[LotUpdate] = []
        needed = quantity

        for lot in ledger.open_lots_fifo():
            if needed <= 0:
                break
            used = min(needed, lot.remaining_qty)
            contributions.append(CostContribution.from_lot(lot, used))
            updated = ledger.apply_decrement(lot.entry_id, used)
            updates.append(LotUpdate(
                entry_id=lot.entry_id,
                used=used,
                remaining_qty=updated.remaining_qty,
                status=updated.status,
            ))
            needed -= used

        return tuple(contributions), tuple(updates)

    def historical_cost(
        self,
        sale: Sale,
        entry: InventoryEntry,
    ) -> tuple[CostContribution, ...]:
        """
        Cost basis of a recorded sale against the lot it references.

        Raises:
            ValueError: If ``entry`` is not the lot the sale drew from.
        """
        if entry.entry_id != sale.entry_id:
            raise ValueError(
                f"Sale {sale.sale_id} references lot {sale.entry_id}, "
                f"not {entry.entry_id}"
            )
        return (CostContribution.from_lot(entry, sale.quantity_sold),)
