"""
costing_services.sale_service -- Recording sales against FIFO lots.

Responsibility:
    Turn a sale request into a REAL consumption, write the lot decrements
    and the sale rows, and report the outcome as a value.  Handles the
    concurrency boundary: when a lot moved underneath the consumption the
    transaction is rolled back, the ledger re-read and the sale retried.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes CostingEngine (FIFO walk, also for single-lot sales),
    ProfitCalculator (realized profit) and LotRepository (persistence).

Invariants enforced:
    - A FIFO sale spanning several lots is written as one Sale row per lot
      touched.  Revenue is apportioned by quantity and the last row takes
      the rounding remainder, so the rows sum to the amount received.
    - Stock is never oversold: every decrement is conditional.
    - Business rejections never raise; they come back as SaleOutcome.

Failure modes:
    - SaleStatus.INSUFFICIENT_STOCK: request exceeds remaining stock.
    - SaleStatus.LOT_NOT_FOUND / LOT_CLOSED: per-lot sale against a lot
      that does not exist or is used up.
    - SaleStatus.CONFLICT: the lot kept moving after ``max_retries``
      retries.
    - ValueError: non-positive quantity or negative amount (contract).

Usage:
    with session_scope() as session:
        outcome = SaleService(session).record_fifo_sale(
            item_id="sword",
            quantity=12,
            amount_gained=Decimal("120"),
            sold_at=datetime(2024, 3, 1, 12, 0),
        )
        if not outcome.accepted:
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from sqlalchemy.orm import Session

from costing_engines.costing import (
    ConsumptionMode,
    ConsumptionResult,
    CostContribution,
    CostingEngine,
)
from costing_engines.ledger import LotLedger
from costing_engines.profit import ProfitCalculator
from costing_kernel.db.base import new_id
from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import Sale
from costing_kernel.domain.values import Amount
from costing_kernel.exceptions import StaleLotError
from costing_kernel.logging_config import LogContext, get_logger
from costing_services.lot_repository import LotRepository

logger = get_logger("services.sale")

# Matches the Numeric(38, 9) column scale
_AMOUNT_QUANTUM = Decimal("0.000000001")


class SaleStatus(str, Enum):
    ACCEPTED = "accepted"
    INSUFFICIENT_STOCK = "insufficient_stock"
    LOT_NOT_FOUND = "lot_not_found"
    LOT_CLOSED = "lot_closed"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class SaleOutcome:
    """Result of one sale request."""

    status: SaleStatus
    item_id: str | None
    requested_quantity: int
    sales: tuple[Sale, ...] = ()
    consumption: ConsumptionResult | None = None
    cost: Amount | None = None
    profit: Amount | None = None
    shortfall: int = 0
    attempts: int = 1

    @property
    def accepted(self) -> bool:
        return self.status is SaleStatus.ACCEPTED


def apportion_revenue(
    amount_gained: Decimal,
    contributions: tuple[CostContribution, ...],
) -> list[Decimal]:
    """
    Split ``amount_gained`` across lots in proportion to quantity.

    Rounding is applied to the running total, not to each share: share i is
    the rounded cumulative amount through lot i minus what earlier lots
    received, and the last share is the exact remainder.  Shares therefore
    never go negative and always sum to ``amount_gained``.
    """
    total_qty = sum(c.qty_used for c in contributions)
    shares: list[Decimal] = []
    allocated = Decimal("0")
    cumulative_qty = 0
    for c in contributions[:-1]:
        cumulative_qty += c.qty_used
        running = (amount_gained * cumulative_qty / total_qty).quantize(
            _AMOUNT_QUANTUM, rounding=ROUND_HALF_UP
        )
        # an amount finer than the column scale can round up past itself
        running = min(running, amount_gained)
        shares.append(running - allocated)
        allocated = running
    shares.append(amount_gained - allocated)
    return shares


class SaleService:
    """
    Records sales with conflict-safe lot decrements.

    Contract:
        Receives a Session via constructor injection.  Flushes its writes;
        the caller commits.  On a stale lot the WHOLE session transaction
        is rolled back before the retry, so callers should not mix other
        unflushed work into a sale's transaction.
    Guarantees:
        - An ACCEPTED outcome means every lot decrement and every sale row
          was flushed.
        - Any other outcome means nothing from this call was written.

    ``default_unit`` is the unit a sale is recorded in when the caller names
    none; without it the unit of the (oldest) lot sold from is used.
    """

    def __init__(
        self,
        session: Session,
        engine: CostingEngine | None = None,
        max_retries: int = 1,
        default_unit: CurrencyUnit | str | None = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.session = session
        self.engine = engine or CostingEngine()
        self.default_unit = (
            CurrencyUnit.parse(default_unit) if default_unit is not None else None
        )
        self.calculator = ProfitCalculator(self.engine, default_unit=self.default_unit)
        self.repository = LotRepository(session)
        self.max_retries = max_retries

    @staticmethod
    def _check_request(quantity: int, amount_gained: Decimal | int | str) -> Decimal:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValueError(f"Quantity must be an integer, got {quantity!r}")
        if quantity <= 0:
            raise ValueError("Quantity sold must be a positive integer")
        amount = Decimal(str(amount_gained))
        if amount < 0:
            raise ValueError("Amount gained cannot be negative")
        return amount

    def _conflict(
        self,
        item_id: str | None,
        quantity: int,
        attempts: int,
        error: StaleLotError,
    ) -> SaleOutcome:
        logger.error("sale_conflict_rejected", extra={
            "item_id": item_id,
            "entry_id": error.entry_id,
            "attempts": attempts,
        })
        return SaleOutcome(
            status=SaleStatus.CONFLICT,
            item_id=item_id,
            requested_quantity=quantity,
            attempts=attempts,
        )

    # =========================================================================
    # FIFO sale
    # =========================================================================

    def record_fifo_sale(
        self,
        item_id: str,
        quantity: int,
        amount_gained: Decimal | int | str,
        sold_at: datetime,
        notes: str = "",
        currency_unit: CurrencyUnit | str | None = None,
    ) -> SaleOutcome:
        """
        Sell ``quantity`` units of an item, oldest lots first.

        Args:
            item_id: Item being sold.
            quantity: Units sold.
            amount_gained: Total received for all units.
            sold_at: When the sale happened.
            notes: Free text copied to every sale row.
            currency_unit: Unit of ``amount_gained``; defaults to the
                service's ``default_unit``, then to the unit of the oldest
                lot touched.
        """
        amount = self._check_request(quantity, amount_gained)
        unit = (
            CurrencyUnit.parse(currency_unit) if currency_unit is not None
            else self.default_unit
        )

        with LogContext.bind(item_id=item_id):
            attempts = 0
            while True:
                attempts += 1
                ledger = self.repository.load_ledger(item_id)
                result = self.engine.consume(ledger, quantity, ConsumptionMode.REAL)

                if not result.is_fulfilled:
                    logger.info("sale_rejected_insufficient_stock", extra={
                        "requested": quantity,
                        "shortfall": result.shortfall,
                        "empty_ledger": result.empty_ledger,
                    })
                    return SaleOutcome(
                        status=SaleStatus.INSUFFICIENT_STOCK,
                        item_id=item_id,
                        requested_quantity=quantity,
                        consumption=result,
                        shortfall=result.shortfall,
                        attempts=attempts,
                    )

                sale_unit = unit or result.contributions[0].currency_unit
                sales = self._build_fifo_sales(
                    result, amount, sale_unit, sold_at, notes.strip()
                )
                try:
                    self.repository.apply_consumption(result)
                    self.repository.add_sales(sales)
                except StaleLotError as e:
                    self.session.rollback()
                    if attempts > self.max_retries:
                        return self._conflict(item_id, quantity, attempts, e)
                    logger.warning("sale_retrying_stale_lot", extra={
                        "entry_id": e.entry_id,
                        "attempt": attempts,
                        "max_retries": self.max_retries,
                    })
                    continue

                return self._accepted(
                    item_id, quantity,
                    [(s, (c,)) for s, c in zip(sales, result.contributions)],
                    result, attempts,
                )

    def _build_fifo_sales(
        self,
        result: ConsumptionResult,
        amount: Decimal,
        unit: CurrencyUnit,
        sold_at: datetime,
        notes: str,
    ) -> tuple[Sale, ...]:
        shares = apportion_revenue(amount, result.contributions)
        return tuple(
            Sale(
                sale_id=new_id(),
                entry_id=c.entry_id,
                item_id=result.item_id,
                quantity_sold=c.qty_used,
                amount_gained=share,
                currency_unit=unit,
                sold_at=sold_at,
                notes=notes,
            )
            for c, share in zip(result.contributions, shares)
        )

    def _accepted(
        self,
        item_id: str,
        quantity: int,
        costed: list[tuple[Sale, tuple[CostContribution, ...]]],
        result: ConsumptionResult | None,
        attempts: int,
    ) -> SaleOutcome:
        sales = tuple(sale for sale, _ in costed)
        unit = sales[0].currency_unit
        cost = Amount.sum_in((c.cost for _, contributions in costed for c in contributions), unit)
        profit = Amount.sum_in(
            (self.calculator.sale_profit(sale, contributions) for sale, contributions in costed),
            unit,
        )

        logger.info("sale_recorded", extra={
            "item_id": item_id,
            "quantity": quantity,
            "rows": len(sales),
            "sale_ids": [s.sale_id for s in sales],
            "cost": str(cost.amount),
            "profit": str(profit.amount),
            "unit": unit.value,
            "attempts": attempts,
        })
        return SaleOutcome(
            status=SaleStatus.ACCEPTED,
            item_id=item_id,
            requested_quantity=quantity,
            sales=sales,
            consumption=result,
            cost=cost,
            profit=profit,
            attempts=attempts,
        )

    # =========================================================================
    # Per-lot sale
    # =========================================================================

    def record_lot_sale(
        self,
        entry_id: str,
        quantity: int,
        amount_gained: Decimal | int | str,
        sold_at: datetime,
        notes: str = "",
        currency_unit: CurrencyUnit | str | None = None,
    ) -> SaleOutcome:
        """
        Sell ``quantity`` units from one named lot.

        The lot is consumed through the CostingEngine as a one-lot ledger,
        so the decrement and cost basis come from the same FIFO walk as
        ``record_fifo_sale``.  ``currency_unit`` defaults to the service's
        ``default_unit``, then to the lot's own unit.
        """
        amount = self._check_request(quantity, amount_gained)

        attempts = 0
        while True:
            attempts += 1
            entry = self.repository.get_entry(entry_id)
            if entry is None:
                logger.info("sale_rejected_lot_not_found", extra={"entry_id": entry_id})
                return SaleOutcome(
                    status=SaleStatus.LOT_NOT_FOUND,
                    item_id=None,
                    requested_quantity=quantity,
                    attempts=attempts,
                )

            with LogContext.bind(item_id=entry.item_id):
                if not entry.is_open:
                    logger.info("sale_rejected_lot_closed", extra={"entry_id": entry_id})
                    return SaleOutcome(
                        status=SaleStatus.LOT_CLOSED,
                        item_id=entry.item_id,
                        requested_quantity=quantity,
                        shortfall=quantity,
                        attempts=attempts,
                    )
                if quantity > entry.remaining_qty:
                    logger.info("sale_rejected_insufficient_stock", extra={
                        "entry_id": entry_id,
                        "requested": quantity,
                        "remaining": entry.remaining_qty,
                    })
                    return SaleOutcome(
                        status=SaleStatus.INSUFFICIENT_STOCK,
                        item_id=entry.item_id,
                        requested_quantity=quantity,
                        shortfall=quantity - entry.remaining_qty,
                        attempts=attempts,
                    )

                # the named lot is the whole ledger, so the FIFO walk takes
                # exactly this lot and the decrement still comes from the engine
                ledger = LotLedger(entry.item_id, (entry,))
                result = self.engine.consume(ledger, quantity, ConsumptionMode.REAL)

                if currency_unit is not None:
                    sale_unit = CurrencyUnit.parse(currency_unit)
                else:
                    sale_unit = self.default_unit or entry.currency_unit
                sale = Sale(
                    sale_id=new_id(),
                    entry_id=entry.entry_id,
                    item_id=entry.item_id,
                    quantity_sold=quantity,
                    amount_gained=amount,
                    currency_unit=sale_unit,
                    sold_at=sold_at,
                    notes=notes.strip(),
                )
                try:
                    self.repository.apply_consumption(result)
                    self.repository.add_sale(sale)
                except StaleLotError as e:
                    self.session.rollback()
                    if attempts > self.max_retries:
                        return self._conflict(entry.item_id, quantity, attempts, e)
                    logger.warning("sale_retrying_stale_lot", extra={
                        "entry_id": entry_id,
                        "attempt": attempts,
                        "max_retries": self.max_retries,
                    })
                    continue

                return self._accepted(
                    entry.item_id, quantity,
                    [(sale, result.contributions)],
                    result, attempts,
                )
