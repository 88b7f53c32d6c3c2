"""
costing_services.lot_repository -- Lot and sale persistence.

Responsibility:
    Load an item's lots into a LotLedger, record purchases and sales, and
    write back the lot decrements a REAL consumption produced.

Architecture position:
    Services -- stateful persistence over kernel models.
    Converts between InventoryEntryModel / SaleModel rows and the frozen
    domain records the engines compute over.

Invariants enforced:
    - Every decrement is a conditional UPDATE
      (``WHERE id = :id AND remaining_qty >= :used``).  A lot can never go
      negative, even when two writers consumed from the same snapshot.
    - status flips to CLOSED in the same statement that takes
      remaining_qty to zero.
    - Simulated consumptions are never written.

Failure modes:
    - StaleLotError when a conditional decrement matches no row.  The
      caller owns the transaction and decides whether to roll back and
      retry (see SaleService).
    - ValueError when asked to persist a SIMULATE or unfulfilled result.

Usage:
    repo = LotRepository(session)
    ledger = repo.load_ledger("sword")
    result = CostingEngine().consume(ledger, 12, ConsumptionMode.REAL)
    repo.apply_consumption(result)
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from costing_engines.costing import ConsumptionMode, ConsumptionResult
from costing_engines.ledger import LotLedger
from costing_kernel.db.base import new_id
from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import (
    DEFAULT_CATEGORY_ID,
    InventoryEntry,
    LotStatus,
    Sale,
)
from costing_kernel.exceptions import StaleLotError
from costing_kernel.logging_config import get_logger
from costing_kernel.models.inventory_entry import InventoryEntryModel
from costing_kernel.models.sale import SaleModel

logger = get_logger("services.lot_repository")


class LotRepository:
    """
    Session-bound access to lots and sales.

    Contract:
        Receives a Session via constructor injection.  Flushes but never
        commits; the caller's transaction scope decides.
    Guarantees:
        - Loads always re-read the row, never a stale identity-map copy.
        - ``apply_consumption`` either decrements every lot of the result
          or raises StaleLotError at the first lot that moved.
    Non-goals:
        - Does not roll back on StaleLotError.
    """

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # Lots
    # =========================================================================

    def add_entry(
        self,
        item_id: str,
        name: str,
        quantity_bought: int,
        unit_cost: Decimal | int | str,
        currency_unit: CurrencyUnit | str,
        bought_at: datetime,
        category_id: str = DEFAULT_CATEGORY_ID,
        notes: str = "",
        entry_id: str | None = None,
    ) -> InventoryEntry:
        """Record a purchase as a new OPEN lot."""
        entry = InventoryEntry.create(
            entry_id=entry_id or new_id(),
            item_id=item_id,
            snapshot_name=name,
            snapshot_category_id=category_id,
            quantity_bought=quantity_bought,
            unit_cost=unit_cost,
            currency_unit=currency_unit,
            bought_at=bought_at,
            notes=notes,
        )
        self.session.add(InventoryEntryModel.from_domain(entry))
        self.session.flush()
        return entry

    def get_entry(self, entry_id: str) -> InventoryEntry | None:
        stmt = (
            select(InventoryEntryModel)
            .where(InventoryEntryModel.id == entry_id)
            .execution_options(populate_existing=True)
        )
        model = self.session.execute(stmt).scalars().first()
        return model.to_domain() if model is not None else None

    def _load_entries(self, item_id: str | None = None) -> list[InventoryEntry]:
        stmt = select(InventoryEntryModel).execution_options(populate_existing=True)
        if item_id is not None:
            stmt = stmt.where(InventoryEntryModel.item_id == item_id)
        models = self.session.execute(stmt).scalars().all()
        return [m.to_domain() for m in models]

    def load_ledger(self, item_id: str) -> LotLedger:
        """Every lot of ``item_id``; the ledger orders them itself."""
        ledger = LotLedger(item_id, self._load_entries(item_id))
        logger.debug("ledger_loaded", extra={
            "item_id": item_id,
            "lots": len(ledger),
            "remaining": ledger.total_remaining(),
        })
        return ledger

    def load_ledgers(self) -> dict[str, LotLedger]:
        """One ledger per item that has at least one lot."""
        return LotLedger.group_by_item(self._load_entries())

    def load_lots_by_id(self, item_id: str | None = None) -> dict[str, InventoryEntry]:
        return {e.entry_id: e for e in self._load_entries(item_id)}

    # =========================================================================
    # Decrements
    # =========================================================================

    def decrement_lot(self, entry_id: str, used: int) -> None:
        """
        Conditionally take ``used`` units from one lot.

        Raises:
            StaleLotError: The lot no longer holds ``used`` units.
            ValueError: ``used`` is not positive.
        """
        if used <= 0:
            raise ValueError(f"Decrement must be positive, got {used}")

        new_remaining = InventoryEntryModel.remaining_qty - used
        stmt = (
            update(InventoryEntryModel)
            .where(
                InventoryEntryModel.id == entry_id,
                InventoryEntryModel.remaining_qty >= used,
            )
            .values(
                remaining_qty=new_remaining,
                status=case(
                    (new_remaining == 0, LotStatus.CLOSED.value),
                    else_=LotStatus.OPEN.value,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        rowcount = self.session.execute(stmt).rowcount
        if rowcount != 1:
            logger.warning("lot_decrement_stale", extra={
                "entry_id": entry_id,
                "used": used,
            })
            raise StaleLotError(entry_id, used)

    def apply_consumption(self, result: ConsumptionResult) -> None:
        """
        Persist the lot updates of a fulfilled REAL consumption.

        Raises:
            StaleLotError: A lot changed since the ledger was loaded.
            ValueError: ``result`` is simulated or was not fulfilled.
        """
        if result.mode is not ConsumptionMode.REAL:
            raise ValueError("Simulated consumptions are never persisted")
        if not result.is_fulfilled:
            raise ValueError(
                f"Cannot persist a {result.status.value} consumption for {result.item_id}"
            )

        for lot_update in result.lot_updates:
            self.decrement_lot(lot_update.entry_id, lot_update.used)

        logger.info("consumption_persisted", extra={
            "item_id": result.item_id,
            "lots_updated": len(result.lot_updates),
            "consumed": result.consumed_quantity,
        })

    # =========================================================================
    # Sales
    # =========================================================================

    def add_sale(self, sale: Sale) -> Sale:
        self.session.add(SaleModel.from_domain(sale))
        self.session.flush()
        return sale

    def add_sales(self, sales: Iterable[Sale]) -> None:
        for sale in sales:
            self.session.add(SaleModel.from_domain(sale))
        self.session.flush()

    def load_sales(self, item_id: str | None = None) -> list[Sale]:
        """Recorded sales, oldest first."""
        stmt = select(SaleModel).order_by(SaleModel.sold_at, SaleModel.id)
        if item_id is not None:
            stmt = stmt.where(SaleModel.item_id == item_id)
        return [m.to_domain() for m in self.session.execute(stmt).scalars().all()]
