"""
Module: costing_kernel.models.inventory_entry
Responsibility: ORM persistence for purchase lots.  Each row is one purchase
    of one item at one unit cost, with the remaining quantity that FIFO
    consumption decrements.
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain records it converts to and from.

Invariants enforced:
    - remaining_qty is only lowered by the conditional decrement in
      LotRepository.apply_consumption (``remaining_qty >= used``), so it
      never goes negative even with concurrent writers.
    - quantity_bought, unit_cost and total_cost never change after INSERT.
    - snapshot_name / snapshot_category_id record the item as it was when
      bought.
    - (item_id, bought_at) index supports the FIFO load.

Failure modes:
    - IntegrityError on a missing NOT NULL column.
    - ValueError from to_domain() if a row breaks the lot invariants.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from costing_kernel.db.base import Base
from costing_kernel.domain.lots import InventoryEntry, LotStatus


class InventoryEntryModel(Base):
    """
    Persistent storage for purchase lots.

    Contract:
        to_domain()/from_domain() are exact inverses for every field of
        InventoryEntry.
    Non-goals:
        - Does not validate lot invariants; InventoryEntry does that on
          the way in and on the way out.
    """

    __tablename__ = "inventory_entries"

    __table_args__ = (
        Index("idx_inventory_entry_item_bought", "item_id", "bought_at"),
        Index("idx_inventory_entry_status", "status"),
    )

    item_id: Mapped[str] = mapped_column(String(100), nullable=False)

    snapshot_name: Mapped[str] = mapped_column(String(200), nullable=False)

    snapshot_category_id: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity_bought: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    total_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    currency_unit: Mapped[str] = mapped_column(String(3), nullable=False)

    bought_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Lowered only through the conditional UPDATE in LotRepository
    remaining_qty: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(10), nullable=False)

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    @classmethod
    def from_domain(cls, entry: InventoryEntry) -> InventoryEntryModel:
        return cls(
            id=entry.entry_id,
            item_id=entry.item_id,
            snapshot_name=entry.snapshot_name,
            snapshot_category_id=entry.snapshot_category_id,
            quantity_bought=entry.quantity_bought,
            unit_cost=entry.unit_cost,
            total_cost=entry.total_cost,
            currency_unit=entry.currency_unit.value,
            bought_at=entry.bought_at,
            remaining_qty=entry.remaining_qty,
            status=entry.status.value,
            notes=entry.notes,
        )

    def to_domain(self) -> InventoryEntry:
        return InventoryEntry(
            entry_id=self.id,
            item_id=self.item_id,
            snapshot_name=self.snapshot_name,
            snapshot_category_id=self.snapshot_category_id,
            quantity_bought=self.quantity_bought,
            unit_cost=self.unit_cost,
            total_cost=self.total_cost,
            currency_unit=self.currency_unit,
            bought_at=self.bought_at,
            remaining_qty=self.remaining_qty,
            status=LotStatus(self.status),
            notes=self.notes or "",
        )

    def __repr__(self) -> str:
        return (
            f"<InventoryEntry {self.id}: item={self.item_id} "
            f"remaining={self.remaining_qty}/{self.quantity_bought} "
            f"@ {self.unit_cost} {self.currency_unit}>"
        )
