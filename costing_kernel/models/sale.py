"""
Module: costing_kernel.models.sale
Responsibility: ORM persistence for recorded sales.  Each row draws from
    exactly one purchase lot; a FIFO sale spanning several lots is written
    as one row per lot.
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain records it converts to and from.

Invariants enforced:
    - entry_id references inventory_entries.id.
    - Rows are append-only; nothing updates a sale after INSERT.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from costing_kernel.db.base import Base, UUIDString
from costing_kernel.domain.lots import Sale


class SaleModel(Base):
    """Persistent storage for sales."""

    __tablename__ = "sales"

    __table_args__ = (
        Index("idx_sale_item_sold", "item_id", "sold_at"),
        Index("idx_sale_entry", "entry_id"),
    )

    entry_id: Mapped[str] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_entries.id"),
        nullable=False,
    )

    item_id: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)

    amount_gained: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    currency_unit: Mapped[str] = mapped_column(String(3), nullable=False)

    sold_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    @classmethod
    def from_domain(cls, sale: Sale) -> SaleModel:
        return cls(
            id=sale.sale_id,
            entry_id=sale.entry_id,
            item_id=sale.item_id,
            quantity_sold=sale.quantity_sold,
            amount_gained=sale.amount_gained,
            currency_unit=sale.currency_unit.value,
            sold_at=sale.sold_at,
            notes=sale.notes,
        )

    def to_domain(self) -> Sale:
        return Sale(
            sale_id=self.id,
            entry_id=self.entry_id,
            item_id=self.item_id,
            quantity_sold=self.quantity_sold,
            amount_gained=self.amount_gained,
            currency_unit=self.currency_unit,
            sold_at=self.sold_at,
            notes=self.notes or "",
        )

    def __repr__(self) -> str:
        return (
            f"<Sale {self.id}: item={self.item_id} lot={self.entry_id} "
            f"qty={self.quantity_sold} for {self.amount_gained} {self.currency_unit}>"
        )
