"""
Lots -- Immutable records for items, purchase lots and sales.

Responsibility:
    Define the frozen records the engines compute over: Item, Category,
    InventoryEntry (one purchase lot) and Sale. Records validate their own
    invariants on construction; lots are replaced, never mutated, when a
    consumption decrements them.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Engines import these records; ORM models in costing_kernel.models
    convert to and from them.

Invariants enforced:
    - 0 <= remaining_qty <= quantity_bought.
    - status == CLOSED  <=>  remaining_qty == 0.
    - total_cost == quantity_bought * unit_cost at creation
      (``InventoryEntry.create``); ``with_remaining`` carries it unchanged.
    - snapshot_name / snapshot_category_id are captured at purchase time.
    - Sale.quantity_sold > 0 and Sale.amount_gained >= 0.

Failure modes:
    - ValueError on any invariant violation (contract defect).
    - InvalidUnitError for an unknown currency unit.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.values import Amount
from costing_kernel.logging_config import get_logger

logger = get_logger("domain.lots")

DEFAULT_CATEGORY_ID = "cat_other"


class LotStatus(str, Enum):
    """Lot lifecycle state."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


def _require_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def _decimal(value: Decimal | int | str | float) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass(frozen=True)
class Category:
    category_id: str
    name: str


@dataclass(frozen=True)
class Item:
    """A sellable item. ``low_stock_threshold`` overrides the global default."""

    item_id: str
    name: str
    category_id: str = DEFAULT_CATEGORY_ID
    low_stock_threshold: int | None = None

    def __post_init__(self) -> None:
        if not self.item_id:
            raise ValueError("Item requires an item_id")
        if self.low_stock_threshold is not None:
            _require_int("low_stock_threshold", self.low_stock_threshold)
            if self.low_stock_threshold < 0:
                raise ValueError("low_stock_threshold cannot be negative")


@dataclass(frozen=True)
class InventoryEntry:
    """
    One purchase lot for one item.

    Contract:
        Frozen record. ``remaining_qty`` only changes through
        ``with_remaining``, which the CostingEngine drives in REAL mode.
    Guarantees:
        - Status always agrees with remaining_qty.
        - total_cost is never recomputed after creation.
    """

    entry_id: str
    item_id: str
    snapshot_name: str
    snapshot_category_id: str
    quantity_bought: int
    unit_cost: Decimal
    total_cost: Decimal
    currency_unit: CurrencyUnit
    bought_at: datetime
    remaining_qty: int
    status: LotStatus
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.entry_id:
            raise ValueError("InventoryEntry requires an entry_id")
        if not self.item_id:
            raise ValueError(f"InventoryEntry {self.entry_id} has no item reference")
        _require_int("quantity_bought", self.quantity_bought)
        _require_int("remaining_qty", self.remaining_qty)
        object.__setattr__(self, "unit_cost", _decimal(self.unit_cost))
        object.__setattr__(self, "total_cost", _decimal(self.total_cost))
        object.__setattr__(self, "currency_unit", CurrencyUnit.parse(self.currency_unit))
        object.__setattr__(self, "status", LotStatus(self.status))

        if not 0 <= self.remaining_qty <= self.quantity_bought:
            logger.error("inventory_entry_invalid_remaining", extra={
                "entry_id": self.entry_id,
                "item_id": self.item_id,
                "remaining_qty": self.remaining_qty,
                "quantity_bought": self.quantity_bought,
            })
            raise ValueError(
                f"Lot {self.entry_id}: remaining_qty {self.remaining_qty} "
                f"outside [0, {self.quantity_bought}]"
            )
        if (self.status is LotStatus.CLOSED) != (self.remaining_qty == 0):
            logger.error("inventory_entry_status_mismatch", extra={
                "entry_id": self.entry_id,
                "status": self.status.value,
                "remaining_qty": self.remaining_qty,
            })
            raise ValueError(
                f"Lot {self.entry_id}: status {self.status.value} "
                f"inconsistent with remaining_qty {self.remaining_qty}"
            )
        if self.unit_cost < 0:
            raise ValueError(f"Lot {self.entry_id}: unit_cost cannot be negative")

    @classmethod
    def create(
        cls,
        entry_id: str,
        item_id: str,
        snapshot_name: str,
        snapshot_category_id: str,
        quantity_bought: int,
        unit_cost: Decimal | int | str,
        currency_unit: CurrencyUnit | str,
        bought_at: datetime,
        notes: str = "",
    ) -> InventoryEntry:
        """Create a fresh OPEN lot from a purchase.

        Preconditions:
            quantity_bought is a positive integer, unit_cost > 0.

        Postconditions:
            remaining_qty == quantity_bought, status OPEN,
            total_cost == quantity_bought * unit_cost.

        Raises:
            ValueError: If quantity or unit cost is not positive.
        """
        _require_int("quantity_bought", quantity_bought)
        if quantity_bought <= 0:
            raise ValueError("Quantity must be a positive integer")
        cost = _decimal(unit_cost)
        if cost <= 0:
            raise ValueError("Unit cost must be positive")

        entry = cls(
            entry_id=entry_id,
            item_id=item_id,
            snapshot_name=snapshot_name.strip(),
            snapshot_category_id=snapshot_category_id,
            quantity_bought=quantity_bought,
            unit_cost=cost,
            total_cost=cost * quantity_bought,
            currency_unit=CurrencyUnit.parse(currency_unit),
            bought_at=bought_at,
            remaining_qty=quantity_bought,
            status=LotStatus.OPEN,
            notes=notes.strip(),
        )
        logger.info("inventory_entry_created", extra={
            "entry_id": entry_id,
            "item_id": item_id,
            "quantity_bought": quantity_bought,
            "unit_cost": str(cost),
            "currency_unit": entry.currency_unit.value,
            "bought_at": bought_at.isoformat(),
        })
        return entry

    @property
    def is_open(self) -> bool:
        return self.status is LotStatus.OPEN

    @property
    def unit_cost_amount(self) -> Amount:
        return Amount(amount=self.unit_cost, unit=self.currency_unit)

    @property
    def remaining_value(self) -> Amount:
        """Cost basis still held in this lot."""
        return Amount(amount=self.unit_cost * self.remaining_qty, unit=self.currency_unit)

    def with_remaining(self, remaining_qty: int) -> InventoryEntry:
        """Copy with a new remaining quantity; status follows it."""
        return replace(
            self,
            remaining_qty=remaining_qty,
            status=LotStatus.CLOSED if remaining_qty == 0 else LotStatus.OPEN,
        )


@dataclass(frozen=True)
class Sale:
    """One recorded sale drawn against exactly one lot."""

    sale_id: str
    entry_id: str
    item_id: str
    quantity_sold: int
    amount_gained: Decimal
    currency_unit: CurrencyUnit
    sold_at: datetime
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.item_id:
            raise ValueError(f"Sale {self.sale_id} has no item reference")
        _require_int("quantity_sold", self.quantity_sold)
        if self.quantity_sold <= 0:
            raise ValueError("Quantity sold must be a positive integer")
        object.__setattr__(self, "amount_gained", _decimal(self.amount_gained))
        object.__setattr__(self, "currency_unit", CurrencyUnit.parse(self.currency_unit))
        if self.amount_gained < 0:
            raise ValueError("Amount gained cannot be negative")

    @property
    def revenue(self) -> Amount:
        return Amount(amount=self.amount_gained, unit=self.currency_unit)
