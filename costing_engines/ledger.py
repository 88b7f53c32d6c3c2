"""
costing_engines.ledger -- Ordered view of one item's purchase lots.

Responsibility:
    Materialize the InventoryEntry rows of a single item into a FIFO-ordered
    ledger, expose open lots and remaining quantity, and accept the
    decrements the CostingEngine applies in REAL mode.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The ledger never persists anything; callers write the post-decrement
    lot states back through the persistence collaborator.

Invariants enforced:
    - FIFO order: bought_at ascending, ties broken by entry_id, independent
      of input order.
    - Single item: every lot belongs to ``item_id``.
    - No decrement below zero.

Failure modes:
    - ValueError when lots for several items are mixed, when entry ids
      collide, or when a decrement exceeds a lot's remaining quantity.
    - KeyError from ``apply_decrement`` / ``get`` for an unknown entry_id.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import InventoryEntry
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")


def _fifo_key(entry: InventoryEntry) -> tuple:
    return (entry.bought_at, entry.entry_id)


class LotLedger:
    """
    FIFO-ordered collection of lots for one item.

    Contract:
        Constructed from all lots of one item in any order. Holds no
        hidden state beyond the lots themselves.
    Guarantees:
        - ``open_lots_fifo()`` is deterministic for a given set of lots.
        - ``total_remaining()`` equals the sum over ``open_lots_fifo()``.
    Non-goals:
        - Does not persist; does not validate sales.
    """

    def __init__(self, item_id: str, entries: Iterable[InventoryEntry] = ()):
        if not item_id:
            raise ValueError("LotLedger requires an item_id")
        self.item_id = item_id
        self._lots: dict[str, InventoryEntry] = {}
        for entry in entries:
            if entry.item_id != item_id:
                raise ValueError(
                    f"Lot {entry.entry_id} belongs to item {entry.item_id}, "
                    f"not {item_id}"
                )
            if entry.entry_id in self._lots:
                raise ValueError(f"Duplicate lot {entry.entry_id} in ledger")
            self._lots[entry.entry_id] = entry

    @classmethod
    def group_by_item(cls, entries: Iterable[InventoryEntry]) -> dict[str, LotLedger]:
        """Build one ledger per item from a mixed list of lots."""
        grouped: dict[str, list[InventoryEntry]] = {}
        for entry in entries:
            grouped.setdefault(entry.item_id, []).append(entry)
        return {item_id: cls(item_id, lots) for item_id, lots in grouped.items()}

    def __len__(self) -> int:
        return len(self._lots)

    def __repr__(self) -> str:
        return (
            f"<LotLedger item={self.item_id} lots={len(self._lots)} "
            f"remaining={self.total_remaining()}>"
        )

    def get(self, entry_id: str) -> InventoryEntry:
        return self._lots[entry_id]

    def lots(self) -> tuple[InventoryEntry, ...]:
        """All lots, open and closed, in FIFO order."""
        return tuple(sorted(self._lots.values(), key=_fifo_key))

    def open_lots_fifo(self) -> tuple[InventoryEntry, ...]:
        """Open lots, oldest first."""
        return tuple(
            sorted(
                (lot for lot in self._lots.values() if lot.is_open),
                key=_fifo_key,
            )
        )

    def total_remaining(self) -> int:
        return sum(lot.remaining_qty for lot in self._lots.values() if lot.is_open)

    def remaining_value(self) -> dict[CurrencyUnit, Decimal]:
        """Cost basis still on hand, per currency unit."""
        totals: dict[CurrencyUnit, Decimal] = {}
        for lot in self.open_lots_fifo():
            value = lot.remaining_value
            totals[value.unit] = totals.get(value.unit, Decimal("0")) + value.amount
        return totals

    def snapshot(self) -> dict[str, int]:
        """entry_id -> remaining_qty, for before/after comparisons."""
        return {entry_id: lot.remaining_qty for entry_id, lot in self._lots.items()}

    def copy(self) -> LotLedger:
        """Throwaway copy; lots are immutable so a shallow copy suffices."""
        return LotLedger(self.item_id, self._lots.values())

    def apply_decrement(self, entry_id: str, used: int) -> InventoryEntry:
        """
        Replace a lot with its decremented copy.

        Called by the CostingEngine in REAL mode only.

        Raises:
            KeyError: Unknown entry_id.
            ValueError: ``used`` is negative or exceeds the lot's remaining.
        """
        lot = self._lots[entry_id]
        if used < 0 or used > lot.remaining_qty:
            raise ValueError(
                f"Cannot take {used} from lot {entry_id} "
                f"with {lot.remaining_qty} remaining"
            )
        updated = lot.with_remaining(lot.remaining_qty - used)
        self._lots[entry_id] = updated
        logger.debug("ledger_lot_decremented", extra={
            "item_id": self.item_id,
            "entry_id": entry_id,
            "used": used,
            "remaining_qty": updated.remaining_qty,
            "status": updated.status.value,
        })
        return updated
