"""
Tests for the InventoryEntry, Sale and Item records.

Covers:
- InventoryEntry.create() validation and derived totals
- Construction-time invariants (remaining bounds, status agreement)
- with_remaining() status transitions
- Sale validation
"""

from datetime import datetime
from decimal import Decimal

import pytest

from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import (
    DEFAULT_CATEGORY_ID,
    InventoryEntry,
    Item,
    LotStatus,
    Sale,
)
from costing_kernel.exceptions import InvalidUnitError
from tests.conftest import make_lot

BOUGHT = datetime(2024, 1, 1, 9, 0)


class TestInventoryEntryCreate:
    """Tests for creating a lot from a purchase."""

    def test_create_sets_totals_and_status(self):
        entry = InventoryEntry.create(
            entry_id="lot-1",
            item_id="sword",
            snapshot_name="  Sword ",
            snapshot_category_id="cat_weapons",
            quantity_bought=10,
            unit_cost="5",
            currency_unit="wl",
            bought_at=BOUGHT,
        )

        assert entry.total_cost == Decimal("50")
        assert entry.remaining_qty == 10
        assert entry.status is LotStatus.OPEN
        assert entry.currency_unit is CurrencyUnit.WL
        assert entry.snapshot_name == "Sword"

    def test_create_logs_event(self, captured_logs):
        InventoryEntry.create(
            entry_id="lot-1",
            item_id="sword",
            snapshot_name="Sword",
            snapshot_category_id="cat_weapons",
            quantity_bought=2,
            unit_cost=3,
            currency_unit="DL",
            bought_at=BOUGHT,
        )

        logs = captured_logs()
        created = [r for r in logs if r["message"] == "inventory_entry_created"]
        assert len(created) == 1
        assert created[0]["entry_id"] == "lot-1"
        assert created[0]["currency_unit"] == "DL"

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_create_rejects_non_positive_quantity(self, quantity):
        with pytest.raises(ValueError, match="positive integer"):
            InventoryEntry.create(
                "lot-1", "sword", "Sword", "cat", quantity, 5, "WL", BOUGHT,
            )

    def test_create_rejects_fractional_quantity(self):
        with pytest.raises(ValueError):
            InventoryEntry.create(
                "lot-1", "sword", "Sword", "cat", 1.5, 5, "WL", BOUGHT,
            )

    def test_create_rejects_zero_cost(self):
        with pytest.raises(ValueError, match="Unit cost must be positive"):
            InventoryEntry.create(
                "lot-1", "sword", "Sword", "cat", 1, 0, "WL", BOUGHT,
            )

    def test_create_rejects_unknown_unit(self):
        with pytest.raises(InvalidUnitError):
            InventoryEntry.create(
                "lot-1", "sword", "Sword", "cat", 1, 5, "GEM", BOUGHT,
            )


class TestInventoryEntryInvariants:
    """Tests for invariants checked on every construction."""

    def test_remaining_above_bought_rejected(self):
        with pytest.raises(ValueError, match="outside"):
            make_lot("A", 10, 5, remaining=11)

    def test_negative_remaining_rejected(self):
        with pytest.raises(ValueError):
            make_lot("A", 10, 5, remaining=-1)

    def test_closed_status_with_stock_rejected(self):
        lot = make_lot("A", 10, 5)
        with pytest.raises(ValueError, match="inconsistent"):
            InventoryEntry(
                entry_id=lot.entry_id,
                item_id=lot.item_id,
                snapshot_name=lot.snapshot_name,
                snapshot_category_id=lot.snapshot_category_id,
                quantity_bought=10,
                unit_cost=lot.unit_cost,
                total_cost=lot.total_cost,
                currency_unit=lot.currency_unit,
                bought_at=lot.bought_at,
                remaining_qty=4,
                status=LotStatus.CLOSED,
            )

    def test_missing_item_reference_rejected(self):
        with pytest.raises(ValueError, match="no item reference"):
            make_lot("A", 10, 5, item_id="")


class TestWithRemaining:

    def test_decrement_keeps_total_cost(self):
        lot = make_lot("A", 10, 5)

        updated = lot.with_remaining(4)

        assert updated.remaining_qty == 4
        assert updated.status is LotStatus.OPEN
        assert updated.total_cost == lot.total_cost
        assert lot.remaining_qty == 10  # original untouched

    def test_zero_remaining_closes_lot(self):
        updated = make_lot("A", 10, 5).with_remaining(0)

        assert updated.status is LotStatus.CLOSED
        assert not updated.is_open

    def test_remaining_value(self):
        lot = make_lot("A", 10, "2.5", unit="DL", remaining=4)

        assert lot.remaining_value.amount == Decimal("10.0")
        assert lot.remaining_value.unit is CurrencyUnit.DL


class TestSale:

    def test_valid_sale(self):
        sale = Sale(
            sale_id="s1",
            entry_id="A",
            item_id="sword",
            quantity_sold=2,
            amount_gained="30",
            currency_unit="wl",
            sold_at=BOUGHT,
        )

        assert sale.amount_gained == Decimal("30")
        assert sale.revenue.unit is CurrencyUnit.WL

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValueError, match="positive integer"):
            Sale("s1", "A", "sword", 0, 10, "WL", BOUGHT)

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            Sale("s1", "A", "sword", 1, -1, "WL", BOUGHT)

    def test_zero_amount_allowed(self):
        assert Sale("s1", "A", "sword", 1, 0, "WL", BOUGHT).amount_gained == 0


class TestItem:

    def test_default_category(self):
        assert Item(item_id="sword", name="Sword").category_id == DEFAULT_CATEGORY_ID

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            Item(item_id="sword", name="Sword", low_stock_threshold=-1)
