"""Tests for LotLedger ordering, totals and decrements."""

from datetime import timedelta
from decimal import Decimal

import pytest

from costing_engines.ledger import LotLedger
from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import LotStatus
from tests.conftest import T0, make_lot


class TestLedgerConstruction:

    def test_mixed_items_rejected(self):
        with pytest.raises(ValueError, match="belongs to item"):
            LotLedger("sword", [make_lot("A", 1, 1), make_lot("X", 1, 1, item_id="shield")])

    def test_duplicate_lot_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            LotLedger("sword", [make_lot("A", 1, 1), make_lot("A", 2, 1)])

    def test_group_by_item(self):
        ledgers = LotLedger.group_by_item([
            make_lot("A", 1, 1),
            make_lot("X", 3, 1, item_id="shield"),
            make_lot("B", 2, 1),
        ])

        assert set(ledgers) == {"sword", "shield"}
        assert ledgers["sword"].total_remaining() == 3
        assert ledgers["shield"].total_remaining() == 3


class TestFifoOrdering:

    def test_oldest_first_regardless_of_input_order(self, sword_ledger):
        assert [lot.entry_id for lot in sword_ledger.open_lots_fifo()] == ["A", "B"]

    def test_ties_broken_by_entry_id(self):
        ledger = LotLedger("sword", [make_lot("C", 1, 1), make_lot("B", 1, 1), make_lot("A", 1, 1)])

        assert [lot.entry_id for lot in ledger.open_lots_fifo()] == ["A", "B", "C"]

    def test_closed_lots_excluded_from_open_view(self):
        ledger = LotLedger("sword", [
            make_lot("A", 5, 1, remaining=0),
            make_lot("B", 5, 1, bought_at=T0 + timedelta(days=1)),
        ])

        assert [lot.entry_id for lot in ledger.open_lots_fifo()] == ["B"]
        assert [lot.entry_id for lot in ledger.lots()] == ["A", "B"]


class TestTotals:

    def test_total_remaining(self, sword_ledger):
        assert sword_ledger.total_remaining() == 20

    def test_remaining_value_per_unit(self):
        ledger = LotLedger("sword", [
            make_lot("A", 10, 5, remaining=4),
            make_lot("B", 2, "1.5", unit="DL", bought_at=T0 + timedelta(days=1)),
        ])

        assert ledger.remaining_value() == {
            CurrencyUnit.WL: Decimal("20"),
            CurrencyUnit.DL: Decimal("3.0"),
        }

    def test_empty_ledger(self):
        ledger = LotLedger("sword")

        assert ledger.total_remaining() == 0
        assert ledger.open_lots_fifo() == ()
        assert ledger.remaining_value() == {}


class TestDecrement:

    def test_apply_decrement_replaces_lot(self, sword_ledger):
        updated = sword_ledger.apply_decrement("A", 10)

        assert updated.status is LotStatus.CLOSED
        assert sword_ledger.get("A").remaining_qty == 0
        assert sword_ledger.total_remaining() == 10

    def test_decrement_below_zero_raises(self, sword_ledger):
        with pytest.raises(ValueError, match="Cannot take"):
            sword_ledger.apply_decrement("A", 11)

    def test_copy_is_independent(self, sword_ledger):
        copy = sword_ledger.copy()
        copy.apply_decrement("A", 3)

        assert sword_ledger.get("A").remaining_qty == 10
        assert copy.get("A").remaining_qty == 7

    def test_snapshot(self, sword_ledger):
        assert sword_ledger.snapshot() == {"A": 10, "B": 10}
