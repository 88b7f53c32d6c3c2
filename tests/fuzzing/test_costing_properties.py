"""
Hypothesis property tests for the costing laws.

Properties checked:
- Conservation: REAL consumption of q <= stock decrements remaining by
  exactly q and costs exactly sum(qty_used x unit_cost)
- REAL over-requests leave every lot untouched
- SIMULATE never mutates and never exceeds available stock
- Breakdown round trip for non-negative integers
- Lot invariants hold after any sequence of consumptions
"""

from datetime import datetime, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from costing_engines.costing import ConsumptionMode, ConsumptionStatus, CostingEngine
from costing_engines.ledger import LotLedger
from costing_kernel.domain.currency import CurrencyUnit, DenominationConverter
from costing_kernel.domain.lots import LotStatus
from tests.conftest import make_lot

T0 = datetime(2024, 1, 1)

lot_specs = st.lists(
    st.tuples(
        st.integers(min_value=1, max_value=50),      # quantity bought
        st.integers(min_value=0, max_value=50),      # quantity already used
        st.decimals(min_value=Decimal("0.01"), max_value=Decimal("1000"), places=2),
        st.integers(min_value=0, max_value=30),      # day offset
    ),
    min_size=0,
    max_size=8,
)


def _ledger(specs) -> LotLedger:
    lots = []
    for i, (bought, used, cost, day) in enumerate(specs):
        used = min(used, bought)
        lots.append(make_lot(
            f"L{i:02d}", bought, cost,
            bought_at=T0 + timedelta(days=day),
            remaining=bought - used,
        ))
    return LotLedger("sword", lots)


class TestConservation:

    @given(specs=lot_specs, data=st.data())
    @settings(max_examples=200)
    def test_real_consumption_conserves_quantity_and_cost(self, specs, data):
        ledger = _ledger(specs)
        before = ledger.total_remaining()
        expected_cost = {
            lot.entry_id: lot.unit_cost for lot in ledger.lots()
        }
        quantity = data.draw(st.integers(min_value=0, max_value=before))

        result = CostingEngine().consume(ledger, quantity, ConsumptionMode.REAL)

        assert result.status is ConsumptionStatus.FULFILLED
        assert result.consumed_quantity == quantity
        assert ledger.total_remaining() == before - quantity
        assert result.total_cost(CurrencyUnit.WL).amount == sum(
            (expected_cost[c.entry_id] * c.qty_used for c in result.contributions),
            Decimal("0"),
        )

    @given(specs=lot_specs, extra=st.integers(min_value=1, max_value=100))
    def test_real_over_request_is_all_or_nothing(self, specs, extra):
        ledger = _ledger(specs)
        before = ledger.snapshot()

        result = CostingEngine().consume(ledger, ledger.total_remaining() + extra)

        assert result.status is ConsumptionStatus.INSUFFICIENT_STOCK
        assert result.shortfall == extra
        assert ledger.snapshot() == before

    @given(specs=lot_specs, quantity=st.integers(min_value=0, max_value=500))
    def test_simulate_never_mutates(self, specs, quantity):
        ledger = _ledger(specs)
        before = ledger.snapshot()

        result = CostingEngine().consume(ledger, quantity, ConsumptionMode.SIMULATE)

        assert ledger.snapshot() == before
        assert result.consumed_quantity == min(quantity, ledger.total_remaining())
        assert result.consumed_quantity + result.shortfall == quantity

    @given(specs=lot_specs, data=st.data())
    def test_contributions_follow_fifo_order(self, specs, data):
        ledger = _ledger(specs)
        order = [lot.entry_id for lot in ledger.open_lots_fifo()]
        quantity = data.draw(st.integers(min_value=0, max_value=ledger.total_remaining()))

        result = CostingEngine().consume(ledger, quantity)

        touched = [c.entry_id for c in result.contributions]
        assert touched == order[:len(touched)]
        # every lot but the last touched is fully drained
        assert all(ledger.get(e).remaining_qty == 0 for e in touched[:-1])

    @given(specs=lot_specs, requests=st.lists(st.integers(min_value=0, max_value=40), max_size=6))
    def test_lot_invariants_hold_after_repeated_sales(self, specs, requests):
        ledger = _ledger(specs)
        engine = CostingEngine()

        for quantity in requests:
            engine.consume(ledger, quantity)

        for lot in ledger.lots():
            assert 0 <= lot.remaining_qty <= lot.quantity_bought
            assert (lot.status is LotStatus.CLOSED) == (lot.remaining_qty == 0)


class TestBreakdownRoundTrip:

    @given(amount=st.integers(min_value=0, max_value=10**12))
    def test_three_tier_round_trip(self, amount):
        assert DenominationConverter.to_breakdown(amount).to_base_units() == amount

    @given(amount=st.integers(min_value=0, max_value=10**12))
    def test_two_tier_round_trip(self, amount):
        breakdown = DenominationConverter.to_breakdown(amount, max_tier=CurrencyUnit.DL)

        assert breakdown.to_base_units() == amount
        assert breakdown.quantity(CurrencyUnit.WL) < 100
