"""
Tests for ProfitCalculator.

Covers:
- Single-sale profit, including cross-unit cost contributions
- Period and item rollups kept per currency unit
- Report windows and unmatched sales
- Simulation: projection, capping, non-mutation
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from costing_engines.costing import CostingEngine
from costing_engines.ledger import LotLedger
from costing_engines.profit import (
    PeriodGranularity,
    ProfitCalculator,
    ReportWindow,
    margin_pct,
)
from costing_kernel.domain.currency import CurrencyUnit
from tests.conftest import T0, make_lot, make_sale


class TestSaleProfit:

    def setup_method(self):
        self.calculator = ProfitCalculator()

    def test_sword_sale_profit(self, sword_ledger):
        result = CostingEngine().consume(sword_ledger, 12)
        sale = make_sale("s1", "A", 12, 120)

        profit = self.calculator.sale_profit(sale, result.contributions)

        assert profit.amount == Decimal("54")
        assert profit.unit is CurrencyUnit.WL

    def test_foreign_unit_cost_converted_to_sale_unit(self):
        ledger = LotLedger("sword", [make_lot("A", 1, 50, unit="WL")])
        result = CostingEngine().consume(ledger, 1)
        sale = make_sale("s1", "A", 1, 2, unit="DL")

        profit = self.calculator.sale_profit(sale, result.contributions)

        assert profit.unit is CurrencyUnit.DL
        assert profit.amount == Decimal("1.5")

    def test_loss_is_negative(self):
        lot = make_lot("A", 1, 10)

        profit = self.calculator.sale_profit_for_lot(make_sale("s1", "A", 1, 4), lot)

        assert profit.amount == Decimal("-6")


class TestAggregate:

    def setup_method(self):
        self.calculator = ProfitCalculator()
        self.lots = [
            make_lot("A", 10, 5),
            make_lot("D", 10, 1, unit="DL", bought_at=T0 + timedelta(days=1)),
            make_lot("S", 5, 2, item_id="shield"),
        ]

    def test_per_unit_totals_never_mixed(self):
        sales = [
            make_sale("s1", "A", 2, 30, sold_at=datetime(2024, 2, 1)),
            make_sale("s2", "D", 1, 3, unit="DL", sold_at=datetime(2024, 2, 2)),
        ]

        report = self.calculator.aggregate(sales, self.lots)

        assert report.totals.revenue == {CurrencyUnit.WL: Decimal("30"), CurrencyUnit.DL: Decimal("3")}
        assert report.totals.cost == {CurrencyUnit.WL: Decimal("10"), CurrencyUnit.DL: Decimal("1")}
        assert report.totals.profit == {CurrencyUnit.WL: Decimal("20"), CurrencyUnit.DL: Decimal("2")}
        assert report.totals.quantity_sold == 3
        assert report.totals.sale_count == 2

    def test_grouping_by_day_and_item(self):
        sales = [
            make_sale("s1", "A", 1, 10, sold_at=datetime(2024, 2, 1, 8)),
            make_sale("s2", "A", 1, 10, sold_at=datetime(2024, 2, 1, 20)),
            make_sale("s3", "S", 1, 5, item_id="shield", sold_at=datetime(2024, 2, 3)),
        ]

        report = self.calculator.aggregate(sales, self.lots)

        assert list(report.by_period) == [datetime(2024, 2, 1).date(), datetime(2024, 2, 3).date()]
        assert report.by_period[datetime(2024, 2, 1).date()].sale_count == 2
        assert report.by_item["sword"].profit == {CurrencyUnit.WL: Decimal("10")}
        assert report.by_item["shield"].profit == {CurrencyUnit.WL: Decimal("3")}

    def test_grouping_by_month(self):
        sales = [
            make_sale("s1", "A", 1, 10, sold_at=datetime(2024, 2, 1)),
            make_sale("s2", "A", 1, 10, sold_at=datetime(2024, 2, 28)),
            make_sale("s3", "A", 1, 10, sold_at=datetime(2024, 3, 1)),
        ]
        window = ReportWindow(granularity=PeriodGranularity.MONTH)

        report = self.calculator.aggregate(sales, self.lots, window)

        assert {k.isoformat(): v.sale_count for k, v in report.by_period.items()} == {
            "2024-02-01": 2,
            "2024-03-01": 1,
        }

    def test_window_is_half_open(self):
        sales = [
            make_sale("s1", "A", 1, 10, sold_at=datetime(2024, 2, 1)),
            make_sale("s2", "A", 1, 10, sold_at=datetime(2024, 3, 1)),
        ]
        window = ReportWindow(start=datetime(2024, 2, 1), end=datetime(2024, 3, 1))

        report = self.calculator.aggregate(sales, self.lots, window)

        assert report.totals.sale_count == 1

    def test_unmatched_sale_costed_at_zero(self, captured_logs):
        sales = [make_sale("s1", "missing", 1, 10)]

        report = self.calculator.aggregate(sales, self.lots)

        assert report.unmatched_sales == ("s1",)
        assert report.totals.profit == {CurrencyUnit.WL: Decimal("10")}
        assert any(r["message"] == "profit_sale_lot_missing" for r in captured_logs())

    def test_margin(self):
        report = self.calculator.aggregate([make_sale("s1", "A", 2, 20)], self.lots)

        assert report.totals.margin() == {CurrencyUnit.WL: Decimal("50")}

    def test_window_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            ReportWindow(start=datetime(2024, 3, 1), end=datetime(2024, 2, 1))


class TestSimulate:

    def setup_method(self):
        self.calculator = ProfitCalculator()

    def test_projection(self, sword_ledger):
        result = self.calculator.simulate(sword_ledger, 12, 10)

        assert result.simulated_quantity == 12
        assert result.projected_revenue.amount == Decimal("120")
        assert result.simulated_cogs.amount == Decimal("66")
        assert result.projected_profit.amount == Decimal("54")
        assert [c.entry_id for c in result.breakdown] == ["A", "B"]
        assert result.capped is False

    def test_simulate_never_mutates(self, sword_ledger):
        before = sword_ledger.snapshot()

        self.calculator.simulate(sword_ledger, 15, 10)

        assert sword_ledger.snapshot() == before

    def test_capped_projection_uses_achievable_quantity(self):
        ledger = LotLedger("sword", [make_lot("A", 12, 5)])

        result = self.calculator.simulate(ledger, 15, 10)

        assert result.capped is True
        assert result.shortfall == 3
        assert result.simulated_quantity == 12
        assert result.available_quantity == 12
        assert result.projected_revenue.amount == Decimal("120")
        assert result.projected_profit.amount == Decimal("60")

    def test_price_unit_defaults_to_oldest_lot(self):
        ledger = LotLedger("sword", [make_lot("A", 2, 1, unit="DL")])

        result = self.calculator.simulate(ledger, 1, 3)

        assert result.projected_profit.unit is CurrencyUnit.DL
        assert result.projected_profit.amount == Decimal("2")

    def test_explicit_price_unit(self, sword_ledger):
        result = self.calculator.simulate(sword_ledger, 1, 1, price_unit="DL")

        assert result.simulated_cogs.amount == Decimal("0.05")
        assert result.projected_profit.amount == Decimal("0.95")

    def test_empty_ledger_projects_nothing(self):
        result = self.calculator.simulate(LotLedger("sword"), 3, 10)

        assert result.capped is True
        assert result.simulated_quantity == 0
        assert result.projected_revenue.unit is CurrencyUnit.WL
        assert result.projected_profit.is_zero

    def test_negative_price_rejected(self, sword_ledger):
        with pytest.raises(ValueError):
            self.calculator.simulate(sword_ledger, 1, -1)

    def test_missing_ledger_rejected(self):
        with pytest.raises(ValueError, match="requires a ledger"):
            self.calculator.simulate(None, 1, 10)

    def test_default_unit_prices_empty_ledger(self):
        calculator = ProfitCalculator(default_unit="DL")

        result = calculator.simulate(LotLedger("sword"), 0, 5)

        assert result.assumed_unit_price.unit is CurrencyUnit.DL
        assert result.projected_revenue.unit is CurrencyUnit.DL

    def test_default_unit_beats_oldest_lot_unit(self, sword_ledger):
        calculator = ProfitCalculator(default_unit="DL")

        result = calculator.simulate(sword_ledger, 1, 1)

        assert result.projected_profit == result.projected_revenue - result.simulated_cogs
        assert result.simulated_cogs.amount == Decimal("0.05")
        assert result.projected_profit.unit is CurrencyUnit.DL

    def test_explicit_price_unit_beats_default_unit(self, sword_ledger):
        calculator = ProfitCalculator(default_unit="DL")

        result = calculator.simulate(sword_ledger, 1, 10, price_unit="WL")

        assert result.projected_profit.unit is CurrencyUnit.WL
        assert result.projected_profit.amount == Decimal("5")


class TestMarginPct:

    def test_zero_revenue(self):
        assert margin_pct(Decimal("0"), Decimal("5")) == Decimal("0")

    def test_percentage(self):
        assert margin_pct(Decimal("200"), Decimal("50")) == Decimal("25")

    def test_margin_is_on_revenue_not_cost(self):
        # sword example: revenue 120, COGS 66, profit 54
        assert margin_pct(Decimal("120"), Decimal("54")) == Decimal("45")
