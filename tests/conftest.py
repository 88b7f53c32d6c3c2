"""
Pytest fixtures for the lot costing test suite.

Provides:
- Structured logging configured once per run, plus a ``captured_logs``
  fixture returning parsed JSON records
- An in-memory SQLite ``session`` with all costing tables created
- Lot builders and the two-lot "Sword" ledger used across engine tests
"""

import json
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from costing_engines.ledger import LotLedger
from costing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from costing_kernel.domain.currency import CurrencyUnit
from costing_kernel.domain.lots import InventoryEntry, Item, LotStatus, Sale
from costing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

T0 = datetime(2024, 1, 1, 9, 0)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture costing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            CostingEngine().consume(ledger, 3)
            logs = captured_logs()
            assert any(r["message"] == "consumption_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("costing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory SQLite database per test."""
    init_engine_from_url("sqlite://")
    create_tables()
    s = get_session()
    try:
        yield s
    finally:
        s.close()
        drop_tables()
        reset_engine()


# =============================================================================
# Domain builders
# =============================================================================


def make_lot(
    entry_id: str,
    quantity: int,
    unit_cost: str | int | Decimal,
    bought_at: datetime = T0,
    item_id: str = "sword",
    unit: CurrencyUnit | str = CurrencyUnit.WL,
    remaining: int | None = None,
) -> InventoryEntry:
    """An InventoryEntry with total_cost derived the way create() does it."""
    remaining = quantity if remaining is None else remaining
    cost = Decimal(str(unit_cost))
    return InventoryEntry(
        entry_id=entry_id,
        item_id=item_id,
        snapshot_name=item_id.title(),
        snapshot_category_id="cat_weapons",
        quantity_bought=quantity,
        unit_cost=cost,
        total_cost=cost * quantity,
        currency_unit=CurrencyUnit.parse(unit),
        bought_at=bought_at,
        remaining_qty=remaining,
        status=LotStatus.CLOSED if remaining == 0 else LotStatus.OPEN,
    )


def make_sale(
    sale_id: str,
    entry_id: str,
    quantity: int,
    amount: str | int | Decimal,
    sold_at: datetime = T0 + timedelta(days=10),
    item_id: str = "sword",
    unit: CurrencyUnit | str = CurrencyUnit.WL,
) -> Sale:
    return Sale(
        sale_id=sale_id,
        entry_id=entry_id,
        item_id=item_id,
        quantity_sold=quantity,
        amount_gained=Decimal(str(amount)),
        currency_unit=CurrencyUnit.parse(unit),
        sold_at=sold_at,
    )


@pytest.fixture
def sword_lots() -> list[InventoryEntry]:
    """Lot A: 10 @ 5 WL (older), lot B: 10 @ 8 WL."""
    return [
        make_lot("B", 10, 8, bought_at=T0 + timedelta(days=1)),
        make_lot("A", 10, 5, bought_at=T0),
    ]


@pytest.fixture
def sword_ledger(sword_lots) -> LotLedger:
    return LotLedger("sword", sword_lots)


@pytest.fixture
def sword_item() -> Item:
    return Item(item_id="sword", name="Sword", category_id="cat_weapons")
