"""
Pure domain layer.

This module contains immutable records and value objects with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock
- I/O
"""

from costing_kernel.domain.currency import (
    BASE_UNIT,
    UNIT_MULTIPLIERS,
    Breakdown,
    BreakdownRounding,
    CurrencyUnit,
    DenominationConverter,
)
from costing_kernel.domain.lots import (
    DEFAULT_CATEGORY_ID,
    Category,
    InventoryEntry,
    Item,
    LotStatus,
    Sale,
)
from costing_kernel.domain.values import Amount

__all__ = [
    "Amount",
    "BASE_UNIT",
    "Breakdown",
    "BreakdownRounding",
    "Category",
    "CurrencyUnit",
    "DEFAULT_CATEGORY_ID",
    "DenominationConverter",
    "InventoryEntry",
    "Item",
    "LotStatus",
    "Sale",
    "UNIT_MULTIPLIERS",
]
