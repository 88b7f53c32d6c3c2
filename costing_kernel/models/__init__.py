"""ORM models for the costing tables."""

from costing_kernel.models.inventory_entry import InventoryEntryModel
from costing_kernel.models.sale import SaleModel

__all__ = [
    "InventoryEntryModel",
    "SaleModel",
]
