"""
costing_services -- Persistence-backed orchestration.

Responsibility:
    Load lots and sales through SQLAlchemy, drive the pure engines, and
    write REAL consumptions back with conflict-safe conditional updates.

Architecture position:
    Services -- the only layer that owns a Session.  Imports
    costing_engines and costing_kernel; never costing_config.
"""

from costing_services.lot_repository import LotRepository
from costing_services.sale_service import (
    SaleOutcome,
    SaleService,
    SaleStatus,
    apportion_revenue,
)

__all__ = [
    "LotRepository",
    "SaleOutcome",
    "SaleService",
    "SaleStatus",
    "apportion_revenue",
]
