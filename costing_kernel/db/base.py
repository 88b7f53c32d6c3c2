"""
Module: costing_kernel.db.base
Responsibility: Declarative base for the SQLAlchemy ORM models.  Provides the
    string UUID primary key convention and the type annotation map that keeps
    column types consistent.
Architecture position: Kernel > DB.  The lowest-level import target within
    the kernel's persistence side.  ALL model files import from here.  This
    module MUST NOT import from models/, engines or services.

Invariants enforced:
    - UUID primary keys: every row gets a uuid4 identifier stored as
      String(36).  Domain records carry the same ids as plain strings.
    - Decimal precision: Python Decimal maps to Numeric(38, 9).  Costs and
      revenue are NEVER stored as float.

Failure modes:
    - IntegrityError on a duplicate primary key.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def new_id() -> str:
    """Fresh uuid4 identifier in its canonical 36-character form."""
    return str(uuid4())


class UUIDString(TypeDecorator):
    """
    UUID stored as String(36) for cross-database portability.

    Contract:
        Accepts a UUID or its string form on bind; always loads as str so
        ORM rows and domain records share one id representation.

    Guarantees:
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value, dialect):
        return value


class Base(DeclarativeBase):
    """
    Declarative base for all costing ORM models.

    Guarantees:
        - id is a uuid4 string unless the caller supplies one.
        - Decimal maps to Numeric(38, 9).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[str] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=new_id,
    )
