"""
Currency -- three-tier denomination table and the DenominationConverter.

Responsibility:
    Define the closed set of currency units (WL < DL < BGL), the single
    table of fixed multipliers relative to the smallest unit, and the
    conversions between a unit, flat base units, and a human-readable
    multi-denomination breakdown.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Every other module consults UNIT_MULTIPLIERS through this module;
    no conversion constant is duplicated elsewhere.

Invariants enforced:
    - Multipliers are fixed constants (WL=1, DL=100, BGL=10000), never
      tenant-configurable.
    - Unrecognized units raise InvalidUnitError; there is no default unit.
    - Breakdowns of non-negative integers reconstitute exactly
      (``Breakdown.to_base_units()``).

Failure modes:
    - InvalidUnitError from ``CurrencyUnit.parse`` and every converter
      method when given an unknown unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from costing_kernel.exceptions import InvalidUnitError


class CurrencyUnit(str, Enum):
    """Currency tiers, smallest first."""

    WL = "WL"    # World Lock
    DL = "DL"    # Diamond Lock = 100 WL
    BGL = "BGL"  # Blue Gem Lock = 100 DL

    @classmethod
    def parse(cls, value: Any) -> CurrencyUnit:
        """Normalize a unit code or raise InvalidUnitError."""
        if isinstance(value, CurrencyUnit):
            return value
        if isinstance(value, str):
            try:
                return cls(value.upper().strip())
            except ValueError:
                pass
        raise InvalidUnitError(value)

    @property
    def multiplier(self) -> int:
        """Size of this unit in base (WL) units."""
        return UNIT_MULTIPLIERS[self]

    def __str__(self) -> str:
        return self.value


UNIT_MULTIPLIERS: dict[CurrencyUnit, int] = {
    CurrencyUnit.WL: 1,
    CurrencyUnit.DL: 100,
    CurrencyUnit.BGL: 10_000,
}

BASE_UNIT = CurrencyUnit.WL

# Largest first, for greedy decomposition
TIERS_DESCENDING: tuple[CurrencyUnit, ...] = tuple(
    sorted(UNIT_MULTIPLIERS, key=lambda u: UNIT_MULTIPLIERS[u], reverse=True)
)


class BreakdownRounding(str, Enum):
    """How a fractional smallest-tier remainder is resolved."""

    HALF_UP = "half_up"  # nearest, halves away from zero
    FLOOR = "floor"      # never overstate value

    @property
    def decimal_rounding(self) -> str:
        return ROUND_HALF_UP if self is BreakdownRounding.HALF_UP else ROUND_FLOOR


def _to_decimal(value: Decimal | int | str | float) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Amount cannot be a bool")
    return Decimal(str(value))


@dataclass(frozen=True, slots=True)
class Breakdown:
    """
    Multi-denomination decomposition of a base-unit amount.

    ``parts`` is ordered largest tier first and omits zero-quantity tiers,
    except that an all-zero amount is represented as ``((WL, 0),)``.
    The breakdown is sign-agnostic; callers reattach the sign.
    """

    parts: tuple[tuple[CurrencyUnit, int], ...]
    max_tier: CurrencyUnit

    def quantity(self, tier: CurrencyUnit | str) -> int:
        """Quantity at a tier, 0 when the tier was omitted."""
        unit = CurrencyUnit.parse(tier)
        for part_unit, qty in self.parts:
            if part_unit is unit:
                return qty
        return 0

    def to_base_units(self) -> int:
        """Reconstitute the (rounded, absolute) base amount."""
        return sum(qty * UNIT_MULTIPLIERS[unit] for unit, qty in self.parts)

    def as_dict(self) -> dict[str, int]:
        return {unit.value: qty for unit, qty in self.parts}


class DenominationConverter:
    """
    Converts between currency units, base units and display breakdowns.

    Contract:
        Stateless; every method is a classmethod over UNIT_MULTIPLIERS.
    Guarantees:
        - ``to_base_units(x, u) == x * UNIT_MULTIPLIERS[u]`` exactly (Decimal).
        - ``to_breakdown(n).to_base_units() == n`` for non-negative integers.
    Non-goals:
        - No market exchange rates; ratios are fixed.
        - Does not render text beyond ``format_breakdown``.
    """

    @classmethod
    def multiplier(cls, unit: CurrencyUnit | str) -> int:
        return UNIT_MULTIPLIERS[CurrencyUnit.parse(unit)]

    @classmethod
    def to_base_units(
        cls,
        amount: Decimal | int | str | float,
        unit: CurrencyUnit | str,
    ) -> Decimal:
        """
        Convert an amount in ``unit`` to base (WL) units.

        Raises:
            InvalidUnitError: If unit is not one of the three tiers.
        """
        return _to_decimal(amount) * cls.multiplier(unit)

    @classmethod
    def from_base_units(
        cls,
        base_amount: Decimal | int | str | float,
        unit: CurrencyUnit | str,
    ) -> Decimal:
        """Convert a base-unit amount into ``unit`` (exact Decimal division)."""
        return _to_decimal(base_amount) / cls.multiplier(unit)

    @classmethod
    def convert(
        cls,
        amount: Decimal | int | str | float,
        from_unit: CurrencyUnit | str,
        to_unit: CurrencyUnit | str,
    ) -> Decimal:
        """Convert between two units through base units."""
        if CurrencyUnit.parse(from_unit) is CurrencyUnit.parse(to_unit):
            return _to_decimal(amount)
        return cls.from_base_units(cls.to_base_units(amount, from_unit), to_unit)

    @classmethod
    def to_breakdown(
        cls,
        base_amount: Decimal | int | str | float,
        max_tier: CurrencyUnit | str = CurrencyUnit.BGL,
        rounding: BreakdownRounding | str = BreakdownRounding.HALF_UP,
    ) -> Breakdown:
        """
        Greedy decomposition of a base-unit amount, largest tier first.

        The absolute value is rounded to whole base units before dividing,
        so a remainder that rounds up carries into the next tier.

        Args:
            base_amount: Amount in base units; sign is ignored.
            max_tier: Largest tier to emit (DL = two-tier mode, BGL = all three).
            rounding: Resolution of a fractional smallest-tier remainder.
        """
        top = CurrencyUnit.parse(max_tier)
        mode = BreakdownRounding(rounding)
        whole = int(
            abs(_to_decimal(base_amount)).quantize(
                Decimal("1"), rounding=mode.decimal_rounding
            )
        )

        parts: list[tuple[CurrencyUnit, int]] = []
        remainder = whole
        for tier in TIERS_DESCENDING:
            if UNIT_MULTIPLIERS[tier] > UNIT_MULTIPLIERS[top]:
                continue
            qty, remainder = divmod(remainder, UNIT_MULTIPLIERS[tier])
            if qty > 0:
                parts.append((tier, qty))

        if not parts:
            parts.append((BASE_UNIT, 0))
        return Breakdown(parts=tuple(parts), max_tier=top)

    @classmethod
    def format_breakdown(cls, breakdown: Breakdown) -> str:
        """Render as ``"1 BGL, 50 WL"``."""
        return ", ".join(f"{qty} {unit.value}" for unit, qty in breakdown.parts)
