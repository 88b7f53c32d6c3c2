"""
Values -- Immutable amount value object.

Responsibility:
    Pair a Decimal amount with its CurrencyUnit so the two are never
    separated in engine code, and route every cross-unit operation
    through the DenominationConverter.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Depends only on costing_kernel.domain.currency.

Invariants enforced:
    - amount is always a Decimal (floats are converted through str()).
    - unit is always a CurrencyUnit (unknown codes raise InvalidUnitError).
    - Addition and subtraction never mix units silently.

Failure modes:
    - UnitMismatchError when ``+``/``-`` operands carry different units.
    - InvalidUnitError on construction with an unknown unit.
    - ValueError on construction with a non-numeric amount.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from costing_kernel.domain.currency import CurrencyUnit, DenominationConverter
from costing_kernel.exceptions import UnitMismatchError


@dataclass(frozen=True, slots=True)
class Amount:
    """
    An amount in one currency unit.

    Contract:
        Same-unit arithmetic only. Conversion is explicit via
        ``convert_to`` / ``to_base_units``.
    Non-goals:
        - Does NOT auto-round.
    """

    amount: Decimal
    unit: CurrencyUnit

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            if isinstance(self.amount, bool):
                raise TypeError("Amount cannot be a bool")
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount}") from e
        object.__setattr__(self, "unit", CurrencyUnit.parse(self.unit))

    @classmethod
    def of(cls, amount: Decimal | int | str | float, unit: CurrencyUnit | str) -> Amount:
        return cls(amount=amount, unit=unit)

    @classmethod
    def zero(cls, unit: CurrencyUnit | str) -> Amount:
        return cls(amount=Decimal("0"), unit=unit)

    @classmethod
    def sum_in(cls, amounts: Iterable[Amount], unit: CurrencyUnit | str) -> Amount:
        """
        Sum amounts of any units into ``unit``.

        Each amount is converted to base units, the base total is summed,
        and the result converted back to ``unit`` once.
        """
        target = CurrencyUnit.parse(unit)
        base_total = sum(
            (a.to_base_units() for a in amounts),
            Decimal("0"),
        )
        return cls(
            amount=DenominationConverter.from_base_units(base_total, target),
            unit=target,
        )

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def to_base_units(self) -> Decimal:
        return DenominationConverter.to_base_units(self.amount, self.unit)

    def convert_to(self, unit: CurrencyUnit | str) -> Amount:
        target = CurrencyUnit.parse(unit)
        if target is self.unit:
            return self
        return Amount(
            amount=DenominationConverter.convert(self.amount, self.unit, target),
            unit=target,
        )

    def _check_unit(self, other: Amount) -> None:
        if not isinstance(other, Amount):
            raise TypeError(f"Cannot combine Amount with {type(other).__name__}")
        if other.unit is not self.unit:
            raise UnitMismatchError(self.unit.value, other.unit.value)

    def __add__(self, other: Amount) -> Amount:
        self._check_unit(other)
        return Amount(amount=self.amount + other.amount, unit=self.unit)

    def __sub__(self, other: Amount) -> Amount:
        self._check_unit(other)
        return Amount(amount=self.amount - other.amount, unit=self.unit)

    def __neg__(self) -> Amount:
        return Amount(amount=-self.amount, unit=self.unit)

    def __mul__(self, factor: Decimal | int) -> Amount:
        if isinstance(factor, (Amount, float)):
            raise TypeError("Amount can only be multiplied by int or Decimal")
        return Amount(amount=self.amount * factor, unit=self.unit)

    __rmul__ = __mul__

    def __str__(self) -> str:
        return f"{self.amount} {self.unit.value}"
