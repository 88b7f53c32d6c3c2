"""
Typed Exception Hierarchy for the Costing Kernel.

===============================================================================
WHAT RAISES AND WHAT RETURNS
===============================================================================

Expected business conditions are NOT exceptions in this system. A sale that
asks for more stock than the ledger holds, a simulation beyond available
stock, or a sale against an item with no open lots all come back as explicit
result values:

    ConsumptionStatus.INSUFFICIENT_STOCK   (costing_engines.costing)
    ConsumptionStatus.SIMULATION_CAPPED    (costing_engines.costing)
    ConsumptionResult.empty_ledger         (costing_engines.costing)
    SaleOutcome.status                     (costing_services.sale_service)

Exceptions are reserved for conditions that must abort the call:

  1. An unrecognized currency unit reaches the converter. Silently
     defaulting would corrupt every figure derived from the amount.
  2. Arithmetic mixes currency units without an explicit conversion.
  3. The persistence collaborator detects that a lot changed underneath a
     REAL consumption (conditional decrement matched no row).
  4. Settings fail validation.

Programming-contract violations (negative quantities, missing item
references, lot records that break their own invariants) raise the builtin
ValueError / TypeError and are not part of this hierarchy.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CostingKernelError (base)
    |
    +-- CurrencyError
    |   +-- InvalidUnitError
    |   +-- UnitMismatchError
    |
    +-- ConcurrencyError
    |   +-- StaleLotError
    |
    +-- ConfigError
        +-- InvalidSettingsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                 | When Raised
----------------|----------------------|-----------------------------------------
Currency        | INVALID_UNIT         | Unit is not WL, DL or BGL
                | UNIT_MISMATCH        | Same-unit operation given two units
----------------|----------------------|-----------------------------------------
Concurrency     | STALE_LOT            | Conditional decrement matched no row
----------------|----------------------|-----------------------------------------
Config          | INVALID_SETTINGS     | Settings document failed validation

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        repository.apply_consumption(result)
    except StaleLotError as e:
        session.rollback()
        retry_or_reject(e.entry_id)

    except InvalidUnitError as e:
        return {"error": e.code, "unit": e.unit}
"""


class CostingKernelError(Exception):
    """
    Base exception for all costing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COSTING_KERNEL_ERROR"


# Currency-related exceptions


class CurrencyError(CostingKernelError):
    """Base exception for currency-unit errors."""

    code: str = "CURRENCY_ERROR"


class InvalidUnitError(CurrencyError):
    """Unrecognized currency unit reached the converter."""

    code: str = "INVALID_UNIT"

    def __init__(self, unit: object):
        self.unit = unit
        super().__init__(f"Invalid currency unit: {unit!r}")


class UnitMismatchError(CurrencyError):
    """Attempted same-unit arithmetic on two different currency units."""

    code: str = "UNIT_MISMATCH"

    def __init__(self, unit1: str, unit2: str):
        self.unit1 = unit1
        self.unit2 = unit2
        super().__init__(f"Currency unit mismatch: {unit1} vs {unit2}")


# Concurrency-related exceptions


class ConcurrencyError(CostingKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleLotError(ConcurrencyError):
    """
    A lot no longer holds the quantity a REAL consumption decided to take.

    Raised by the persistence collaborator when the conditional decrement
    (``remaining_qty >= used``) matches no row, meaning another writer
    consumed the lot after the ledger snapshot was read.
    """

    code: str = "STALE_LOT"

    def __init__(self, entry_id: str, requested: int):
        self.entry_id = entry_id
        self.requested = requested
        super().__init__(
            f"Lot {entry_id} no longer holds {requested} units: "
            "modified by another transaction"
        )


# Configuration-related exceptions


class ConfigError(CostingKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidSettingsError(ConfigError):
    """Engine settings failed validation."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid setting '{field}': {reason}")
