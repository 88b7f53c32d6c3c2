"""
Costing Kernel

Domain core for the inventory lot costing and profit engine:
- Three-tier virtual currency with fixed multipliers
- Immutable purchase lots and sale records
- Typed exceptions with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
