"""
modchain core package.

Deterministic substrate shared by the execution and proof layers: errors,
configuration, structured logging, canonical encoding, hashing and the
Transaction type.

Only re-exports the version here to keep import-time side effects near zero.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
