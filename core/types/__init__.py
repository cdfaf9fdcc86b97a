"""
modchain core.types
===================

Canonical chain-level objects shared by every layer:

- tx: Transaction, sign-bytes, Ed25519 signing helpers
"""

from __future__ import annotations

from .tx import Transaction

__all__ = ["Transaction"]
