"""
modchain execution layer — state addressing, the Merkle state tree, the
assertion-ledger executor, block production and the chain facade.

This package exposes only lightweight metadata at import time. Import the
subpackages explicitly (`execution.chain`, `execution.runtime`, ...).
"""

from core import __version__

__all__ = ["__version__"]
