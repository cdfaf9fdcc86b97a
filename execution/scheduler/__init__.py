"""
execution.scheduler — batch ordering and commit.

- producer: BlockProducer (serial, or speculative-parallel with in-order commit)
"""

from __future__ import annotations

from .producer import BlockProducer

__all__ = ["BlockProducer"]
