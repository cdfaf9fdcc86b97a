"""
execution.types — small execution-layer dataclasses and enums shared by the
executor, the block producer and the chain facade.

Public surface (re-exported):
    TxStatus          : Enum — ACCEPTED / REJECTED / INVALID
    ExecutionResult   : Dataclass — outcome of executing one transaction
    TxRecord, Block   : Dataclasses — per-batch block record
"""

from __future__ import annotations

from .block import Block, TxRecord
from .result import ExecutionResult
from .status import TxStatus

__all__ = ["TxStatus", "ExecutionResult", "TxRecord", "Block"]
