"""
execution.metrics — Prometheus counters & histograms for the modchain execution layer.

Centralized registry: consumers call `get_registry()` / `generate_latest_text()`
to expose metrics over HTTP. Helpers cover the common paths:
`observe_tx(...)`, `observe_proof(...)` and `time_block()`.

Exposed metrics (names are prefixed with `modchain_`):
  - tx_total{status}                : Counter — transactions executed by status
  - failed_assertions_total         : Counter — failed ledger entries across rejected txs
  - proofs_verified_total{result}   : Counter — proof-argument checks by result
  - block_seconds                   : Histogram — time to produce a block

Labels:
  - status ∈ {accepted, rejected, invalid}
  - result ∈ {verified, rejected}
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_PREFIX = "modchain_"

_STATUSES = frozenset({"accepted", "rejected", "invalid"})
_PROOF_RESULTS = frozenset({"verified", "rejected"})


def _buckets_from_env(name: str, default: Iterable[float]) -> Iterable[float]:
    raw = os.getenv(name)
    if not raw:
        return default
    out = []
    for tok in raw.split(","):
        tok = tok.strip()
        if not tok:
            continue
        try:
            out.append(float(tok))
        except ValueError:
            continue
    return out or default


_BLOCK_SECONDS_BUCKETS = tuple(_buckets_from_env(
    "MODCHAIN_METRICS_BLOCK_SECONDS_BUCKETS",
    # 1ms .. 10s
    (0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
))


# ------------------------------ registry & ctor ------------------------------

_registry: Optional[CollectorRegistry] = None
_lock = threading.Lock()

TX_TOTAL: Counter
FAILED_ASSERTIONS_TOTAL: Counter
PROOFS_VERIFIED_TOTAL: Counter
BLOCK_SECONDS: Histogram


def get_registry() -> CollectorRegistry:
    """Return the metrics registry, creating one on first use."""
    global _registry
    with _lock:
        if _registry is None:
            _registry = CollectorRegistry()
            _build_metrics(_registry)
        return _registry


def _build_metrics(reg: CollectorRegistry) -> None:
    global TX_TOTAL, FAILED_ASSERTIONS_TOTAL, PROOFS_VERIFIED_TOTAL, BLOCK_SECONDS

    TX_TOTAL = Counter(
        _PREFIX + "tx_total",
        "Transactions executed (by status).",
        labelnames=("status",),
        registry=reg,
    )
    FAILED_ASSERTIONS_TOTAL = Counter(
        _PREFIX + "failed_assertions_total",
        "Failed assertion-ledger entries recorded by rejected transactions.",
        registry=reg,
    )
    PROOFS_VERIFIED_TOTAL = Counter(
        _PREFIX + "proofs_verified_total",
        "Proof-argument checks performed, speculative runs included (by result).",
        labelnames=("result",),
        registry=reg,
    )
    BLOCK_SECONDS = Histogram(
        _PREFIX + "block_seconds",
        "Wall time to produce a block end-to-end.",
        buckets=_BLOCK_SECONDS_BUCKETS,
        registry=reg,
    )


# ------------------------------ helpers -------------------------------------


def observe_tx(status: str, failed_assertions: int = 0) -> None:
    """
    Record one executed transaction.

    Args:
        status: 'accepted' / 'rejected' / 'invalid' (a TxStatus works too)
        failed_assertions: number of failed ledger entries (>= 0)
    """
    s = str(status).strip().lower()
    if s not in _STATUSES:
        raise ValueError(f"unknown tx status label: {status!r}")
    get_registry()
    TX_TOTAL.labels(status=s).inc()
    if failed_assertions > 0:
        FAILED_ASSERTIONS_TOTAL.inc(failed_assertions)


def observe_proof(result: str) -> None:
    if result not in _PROOF_RESULTS:
        raise ValueError(f"unknown proof result label: {result!r}")
    get_registry()
    PROOFS_VERIFIED_TOTAL.labels(result=result).inc()


@dataclass
class _TimerCtx:
    h: Histogram
    t0: float

    def stop(self) -> float:
        dt = max(0.0, time.perf_counter() - self.t0)
        self.h.observe(dt)
        return dt

    def __enter__(self) -> "_TimerCtx":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def time_block() -> _TimerCtx:
    """
    Context manager timing block production.

        with time_block():
            producer.produce(txs)
    """
    get_registry()
    return _TimerCtx(h=BLOCK_SECONDS, t0=time.perf_counter())


def generate_latest_text() -> bytes:
    """Prometheus exposition format for the current registry."""
    return generate_latest(get_registry())


__all__ = [
    "get_registry",
    "generate_latest_text",
    "observe_tx",
    "observe_proof",
    "time_block",
]
