"""
core.config — chain-assembly parameters for a modchain instance.

These are public system parameters fixed when the chain is assembled; none of
them may change for the lifetime of a running chain.

Environment variables (all optional):
  MODCHAIN_CHAIN_ID        -> non-negative integer (default: 1)
  MODCHAIN_TREE_DEPTH      -> state tree depth in bits, 1..256 (default: 256)
  MODCHAIN_PARALLEL        -> 0/1/true/false, speculative parallel execution (default: 0)
  MODCHAIN_MAX_WORKERS     -> worker threads for parallel execution (default: 4)
  MODCHAIN_LOG_LEVEL       -> DEBUG/INFO/WARNING/ERROR (default: INFO)
  MODCHAIN_LOG_FORMAT      -> json|text (default: text)

Programmatic usage:
    from core.config import load_config
    cfg = load_config(overrides={"tree_depth": 64})
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

from core.errors import ConfigError

MAX_TREE_DEPTH = 256
# At most two proof-typed parameters per method.
MAX_PROOF_ARGS = 2

_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _bool_env(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    raise ConfigError("invalid boolean", value=value)


def _int_env(value: Any, *, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer", value=value) from None


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int = 1
    tree_depth: int = MAX_TREE_DEPTH
    max_proof_args: int = MAX_PROOF_ARGS
    parallel_execution: bool = False
    max_workers: int = 4
    log_level: str = "INFO"
    log_format: str = "text"

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _validate(cfg: ChainConfig) -> ChainConfig:
    if cfg.chain_id < 0:
        raise ConfigError("chain_id must be >= 0", chain_id=cfg.chain_id)
    if not (1 <= cfg.tree_depth <= MAX_TREE_DEPTH):
        raise ConfigError(f"tree_depth must be in [1, {MAX_TREE_DEPTH}]", tree_depth=cfg.tree_depth)
    if not (0 <= cfg.max_proof_args <= MAX_PROOF_ARGS):
        raise ConfigError(f"max_proof_args must be in [0, {MAX_PROOF_ARGS}]", max_proof_args=cfg.max_proof_args)
    if cfg.max_workers < 1:
        raise ConfigError("max_workers must be >= 1", max_workers=cfg.max_workers)
    if cfg.log_level not in _LOG_LEVELS:
        raise ConfigError("unknown log level", log_level=cfg.log_level)
    if cfg.log_format not in ("json", "text"):
        raise ConfigError("log_format must be 'json' or 'text'", log_format=cfg.log_format)
    return cfg


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ChainConfig:
    """
    Build a ChainConfig from environment and optional overrides.

    Overrides win over environment variables; keys are ChainConfig field names.
    Raises ConfigError on any invalid value.
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    def pick(field: str, var: str, default: Any) -> Any:
        if field in overrides:
            return overrides[field]
        return env.get(var, default)

    cfg = ChainConfig(
        chain_id=_int_env(pick("chain_id", "MODCHAIN_CHAIN_ID", 1), name="chain_id"),
        tree_depth=_int_env(pick("tree_depth", "MODCHAIN_TREE_DEPTH", MAX_TREE_DEPTH), name="tree_depth"),
        max_proof_args=_int_env(overrides.get("max_proof_args", MAX_PROOF_ARGS), name="max_proof_args"),
        parallel_execution=_bool_env(pick("parallel_execution", "MODCHAIN_PARALLEL", None), False),
        max_workers=_int_env(pick("max_workers", "MODCHAIN_MAX_WORKERS", 4), name="max_workers"),
        log_level=str(pick("log_level", "MODCHAIN_LOG_LEVEL", "INFO")).strip().upper(),
        log_format=str(pick("log_format", "MODCHAIN_LOG_FORMAT", "text")).strip().lower(),
    )
    return _validate(cfg)


@lru_cache(maxsize=1)
def get_config() -> ChainConfig:
    """Cached process-wide config built from the environment."""
    return load_config()


__all__ = [
    "MAX_TREE_DEPTH",
    "MAX_PROOF_ARGS",
    "ChainConfig",
    "load_config",
    "get_config",
]
