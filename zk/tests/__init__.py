"""
zk.tests helpers

Shared by zk/* tests:
- program_id(label) -> 32-byte program identifier
- env_flag(name, default=False) -> bool
- configure_test_logging() -> None   (ZK_TEST_LOG=1 enables INFO logs for zk.*)
"""

from __future__ import annotations

import logging
import os

from core.utils.hash import sha3_256


def program_id(label: str) -> bytes:
    return sha3_256(b"test-program/" + label.encode("utf-8"))


def env_flag(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def configure_test_logging(level: int = logging.INFO) -> None:
    if env_flag("ZK_TEST_LOG", False):
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        logging.getLogger("zk").setLevel(level)


configure_test_logging()
