import pytest

from core.config import MAX_TREE_DEPTH, ChainConfig, load_config
from core.errors import ConfigError


def test_defaults_from_empty_env():
    cfg = load_config(env={})
    assert cfg == ChainConfig()
    assert cfg.tree_depth == MAX_TREE_DEPTH
    assert cfg.parallel_execution is False


def test_env_variables_are_read():
    cfg = load_config(
        env={
            "MODCHAIN_CHAIN_ID": "7",
            "MODCHAIN_TREE_DEPTH": "32",
            "MODCHAIN_PARALLEL": "yes",
            "MODCHAIN_MAX_WORKERS": "2",
            "MODCHAIN_LOG_LEVEL": "debug",
            "MODCHAIN_LOG_FORMAT": "JSON",
        }
    )
    assert cfg.chain_id == 7
    assert cfg.tree_depth == 32
    assert cfg.parallel_execution is True
    assert cfg.max_workers == 2
    assert cfg.log_level == "DEBUG"
    assert cfg.log_format == "json"


def test_overrides_win_over_env():
    cfg = load_config(env={"MODCHAIN_CHAIN_ID": "7"}, overrides={"chain_id": 9})
    assert cfg.chain_id == 9


@pytest.mark.parametrize(
    "env",
    [
        {"MODCHAIN_TREE_DEPTH": "0"},
        {"MODCHAIN_TREE_DEPTH": "257"},
        {"MODCHAIN_CHAIN_ID": "abc"},
        {"MODCHAIN_PARALLEL": "maybe"},
        {"MODCHAIN_MAX_WORKERS": "0"},
        {"MODCHAIN_LOG_FORMAT": "xml"},
    ],
)
def test_invalid_values_raise_config_error(env):
    with pytest.raises(ConfigError):
        load_config(env=env)


def test_proof_arg_limit_capped_at_two():
    with pytest.raises(ConfigError):
        load_config(env={}, overrides={"max_proof_args": 3})
