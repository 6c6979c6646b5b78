from pathlib import Path

import pytest

from pytether.__main__ import build_parser, parse_metadata
from pytether.config import SyncConfig


def test_defaults():
    config = SyncConfig()
    assert config.heartbeat_interval == 1.0
    assert config.liveness_timeout == 4.0
    assert config.store_key == "windows"
    assert config.validate() is config


def test_from_env(tmp_path):
    env = {
        "PYTETHER_HEARTBEAT": "0.5",
        "PYTETHER_LIVENESS": "3",
        "PYTETHER_EPSILON": "2",
        "PYTETHER_STORE_DIR": str(tmp_path),
        "PYTETHER_STORE_KEY": "demo",
        "PYTETHER_POLL": "",
    }
    config = SyncConfig.from_env(env)
    assert config.heartbeat_interval == 0.5
    assert config.liveness_timeout == 1.5
    assert config.shape_epsilon == 2.0
    assert config.store_dir == Path(tmp_path)
    assert config.store_key == "demo"
    assert config.poll_interval == SyncConfig().poll_interval


def test_from_env_rejects_garbage():
    with pytest.raises(ValueError, match="PYTETHER_HEARTBEAT"):
        SyncConfig.from_env({"PYTETHER_HEARTBEAT": "soon"})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"heartbeat_interval": 0},
        {"liveness_multiplier": 1.5},
        {"shape_epsilon": -1},
        {"poll_interval": 0},
        {"store_key": ""},
    ],
)
def test_validate(kwargs):
    with pytest.raises(ValueError):
        SyncConfig(**kwargs).validate()


def test_overrides_skip_none():
    config = SyncConfig().with_overrides(heartbeat_interval=None, liveness_multiplier=3)
    assert config.heartbeat_interval == 1.0
    assert config.liveness_multiplier == 3


def test_cli_metadata():
    assert parse_metadata(["foo=bar", "n=1=2"]) == {"foo": "bar", "n": "1=2"}
    assert parse_metadata(None) == {}

    args = build_parser().parse_args(["--heartbeat", "0.25", "--metadata", "a=b", "--clear"])
    assert args.heartbeat == 0.25
    assert args.clear
    assert args.metadata == ["a=b"]


def test_cli_clear(tmp_path, capsys):
    from pytether.__main__ import main

    store_file = tmp_path / "windows.json"
    store_file.write_text("[]")
    assert main(["--clear", "--store-dir", str(tmp_path)]) == 0
    assert not store_file.exists()
    assert "Cleared" in capsys.readouterr().out
