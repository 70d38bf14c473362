from __future__ import annotations

import pytest

from mpzap import config


def test_defaults():
    settings = config.resolve_settings({}, environ={}, cfg={})
    assert settings == {
        "device": None,
        "baudrate": 115200,
        "timeout": 0.5,
        "chunk_size": 256,
    }


def test_precedence():
    cfg = {"device": "/dev/cfg", "baudrate": 9600, "chunk_size": 64}
    environ = {"PYBOARD_DEVICE": "/dev/env", "PYBOARD_BAUDRATE": "57600"}
    settings = config.resolve_settings({"device": "/dev/flag", "baudrate": None}, environ=environ, cfg=cfg)
    assert settings["device"] == "/dev/flag"
    assert settings["baudrate"] == 57600
    assert settings["chunk_size"] == 64
    assert settings["timeout"] == 0.5


def test_bad_environment_value():
    with pytest.raises(ValueError, match="PYBOARD_BAUDRATE"):
        config.resolve_settings({}, environ={"PYBOARD_BAUDRATE": "fast"}, cfg={})


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        config.resolve_settings({"chunk_size": 0}, environ={}, cfg={})


def test_save_and_load(tmp_path):
    path = tmp_path / "cfg.json"
    config.save_config({"device": "COM3"}, path)
    assert config.load_config(path) == {"device": "COM3"}


def test_corrupted_config_falls_back(tmp_path, capsys):
    path = tmp_path / "cfg.json"
    path.write_text("{not json")
    assert config.load_config(path) == {}
    assert "corrupted" in capsys.readouterr().err
