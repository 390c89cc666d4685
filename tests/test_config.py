from __future__ import annotations

import json

import pytest

from posindex.config import ServiceConfig, load_config


def test_defaults() -> None:
    config = load_config(environ={})
    assert config == ServiceConfig()
    assert config.tree_path is None
    assert config.port == 8000
    assert config.max_batch == 1000


def test_environment_overrides_file(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"tree_path": "a.json", "port": 9000}), encoding="utf-8")
    config = load_config(
        str(path), environ={"POSINDEX_TREE_PATH": "b.json", "POSINDEX_MAX_BATCH": "5"}
    )
    assert config.tree_path == "b.json"
    assert config.port == 9000
    assert config.max_batch == 5


def test_config_path_from_environment(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"log_level": "debug"}), encoding="utf-8")
    config = load_config(environ={"POSINDEX_CONFIG": str(path)})
    assert config.log_level == "debug"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"port": 0}'])
def test_invalid_config_raises_value_error(tmp_path, content) -> None:
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path), environ={})
