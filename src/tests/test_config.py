import json

import pytest

from json_sentinel.config import DEFAULT_CONFIG, load_config, merge_config


def test_defaults_without_path():
    assert load_config(None) == DEFAULT_CONFIG


def test_file_overrides_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_depth": 5, "security_rules": ["insecure_url"]}), encoding="utf-8")

    config = load_config(str(path))

    assert config["max_depth"] == 5
    assert config["security_rules"] == ["insecure_url"]
    assert config["max_keys"] == DEFAULT_CONFIG["max_keys"]


def test_unknown_key_is_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_deph": 5}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.json"))


def test_merge_does_not_touch_defaults():
    config = merge_config({"cache_size": 8})

    assert config["cache_size"] == 8
    assert DEFAULT_CONFIG["cache_size"] == 0
