from __future__ import annotations

import pytest
import yaml

from panelforge.media_generation.style_sheet import StyleSheet, load_style_dir
from panelforge.utils.config import ApiKeysConfig, Config, VideoConfig, resolve_key
from panelforge.utils.errors import ConfigurationError


def _write_style(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_style_lookup_falls_back_to_default(tmp_path):
    style = StyleSheet.load(_write_style(tmp_path / "mono.yaml", {
        "meta": {"name": "mono"},
        "variants": {"default": "normal", "normal": {"prompt": "Monochrome"}, "cover": {"prompt": "Big title"}},
    }))
    assert style.name == "mono"
    assert style.get_style("cover") == "Big title"
    assert style.get_style("data") == "Monochrome"
    assert style.get_style(None) == "Monochrome"


def test_style_without_default_gives_empty_prefix():
    style = StyleSheet.from_prompts("bare", {"cover": "Big title"}, default="normal")
    assert style.get_style("unknown") == ""


def test_missing_style_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        StyleSheet.load(tmp_path / "ghost.yaml")


def test_style_file_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        StyleSheet.load(path)


def test_load_style_dir(tmp_path):
    _write_style(tmp_path / "a.yaml", {"variants": {"normal": {"prompt": "A"}}})
    _write_style(tmp_path / "b.yml", {"variants": {"normal": {"prompt": "B"}}})
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    catalog = load_style_dir(tmp_path)
    assert sorted(catalog) == ["a", "b"]
    assert catalog["b"].get_style("normal") == "B"


def test_config_defaults():
    config = Config()
    assert config.cache.min_bytes == 10000
    assert config.retry.max_attempts == 3
    assert config.retry.backoff_seconds == 15
    assert config.generation.slide_concurrency == 5
    assert config.video.crossfade_duration == 1.0
    assert config.stitch.comic_gutter == 20


def test_config_round_trip_through_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    original = Config(retry={"max_attempts": 5}, stitch={"comic_gutter": 8})
    original.save(str(path))
    loaded = Config.load(str(path))
    assert loaded.retry.max_attempts == 5
    assert loaded.stitch.comic_gutter == 8


def test_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.load(str(tmp_path / "nope.yaml"))


def test_crossfade_cannot_outlast_still():
    with pytest.raises(ValueError):
        VideoConfig(still_duration=1.0, crossfade_duration=2.0)


def test_api_keys_resolve_env(monkeypatch):
    monkeypatch.setenv("PF_TEST_KEY", "secret")
    assert resolve_key("env:PF_TEST_KEY") == "secret"
    assert resolve_key("literal") == "literal"
    assert resolve_key(None) is None

    keys = ApiKeysConfig(gemini="env:PF_TEST_KEY", dashscope="env:PF_TEST_UNSET")
    monkeypatch.delenv("PF_TEST_UNSET", raising=False)
    assert keys.require("gemini") == "secret"
    assert keys.optional("dashscope") is None
    with pytest.raises(ConfigurationError):
        keys.require("dashscope")
