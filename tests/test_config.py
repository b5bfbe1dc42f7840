"""
Tests for layered configuration loading and the typed asset config.
"""

import json

import pytest
import yaml

from assetbuilder.config import AssetBuilderConfig, ConfigLoader
from assetbuilder.faults import ConfigInvalidFault


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("AB_"):
            monkeypatch.delenv(key)


class TestAssetBuilderConfig:
    def test_defaults(self):
        config = AssetBuilderConfig()
        assert config.mode == "dev"
        assert config.base_url == "/"
        assert config.asset_dir == "assets/"
        assert config.less_dir == "css/less/"
        assert config.cache_dir == "assets/cache/"
        assert config.deps_max_depth == 5
        assert config.html5 is True
        assert config.production is False

    def test_production_modes(self):
        for mode in ("prod", "production", "staging", "PRODUCTION"):
            assert AssetBuilderConfig(mode=mode).production
        assert not AssetBuilderConfig(mode="test").production

    def test_trailing_slashes(self):
        config = AssetBuilderConfig(asset_dir="public", cache_dir="public/cache")
        assert config.asset_dir == "public/"
        assert config.cache_dir == "public/cache/"

    def test_paths(self, tmp_path):
        config = AssetBuilderConfig(docroot=str(tmp_path))
        assert config.source_dir("js") == "assets/js/"
        assert config.source_dir("css") == "assets/css/"
        assert config.less_root == "assets/css/less/"
        assert config.cache_root == tmp_path / "assets/cache"
        assert config.manifest_path == tmp_path / "assets/cache/asset.cache"
        assert config.cache_ref("app-1.js") == "assets/cache/app-1.js"

    def test_negative_depth(self):
        with pytest.raises(ConfigInvalidFault):
            AssetBuilderConfig(deps_max_depth=-1)


class TestConfigLoader:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "assets.yaml"
        path.write_text(yaml.safe_dump({"base_url": "/static/", "groups": {"js": {"app": {"js": ["a.js"]}}}}))
        loader = ConfigLoader.load(paths=[str(path)])
        assert loader.get("base_url") == "/static/"
        assert loader.get("groups.js.app.js") == ["a.js"]
        assert loader.get("groups.css.missing", "x") == "x"

    def test_json_file_and_merge(self, tmp_path):
        first = tmp_path / "a.json"
        second = tmp_path / "b.json"
        first.write_text(json.dumps({"groups": {"js": {"a": {"enabled": True}}}, "html5": True}))
        second.write_text(json.dumps({"groups": {"js": {"b": {}}}, "html5": False}))
        loader = ConfigLoader.load(paths=[str(first), str(second)])
        assert set(loader.get("groups.js")) == {"a", "b"}
        assert loader.get("html5") is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load(paths=[str(tmp_path / "nope.yaml")])

    def test_missing_glob_is_fine(self, tmp_path):
        loader = ConfigLoader.load(paths=[str(tmp_path / "*.yaml")])
        assert loader.to_dict() == {}

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "assets.yaml"
        path.write_text(yaml.safe_dump({"deps_max_depth": 5}))
        monkeypatch.setenv("AB_DEPS_MAX_DEPTH", "8")
        monkeypatch.setenv("AB_GROUPS__JS__APP__ENABLED", "true")
        loader = ConfigLoader.load(paths=[str(path)])
        assert loader.get("deps_max_depth") == 8
        assert loader.get("groups.js.app.enabled") is True

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("AB_MODE=production\nAB_BASE_URL=/cdn/\nOTHER=ignored\n")
        loader = ConfigLoader.load(env_file=str(env_file))
        assert loader.get("mode") == "production"
        assert loader.get("base_url") == "/cdn/"
        assert loader.get("other") is None

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("AB_MODE", "production")
        loader = ConfigLoader.load(overrides={"mode": "dev"})
        assert loader.get("mode") == "dev"

    def test_value_parsing(self):
        loader = ConfigLoader()
        assert loader._parse_value("yes") is True
        assert loader._parse_value("no") is False
        assert loader._parse_value("3") == 3
        assert loader._parse_value("1.5") == 1.5
        assert loader._parse_value('["--strict-math"]') == ["--strict-math"]
        assert loader._parse_value("assets/") == "assets/"

    def test_get_asset_config(self, tmp_path):
        loader = ConfigLoader.load(overrides={"docroot": str(tmp_path), "lessc_options": ["--strict-math=on"]})
        config = loader.get_asset_config()
        assert isinstance(config, AssetBuilderConfig)
        assert config.docroot == str(tmp_path)
        assert config.lessc_options == ["--strict-math=on"]
        assert config.groups == {}

    def test_section_takes_precedence(self):
        loader = ConfigLoader.load(overrides={"base_url": "/a/", "assetbuilder": {"base_url": "/b/"}})
        assert loader.get_asset_config().base_url == "/b/"

    def test_unknown_keys_ignored(self):
        loader = ConfigLoader.load(overrides={"something_else": 1})
        assert loader.get_asset_config().mode == "dev"

    def test_type_mismatch(self):
        with pytest.raises(ConfigInvalidFault) as exc_info:
            ConfigLoader.load(overrides={"deps_max_depth": "deep"}).get_asset_config()
        assert exc_info.value.code == "CONFIG_INVALID"

        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load(overrides={"deps_max_depth": True}).get_asset_config()

        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load(overrides={"groups": ["js"]}).get_asset_config()
