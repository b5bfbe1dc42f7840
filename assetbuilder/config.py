"""
Config system - Layered configuration with typed asset settings.

Sources are merged with precedence (later overrides earlier):
config files > .env file > environment variables > overrides
"""

from __future__ import annotations

import json
import os
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, get_origin, get_type_hints

import yaml
from dotenv import dotenv_values

from .faults import ConfigInvalidFault

DEFAULT_CONFIG_FILES = ("assetbuilder.yaml", "assetbuilder.yml", "assetbuilder.json")

PRODUCTION_MODES = frozenset({"prod", "production", "staging"})


@dataclass
class AssetBuilderConfig:
    """
    Typed asset pipeline settings.

    Directory values are relative to ``docroot`` and keep their trailing
    slash, so references like ``cache_dir + key`` are valid URL paths.
    """

    mode: str = "dev"
    docroot: str = "."
    base_url: str = "/"
    asset_dir: str = "assets/"
    js_dir: str = "js/"
    css_dir: str = "css/"
    less_dir: str = "css/less/"
    image_dir: str = "images/"
    cache_dir: str = "assets/cache/"
    deps_max_depth: int = 5
    html5: bool = True
    lessc: str = "lessc"
    lessc_options: List[str] = field(default_factory=list)
    manifest_name: str = "asset.cache"
    groups: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.deps_max_depth < 0:
            raise ConfigInvalidFault("deps_max_depth", "must be zero or positive")
        for name in ("asset_dir", "js_dir", "css_dir", "less_dir", "image_dir", "cache_dir"):
            value = getattr(self, name)
            if value and not value.endswith("/"):
                setattr(self, name, value + "/")

    @property
    def production(self) -> bool:
        return self.mode.lower() in PRODUCTION_MODES

    # ── Paths ────────────────────────────────────────────────────────

    @property
    def root(self) -> Path:
        return Path(self.docroot)

    def source_dir(self, kind: str) -> str:
        """Docroot-relative directory holding plain sources of *kind*."""
        sub = self.js_dir if kind == "js" else self.css_dir
        return self.asset_dir + sub

    @property
    def less_root(self) -> str:
        return self.asset_dir + self.less_dir

    @property
    def cache_root(self) -> Path:
        return self.root / self.cache_dir

    @property
    def manifest_path(self) -> Path:
        return self.cache_root / self.manifest_name

    def cache_ref(self, key: str) -> str:
        """Docroot-relative reference for a cache entry."""
        return str(PurePosixPath(self.cache_dir) / key)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "AB_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "AB_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources with proper merge strategy.

        Args:
            paths: List of config file paths (glob patterns supported).
                When omitted, ``assetbuilder.yaml`` (or ``.yml``/``.json``)
                in the working directory is used if present.
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if not paths:
            paths = [name for name in DEFAULT_CONFIG_FILES if Path(name).exists()][:1]

        for pattern in paths:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob

        matches = sorted(glob(pattern))
        if not matches and not any(ch in pattern for ch in "*?["):
            raise ConfigInvalidFault("config_file", f"'{pattern}' does not exist")

        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert AB_GROUPS__JS__APP__ENABLED to nested dict."""
        key = key[len(self.env_prefix):]

        # Split by double underscore for nested keys
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        parts = path.split(".")
        current = self.config_data

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def get_asset_config(self) -> AssetBuilderConfig:
        """
        Build the typed asset configuration.

        Root-level keys are used, with an ``assetbuilder`` section taking
        precedence when present.

        Raises:
            ConfigInvalidFault: If a value has the wrong type.
        """
        data = {k: v for k, v in self.config_data.items() if k != "assetbuilder"}
        section = self.config_data.get("assetbuilder")
        if isinstance(section, dict):
            data.update(section)
        return self._instantiate_dataclass(AssetBuilderConfig, data)

    def _instantiate_dataclass(self, config_class: type, data: dict):
        """Instantiate dataclass config with validation."""
        kwargs = {}
        hints = get_type_hints(config_class)

        for field_info in fields(config_class):
            name = field_info.name
            if name in data:
                value = data[name]
                expected = hints[name]
                if not self._check_type(value, expected):
                    raise ConfigInvalidFault(
                        name, f"expected {getattr(expected, '__name__', expected)}, got {type(value).__name__}"
                    )
                kwargs[name] = value
            elif field_info.default is not MISSING:
                kwargs[name] = field_info.default
            elif field_info.default_factory is not MISSING:
                kwargs[name] = field_info.default_factory()

        return config_class(**kwargs)

    def _check_type(self, value: Any, expected_type: Any) -> bool:
        """Basic type checking."""
        origin = get_origin(expected_type)
        if origin:
            return isinstance(value, origin)
        if expected_type is int and isinstance(value, bool):
            return False
        return isinstance(value, expected_type)

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()

