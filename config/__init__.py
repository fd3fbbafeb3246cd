"""
Configuration Module for the Postal Manifest System.

Settings live in ``config/settings.yaml``. Operational knobs (retry budget,
recognition endpoint, output locations, logging) are read from there
rather than hard-coded in the pipeline modules.

Any key can be overridden from the environment: strip the
``POSTAL_MANIFEST__`` prefix, split the rest on double underscores and
lower-case it, e.g. ``POSTAL_MANIFEST__RETRY__MAX_ATTEMPTS=2`` sets
``retry.max_attempts`` to the integer 2.
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml


ENV_PREFIX = "POSTAL_MANIFEST__"
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_SETTINGS = Path(__file__).resolve().parent / "settings.yaml"


def _env_overrides(environ=None) -> Iterator[Tuple[List[str], Any]]:
    """Yield (key path, parsed value) for every prefixed environment variable."""
    environ = os.environ if environ is None else environ
    for name, raw_value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        keys = [part.lower() for part in name[len(ENV_PREFIX):].split('__') if part]
        if keys:
            yield keys, yaml.safe_load(raw_value)


class ConfigurationManager:
    """
    Process-wide settings for the postal manifest system.

    One instance is shared by every module; construct it with a path once
    at startup (``main.py --config``) and read values anywhere through
    ``get_config``.

    Attributes:
        config_path (Path): Settings file that was loaded.

    Example:
        >>> settings = ConfigurationManager()
        >>> settings.get("retry.max_attempts")
        4
        >>> settings.get("recognition.model")
        'gemini-2.0-flash'
    """

    _instance: Optional['ConfigurationManager'] = None

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._ready = False
            cls._instance = instance
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        if self._ready:
            return

        self.config_path = Path(config_path) if config_path else DEFAULT_SETTINGS
        self._settings: Dict[str, Any] = {}
        self._load_config()
        self._ready = True

    def _load_config(self) -> None:
        """
        Read the settings file, overlay the environment, anchor paths.

        Raises:
            FileNotFoundError: If the settings file is missing.
            yaml.YAMLError: If it is not valid YAML.
        """
        if not self.config_path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            settings = yaml.safe_load(f) or {}

        for keys, value in _env_overrides():
            node = settings
            for key in keys[:-1]:
                if not isinstance(node.get(key), dict):
                    node[key] = {}
                node = node[key]
            node[keys[-1]] = value

        self._settings = settings
        self._anchor_paths()

    def _anchor_paths(self) -> None:
        """Make relative ``paths.*`` entries absolute under the project root."""
        paths = self._settings.get('paths')
        if not isinstance(paths, dict):
            return
        for name, location in paths.items():
            if location and not Path(location).is_absolute():
                paths[name] = str(PROJECT_ROOT / location)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key such as ``"output.excel.enabled"``.

        Returns ``default`` when any segment is missing.
        """
        node: Any = self._settings
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    @classmethod
    def reset(cls) -> None:
        """Drop the shared instance; the next access loads settings afresh."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """
    Read one setting from the shared configuration.

    Example:
        >>> get_config("paths.output_dir")
        '/srv/postal-manifest/outputs'
    """
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config', 'ENV_PREFIX', 'PROJECT_ROOT']
