"""
Game balance configuration with YAML backing.

Features:
- Hierarchical config access with dot notation (e.g., 'combat.difficulty.easy_below')
- YAML files under the balance config directory merged into one tree
- Instance-based: each engine receives the manager it reads from
- Graceful degradation to code defaults for any missing key
- Lookup metrics for observability

Every tunable read by the engines has a default at its call site, so an
empty manager (``ConfigManager()``) yields the stock balance.
"""

from __future__ import annotations

import copy
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from animarc.core.config.config import Config
from animarc.core.exceptions import ConfigurationError
from animarc.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConfigManager:
    """
    Balance configuration tree with dot-notation lookup.

    Example:
        >>> config = ConfigManager.from_directory(Path("config"))
        >>> config.get("combat.win_probability.steepness", default=4.0)
        4.0
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(data or {}))
        self._metrics: Dict[str, Any] = {
            "gets": 0,
            "hits": 0,
            "fallback_to_defaults": 0,
            "total_get_time_ms": 0.0,
        }

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def load(cls) -> "ConfigManager":
        """Load the balance files from ``Config.BALANCE_CONFIG_DIR``."""
        return cls.from_directory(Config.BALANCE_CONFIG_DIR)

    @classmethod
    def from_directory(cls, config_dir: Union[str, Path]) -> "ConfigManager":
        """
        Recursively load all YAML files under ``config_dir``.

        Files are merged in sorted path order; nested mappings are merged key
        by key so two files may both contribute to the same top-level section.
        A missing directory yields an empty manager (code defaults apply).

        Raises:
            ConfigurationError: If a file is not valid YAML or its root is not a mapping.
        """
        root = Path(config_dir)
        if not root.exists():
            logger.warning(
                "Balance config directory not found, using code defaults",
                extra={"config_dir": str(root)},
            )
            return cls()

        yaml_files = sorted(list(root.rglob("*.yaml")) + list(root.rglob("*.yml")))
        merged: Dict[str, Any] = {}

        for yaml_file in yaml_files:
            try:
                with open(yaml_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    str(yaml_file.relative_to(root)), f"Invalid YAML: {exc}"
                ) from exc

            if data is None:
                continue
            if not isinstance(data, dict):
                raise ConfigurationError(
                    str(yaml_file.relative_to(root)),
                    "Top-level YAML value must be a mapping",
                )

            _deep_merge(merged, data)
            logger.debug(
                "Loaded YAML config",
                extra={"file": str(yaml_file.relative_to(root))},
            )

        logger.info(
            "Loaded balance configuration",
            extra={"yaml_count": len(yaml_files), "top_level_keys": sorted(merged)},
        )
        return cls(merged)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve config value by dot notation path.

        Args:
            key: Dot-notation config path (e.g., 'raids.variance')
            default: Value returned when any segment of the path is missing

        Returns:
            Config value or default. Explicit falsy values (0, False) are returned
            as stored.
        """
        start_time = time.perf_counter()
        self._metrics["gets"] += 1

        value: Any = self._data
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                value = _MISSING
                break

        self._metrics["total_get_time_ms"] += (time.perf_counter() - start_time) * 1000

        if value is _MISSING or value is None:
            self._metrics["fallback_to_defaults"] += 1
            return default

        self._metrics["hits"] += 1
        return value

    def section(self, key: str) -> Dict[str, Any]:
        """Return a copy of a nested mapping, or an empty dict."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            raise ConfigurationError(key, "Expected a mapping")
        return copy.deepcopy(value)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "ConfigManager":
        """
        Return a new manager with dot-notation overrides applied.

        Example:
            >>> tuned = config.with_overrides({"raids.variance": 0.0})
        """
        data = copy.deepcopy(self._data)
        for dotted, value in overrides.items():
            node = data
            parts = dotted.split(".")
            for part in parts[:-1]:
                node = node.setdefault(part, {})
                if not isinstance(node, dict):
                    raise ConfigurationError(dotted, f"'{part}' is not a mapping")
            node[parts[-1]] = value
        return ConfigManager(data)

    def get_all_keys(self) -> List[str]:
        """Dot-notation paths of every leaf value."""
        keys: List[str] = []

        def walk(prefix: str, node: Any) -> None:
            if isinstance(node, dict):
                for k, v in node.items():
                    walk(f"{prefix}.{k}" if prefix else str(k), v)
            else:
                keys.append(prefix)

        walk("", self._data)
        return sorted(keys)

    # =========================================================================
    # METRICS
    # =========================================================================

    def get_metrics(self) -> Dict[str, Any]:
        gets = self._metrics["gets"]
        return {
            "gets": gets,
            "hits": self._metrics["hits"],
            "fallback_to_defaults": self._metrics["fallback_to_defaults"],
            "hit_rate": round(self._metrics["hits"] / gets * 100, 2) if gets else 0.0,
            "avg_get_time_ms": (
                round(self._metrics["total_get_time_ms"] / gets, 4) if gets else 0.0
            ),
        }


def _deep_merge(target: Dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
