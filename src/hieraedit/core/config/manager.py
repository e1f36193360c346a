"""
hieraedit configuration management (YAML layers + environment overrides).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import jsonschema
import yaml

from hieraedit.core.exceptions import ConfigError
from hieraedit.core.utils.io import read_yaml
from hieraedit.core.utils.merge import deep_merge
from hieraedit.data import get_data_path, read_yaml as read_bundled_yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "HIERAEDIT_"
PROJECT_CONFIG_DIRNAME = ".hieraedit"
# HIERAEDIT_* variables read by the CLI itself, not configuration keys.
RESERVED_ENV_KEYS = frozenset({"WORKSPACE"})


def iter_yaml_files(dir_path: Path) -> List[Path]:
    """Return ``*.yaml``/``*.yml`` files in ``dir_path`` in deterministic order.

    When both ``<name>.yaml`` and ``<name>.yml`` exist only ``.yaml`` is kept.
    """
    d = Path(dir_path)
    if not d.exists():
        return []
    yml_files = {p.stem: p for p in d.glob("*.yml")}
    yaml_files = {p.stem: p for p in d.glob("*.yaml")}

    out: List[Path] = []
    for stem in sorted(set(yml_files.keys()) | set(yaml_files.keys())):
        preferred = yaml_files.get(stem) or yml_files.get(stem)
        if preferred is not None:
            out.append(preferred)
    return out


class ConfigManager:
    """Load, merge, and validate hieraedit configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: HIERAEDIT_* (``__`` separates nested keys)
    2. Workspace config: <workspace>/.hieraedit/config/*.yaml (alphabetical order)
    3. Bundled defaults: hieraedit.data/config/*.yaml (alphabetical order)
    """

    def __init__(self, workspace_root: Optional[Path] = None) -> None:
        self.workspace_root = Path(workspace_root).resolve() if workspace_root else None
        self.core_config_dir = get_data_path("config")

    @property
    def workspace_config_dir(self) -> Optional[Path]:
        if self.workspace_root is None:
            return None
        return self.workspace_root / PROJECT_CONFIG_DIRNAME / "config"

    # ---------- environment overrides ----------

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str) -> List[str]:
        segs = raw.split("__")
        if any(seg == "" for seg in segs):
            raise ConfigError(f"Malformed {ENV_PREFIX}* key: empty segment in '{raw}'.")
        return [seg.lower() for seg in segs]

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX):
                continue
            raw = key[len(ENV_PREFIX):]
            if not raw or raw.upper() in RESERVED_ENV_KEYS:
                continue
            yield self._parse_env_key(raw), self._coerce_type(os.environ[key])

    def _set_nested(self, root: Dict[str, Any], path: List[str], value: Any) -> None:
        cur: Dict[str, Any] = root
        for part in path[:-1]:
            nxt = cur.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[part] = nxt
            cur = nxt
        cur[path[-1]] = value

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, typed_value in self._iter_env_overrides():
            self._set_nested(cfg, path, typed_value)

    # ---------- loading ----------

    def _load_directory(self, directory: Optional[Path], cfg: Dict[str, Any]) -> Dict[str, Any]:
        if directory is None or not directory.exists():
            return cfg
        for path in iter_yaml_files(directory):
            # Fail closed: configuration must never silently ignore invalid YAML.
            try:
                data = read_yaml(path, default={}, raise_on_error=True) or {}
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"Cannot read configuration file {path}: {exc}", context={"path": str(path)}) from exc
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration file must be a mapping: {path}")
            cfg = deep_merge(cfg, data)
        return cfg

    def validate_schema(self, config: Dict[str, Any], schema_name: str = "config.schema.yaml") -> None:
        schema = read_bundled_yaml("schemas", schema_name)
        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.ValidationError as exc:
            location = ".".join(str(p) for p in exc.absolute_path) or "<root>"
            raise ConfigError(
                f"Invalid configuration at '{location}': {exc.message}",
                context={"path": location},
            ) from exc

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Load and merge configuration from all layers.

        Args:
            validate: If True, validate against the bundled JSON schema

        Returns:
            Merged configuration dictionary
        """
        cfg: Dict[str, Any] = {}
        cfg = self._load_directory(self.core_config_dir, cfg)
        cfg = self._load_directory(self.workspace_config_dir, cfg)
        self.apply_env_overrides(cfg)

        if validate:
            self.validate_schema(cfg)
        return cfg

    def get(self, dotted_key: str, default: Any = None, *, config: Optional[Dict[str, Any]] = None) -> Any:
        """Return a nested value by dotted path (``compile.batch_size``)."""
        cur: Union[Dict[str, Any], Any] = config if config is not None else self.load_config()
        for part in dotted_key.split("."):
            if not isinstance(cur, dict) or part not in cur:
                return default
            cur = cur[part]
        return cur


__all__ = ["ConfigManager", "iter_yaml_files", "ENV_PREFIX", "PROJECT_CONFIG_DIRNAME"]
