"""
Config system - Layered build configuration.

Merge order (later overrides earlier):
1. YAML config files
2. ``.env`` file
3. Environment variables (``KESTREL_*`` prefix, ``__`` separates nested keys)
4. Manual overrides

Example ``kestrel.yaml``:

    container:
      name: app.containers.AppContainer
      shared: true
      entry: app
      output: build/app_container.py
    sources:
      app: config/app.ctn
      db: config/db.ctn
    parameters:
      db.host: localhost
"""

from dataclasses import dataclass, field
from glob import glob
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type
import json
import logging
import os

import yaml
from dotenv import dotenv_values

from .faults import ConfigInvalidFault

if TYPE_CHECKING:
    from .container import Container

logger = logging.getLogger("kestrel.config")


@dataclass
class BuildConfig:
    """Everything needed to compile one container."""
    container_name: str = "KestrelContainer"
    shared: bool = True
    entry: Optional[str] = None
    sources: Dict[str, str] = field(default_factory=dict)
    parameters: Dict[str, Any] = field(default_factory=dict)
    override_repr: bool = True
    output: Optional[str] = None
    base_dir: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[str] = None) -> "BuildConfig":
        """
        Build and validate a config from merged loader data.

        Raises:
            ConfigInvalidFault: If a value has the wrong shape
        """
        container = data.get("container") or {}
        if not isinstance(container, dict):
            raise ConfigInvalidFault("container", "expected a mapping")

        sources = data.get("sources") or {}
        if not isinstance(sources, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in sources.items()
        ):
            raise ConfigInvalidFault("sources", "expected a mapping of unit names to file paths")

        parameters = data.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise ConfigInvalidFault("parameters", "expected a mapping")

        name = container.get("name", cls.container_name)
        if not isinstance(name, str) or not name:
            raise ConfigInvalidFault("container.name", "expected a non-empty string")

        for key in ("shared", "override_repr"):
            if key in container and not isinstance(container[key], bool):
                raise ConfigInvalidFault(f"container.{key}", "expected a boolean")

        entry = container.get("entry")
        if entry is not None:
            if not isinstance(entry, str):
                raise ConfigInvalidFault("container.entry", "expected a string")
            if entry not in sources:
                raise ConfigInvalidFault("container.entry", f"unit '{entry}' is not listed under sources")

        output = container.get("output")
        if output is not None and not isinstance(output, str):
            raise ConfigInvalidFault("container.output", "expected a file path")

        return cls(
            container_name=name,
            shared=container.get("shared", True),
            entry=entry,
            sources=dict(sources),
            parameters=dict(parameters),
            override_repr=container.get("override_repr", True),
            output=output,
            base_dir=base_dir,
        )

    def source_paths(self) -> Dict[str, Path]:
        """Source file paths, relative ones resolved against ``base_dir``."""
        base = Path(self.base_dir) if self.base_dir else None
        paths = {}
        for name, path in self.sources.items():
            p = Path(path)
            paths[name] = base / p if base is not None and not p.is_absolute() else p
        return paths


class ConfigLoader:
    """
    Loads and merges build configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files
    """

    def __init__(self, env_prefix: str = "KESTREL_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
        self.base_dir: Optional[str] = None

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "KESTREL_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Args:
            paths: Config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            environ: Environment mapping to read instead of ``os.environ``

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if not paths and Path("kestrel.yaml").exists():
            paths = ["kestrel.yaml"]

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from YAML or JSON files."""
        for path_str in sorted(glob(pattern)):
            path = Path(path_str)

            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                continue

            if self.base_dir is None:
                self.base_dir = str(path.resolve().parent)

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigInvalidFault(str(path), "top level must be a mapping")
        self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigInvalidFault(str(path), "top level must be a mapping")
        self._merge_dict(self.config_data, data)
        logger.debug("Loaded config file %s", path)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self, environ):
        """Load config from environment variables."""
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert KESTREL_CONTAINER__NAME to nested dict."""
        key = key[len(self.env_prefix):]

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
        current = self.config_data

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def build_config(self) -> BuildConfig:
        """Validate the merged data into a BuildConfig."""
        return BuildConfig.from_dict(self.config_data, base_dir=self.base_dir)

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()


def compile_from_config(config: BuildConfig) -> Type["Container"]:
    """
    Run the whole pipeline described by ``config``: interpret the entry unit
    (or every listed unit when there is no entry), compile the namespace and
    return the container class.  Writes the generated source to
    ``config.output`` when set.
    """
    from .builder import ContainerBuilder
    from .namespace import ContainerNamespace, PathSourceResolver

    namespace = ContainerNamespace(PathSourceResolver(config.source_paths()))

    if config.entry is not None:
        namespace.parse(config.entry)
    else:
        for name in config.sources:
            namespace.parse(name)

    builder = ContainerBuilder(config.container_name, override_repr=config.override_repr)
    builder.import_namespace(namespace, shared=config.shared)

    for name, value in config.parameters.items():
        builder.set_parameter(name, value)

    if config.output:
        path = Path(config.output)
        if config.base_dir and not path.is_absolute():
            path = Path(config.base_dir) / path
        builder.dump(path)

    logger.info(
        "Compiled container %s (%d services)", config.container_name, len(builder.services)
    )
    return builder.build()
