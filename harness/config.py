"""Configuration management for harness."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console

from .binary import DEFAULT_DIRECTORY, DEFAULT_VERSION_CMD, Binary
from .errors import ConfigError
from .origin import ArchiveDownload, DirectDownload, Origin, PackageInstall

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "harness.yaml"
CONFIG_ENV = "HARNESS_CONFIG"

_BINARY_FIELDS = {
    "version",
    "origin",
    "os_mapping",
    "arch_mapping",
    "archive_extensions",
    "version_cmd",
}
_MAPPING_FIELDS = ("os_mapping", "arch_mapping", "archive_extensions")


def _origin_from_dict(name: str, origin: Any) -> Origin:
    """Build the origin declared for a binary."""
    if not isinstance(origin, dict):
        msg = f"binary {name} must declare its origin as a mapping"
        raise ConfigError(msg)

    kind = origin.get("type")
    if kind == "archive":
        _require(name, origin, "url")
        files = origin.get("files") or {}
        if not isinstance(files, dict):
            msg = f"binary {name} must declare archive files as a mapping"
            raise ConfigError(msg)
        return ArchiveDownload(
            url=str(origin["url"]),
            files={str(k): str(v) for k, v in files.items()},
        )
    if kind == "download":
        _require(name, origin, "url")
        return DirectDownload(url=str(origin["url"]))
    if kind == "package":
        _require(name, origin, "package")
        kwargs: dict[str, Any] = {}
        if "installer" in origin:
            installer = origin["installer"]
            if isinstance(installer, str):
                installer = installer.split()
            kwargs["installer"] = tuple(str(arg) for arg in installer)
        if "root_env" in origin:
            kwargs["root_env"] = str(origin["root_env"])
        return PackageInstall(package=str(origin["package"]), **kwargs)

    msg = f"binary {name} has unknown origin type {kind!r} (expected archive, download or package)"
    raise ConfigError(msg)


def _require(name: str, origin: dict[str, Any], key: str) -> None:
    if not origin.get(key):
        msg = f"binary {name} is missing required origin field '{key}'"
        raise ConfigError(msg)


def _string_mapping(mapping: dict[Any, Any] | None) -> dict[str, str] | None:
    """Turn the keys and values YAML parsed as numbers back into strings."""
    if mapping is None:
        return None
    return {str(k): str(v) for k, v in mapping.items()}


@dataclass
class HarnessConfig:
    """Configuration for harness."""

    directory: Path = field(default_factory=lambda: Path(DEFAULT_DIRECTORY))
    binaries: dict[str, dict[str, Any]] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate the configuration."""
        for name, binary_config in self.binaries.items():
            self._validate_binary_config(name, binary_config)

    def _validate_binary_config(self, name: str, binary_config: Any) -> None:
        """Validate a single binary configuration."""
        if not isinstance(binary_config, dict):
            msg = f"binary {name} must be a mapping"
            raise ConfigError(msg)

        unknown = set(binary_config) - _BINARY_FIELDS
        if unknown:
            console.print(
                f"⚠️ [yellow]Binary {name} has unknown fields: {', '.join(sorted(unknown))}[/yellow]",
            )

        if not binary_config.get("version"):
            msg = f"binary {name} is missing required field 'version'"
            raise ConfigError(msg)

        # YAML reads unquoted versions like 1.10 as numbers
        if not isinstance(binary_config["version"], str):
            msg = f"binary {name} field 'version' must be a string, quote it in YAML"
            raise ConfigError(msg)

        if "version_cmd" in binary_config and not isinstance(binary_config["version_cmd"], str):
            msg = f"binary {name} field 'version_cmd' must be a string"
            raise ConfigError(msg)

        for _field in _MAPPING_FIELDS:
            value = binary_config.get(_field)
            if value is not None and not isinstance(value, dict):
                msg = f"binary {name} field '{_field}' must be a mapping"
                raise ConfigError(msg)

        _origin_from_dict(name, binary_config.get("origin"))

    def binary(self, name: str) -> Binary:
        """Build the binary declared under ``name``."""
        if name not in self.binaries:
            msg = f"unknown binary: {name}"
            raise ConfigError(msg)

        binary_config = self.binaries[name]
        return Binary(
            name,
            binary_config["version"],
            _origin_from_dict(name, binary_config["origin"]),
            directory=str(self.directory),
            os_mapping=_string_mapping(binary_config.get("os_mapping")),
            arch_mapping=_string_mapping(binary_config.get("arch_mapping")),
            archive_extensions=_string_mapping(binary_config.get("archive_extensions")),
            version_cmd=binary_config.get("version_cmd", DEFAULT_VERSION_CMD),
        )

    def all_binaries(self) -> list[Binary]:
        """Build every declared binary, in declaration order."""
        return [self.binary(name) for name in self.binaries]

    @classmethod
    def from_dict(cls, config_data: dict[str, Any]) -> HarnessConfig:
        """Build and validate a configuration from parsed YAML."""
        if not isinstance(config_data, dict):
            msg = "configuration must be a mapping"
            raise ConfigError(msg)

        directory = config_data.get("directory", DEFAULT_DIRECTORY)
        binaries = config_data.get("binaries") or {}
        if not isinstance(binaries, dict):
            msg = "'binaries' must be a mapping of binary names to their configuration"
            raise ConfigError(msg)

        config = cls(
            directory=Path(os.path.expanduser(str(directory))),
            binaries=binaries,
        )
        config.validate()
        return config

    @classmethod
    def load_from_file(cls, config_path: str | Path | None = None) -> HarnessConfig:
        """Load configuration from YAML file."""
        if not config_path:
            config_path = os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_FILE)

        try:
            with open(config_path) as file:
                config_data = yaml.safe_load(file)
        except FileNotFoundError:
            console.print(
                f"⚠️ [yellow]Configuration file not found: {config_path}[/yellow]",
            )
            return cls()
        except yaml.YAMLError as e:
            msg = f"invalid YAML in configuration file {config_path}: {e}"
            raise ConfigError(msg) from e

        logger.debug("loaded configuration from %s", config_path)
        return cls.from_dict(config_data or {})
