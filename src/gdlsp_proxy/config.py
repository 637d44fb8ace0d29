"""Configuration loading for gdlsp-proxy."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gdlsp_proxy.logging import Verbosity, resolve_log_file
from gdlsp_proxy.markup import DEFAULT_LANGUAGE
from gdlsp_proxy.transport.framing import DEFAULT_MAX_MESSAGE_SIZE

DEFAULT_CONFIG_FILES = (
    "gdlsp-proxy.yaml",
    ".gdlsp-proxy.yaml",
    "gdlsp-proxy.yml",
    ".gdlsp-proxy.yml",
)


class ConfigError(ValueError):
    """Configuration file is unreadable or has the wrong shape."""


@dataclass
class BackendConfig:
    """Where the language server listens."""

    host: str = "localhost"
    port: int = 6005
    connect_timeout: float = 5.0
    """Seconds to wait for the TCP connection before giving up."""


@dataclass
class LoggingConfig:
    """Log sink settings."""

    verbosity: Verbosity = Verbosity.NONE
    file: str | None = None
    queue_size: int = 10_000
    """Records buffered before new ones are dropped."""

    flush_every: int = 16
    """Records written between flushes (errors flush immediately)."""


@dataclass
class ShutdownConfig:
    """Shutdown timeout configuration."""

    drain_timeout: float = 2.0
    """Seconds to let the surviving loop finish after the other one ends."""


@dataclass
class TransformsConfig:
    """Which transforms are registered."""

    completion_snippets: bool = True
    documentation: bool = True


@dataclass
class Config:
    """gdlsp-proxy configuration."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)
    transforms: TransformsConfig = field(default_factory=TransformsConfig)
    language: str = DEFAULT_LANGUAGE
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    quiet: bool = False


def load_config(
    config_path: Path | None = None,
    *,
    host: str | None = None,
    port: int | None = None,
    verbosity: int | None = None,
    log_file: str | None = None,
    language: str | None = None,
    completion_snippets: bool | None = None,
    documentation: bool | None = None,
    quiet: bool | None = None,
) -> Config:
    """Load configuration from file, then apply CLI overrides.

    Raises:
        ConfigError: If an explicitly given file cannot be parsed.
    """
    config = Config()

    if config_path is None:
        for name in DEFAULT_CONFIG_FILES:
            if Path(name).exists():
                config_path = Path(name)
                break

    if config_path and config_path.exists():
        config = _load_yaml_config(config_path)

    # CLI overrides win over file values
    if host is not None:
        config.backend.host = host
    if port is not None:
        config.backend.port = port
    if verbosity is not None:
        config.logging.verbosity = Verbosity.from_count(verbosity)
    if log_file is not None:
        config.logging.file = log_file
    if language is not None:
        config.language = language
    if completion_snippets is not None:
        config.transforms.completion_snippets = completion_snippets
    if documentation is not None:
        config.transforms.documentation = documentation
    if quiet is not None:
        config.quiet = quiet

    config.logging.file = resolve_log_file(config.logging.file)
    return config


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(section).__name__}")
    return section


def _load_yaml_config(path: Path) -> Config:
    """Load config from YAML file."""
    try:
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    backend_data = _section(data, "backend")
    backend = BackendConfig(
        host=backend_data.get("host", "localhost"),
        port=int(backend_data.get("port", 6005)),
        connect_timeout=float(backend_data.get("connect_timeout", 5.0)),
    )

    logging_data = _section(data, "logging")
    logging_config = LoggingConfig(
        verbosity=Verbosity.from_count(int(logging_data.get("verbosity", 0))),
        file=logging_data.get("file"),
        queue_size=int(logging_data.get("queue_size", 10_000)),
        flush_every=int(logging_data.get("flush_every", 16)),
    )

    shutdown_data = _section(data, "shutdown")
    shutdown = ShutdownConfig(
        drain_timeout=float(shutdown_data.get("drain_timeout", 2.0)),
    )

    transforms_data = _section(data, "transforms")
    transforms = TransformsConfig(
        completion_snippets=bool(transforms_data.get("completion_snippets", True)),
        documentation=bool(transforms_data.get("documentation", True)),
    )

    return Config(
        backend=backend,
        logging=logging_config,
        shutdown=shutdown,
        transforms=transforms,
        language=data.get("language", DEFAULT_LANGUAGE),
        max_message_size=int(data.get("max_message_size", DEFAULT_MAX_MESSAGE_SIZE)),
        quiet=bool(data.get("quiet", False)),
    )
