"""Configuration loading and validation for fritz_metrics."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from .errors import ConfigError


@dataclass
class GatewayConfig:
    """Connection settings for the polled router."""

    url: str = "http://fritz.box:49000"
    ui_url: str = "http://fritz.box"
    username: str = ""
    password: str = ""
    verify_tls: bool = False

    @property
    def host(self) -> str:
        """Host name of :attr:`url`, reported as the ``gateway`` label."""
        return urlsplit(self.url).hostname or ""


@dataclass
class CatalogConfig:
    """Metric definition files."""

    metrics_file: str = "metrics.json"
    page_metrics_file: str = "metrics-lua.json"
    pages_enabled: bool = True
    min_cache_ttl: int = 30


@dataclass
class BootstrapConfig:
    """Service discovery settings."""

    retry_seconds: float = 60.0


@dataclass
class ServerConfig:
    """HTTP endpoint settings."""

    listen_address: str = "127.0.0.1:9042"

    def split_address(self) -> tuple[str, int]:
        host, sep, port = self.listen_address.rpartition(":")
        if not sep or not port.isdigit():
            raise ConfigError(f"invalid listen address {self.listen_address!r}")
        return host, int(port)


@dataclass
class CollaboratorConfig:
    """Import paths (``module:attr``) of the protocol client factories."""

    discovery: str = ""
    page_loader: str = ""


@dataclass
class FritzMetricsConfig:
    """Top-level fritz_metrics configuration."""

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    bootstrap: BootstrapConfig = field(default_factory=BootstrapConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    collaborators: CollaboratorConfig = field(default_factory=CollaboratorConfig)


_ENV_MAP = {
    "FRITZ_METRICS_GATEWAY_URL": ("gateway", "url"),
    "FRITZ_METRICS_GATEWAY_UI_URL": ("gateway", "ui_url"),
    "FRITZ_METRICS_USERNAME": ("gateway", "username"),
    "FRITZ_METRICS_PASSWORD": ("gateway", "password"),
    "FRITZ_METRICS_VERIFY_TLS": ("gateway", "verify_tls"),
    "FRITZ_METRICS_METRICS_FILE": ("catalog", "metrics_file"),
    "FRITZ_METRICS_PAGE_METRICS_FILE": ("catalog", "page_metrics_file"),
    "FRITZ_METRICS_PAGES_ENABLED": ("catalog", "pages_enabled"),
    "FRITZ_METRICS_MIN_CACHE_TTL": ("catalog", "min_cache_ttl"),
    "FRITZ_METRICS_LISTEN_ADDRESS": ("server", "listen_address"),
}

_BOOL_KEYS = {"verify_tls", "pages_enabled"}
_INT_KEYS = {"min_cache_ttl"}


def _coerce(key: str, value: str) -> Any:
    if key in _BOOL_KEYS:
        return value.strip().lower() in ("1", "true", "yes", "on")
    if key in _INT_KEYS:
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using the FRITZ_METRICS_ prefix."""
    for env_key, path in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                obj = obj.setdefault(part, {})
            obj[path[-1]] = _coerce(path[-1], value)
    return data


def _section(cls: type, data: Any) -> Any:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"section for {cls.__name__} must be a mapping")
    return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def _dict_to_config(data: dict[str, Any]) -> FritzMetricsConfig:
    """Convert a raw dictionary to a FritzMetricsConfig dataclass."""
    return FritzMetricsConfig(
        gateway=_section(GatewayConfig, data.get("gateway")),
        catalog=_section(CatalogConfig, data.get("catalog")),
        bootstrap=_section(BootstrapConfig, data.get("bootstrap")),
        server=_section(ServerConfig, data.get("server")),
        collaborators=_section(CollaboratorConfig, data.get("collaborators")),
    )


def load_config(path: str | Path | None = None) -> FritzMetricsConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``fritz_metrics.yaml`` in the current directory if *path* is None.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("fritz_metrics.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            try:
                loaded = yaml.safe_load(fh)
            except yaml.YAMLError as exc:
                raise ConfigError(f"cannot parse {path}: {exc}") from exc
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return _dict_to_config(data)
