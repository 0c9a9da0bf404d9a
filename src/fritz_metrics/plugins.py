"""Resolve protocol client factories named in the configuration."""

from __future__ import annotations

import importlib
from typing import Any

from .errors import ConfigError


def load_factory(ref: str) -> Any:
    """Import ``package.module:attr`` and return the attribute."""
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"invalid factory reference {ref!r}, expected 'module:attr'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"cannot import {module_name}: {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ConfigError(f"{module_name} has no attribute {attr}") from None
