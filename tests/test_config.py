"""Tests for the configuration module."""

import os
import tempfile

import pytest
import yaml

from fritz_metrics.config import FritzMetricsConfig, ServerConfig, load_config
from fritz_metrics.errors import ConfigError


def test_load_config_defaults():
    """Loading from a non-existent file returns defaults."""
    cfg = load_config("/tmp/nonexistent_fritz_metrics.yaml")
    assert isinstance(cfg, FritzMetricsConfig)
    assert cfg.gateway.url == "http://fritz.box:49000"
    assert cfg.gateway.host == "fritz.box"
    assert cfg.gateway.verify_tls is False
    assert cfg.catalog.min_cache_ttl == 30
    assert cfg.catalog.pages_enabled is True
    assert cfg.bootstrap.retry_seconds == 60.0
    assert cfg.server.split_address() == ("127.0.0.1", 9042)


def test_load_config_from_yaml():
    """Loading from a YAML file populates values and ignores unknown keys."""
    data = {
        "gateway": {"url": "https://192.168.178.1:49443", "username": "monitor", "colour": "red"},
        "catalog": {"metrics_file": "/etc/fritz/metrics.json", "pages_enabled": False},
        "server": {"listen_address": "0.0.0.0:9100"},
    }
    with tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False) as fh:
        yaml.dump(data, fh)
        path = fh.name

    try:
        cfg = load_config(path)
        assert cfg.gateway.host == "192.168.178.1"
        assert cfg.gateway.username == "monitor"
        assert cfg.catalog.metrics_file == "/etc/fritz/metrics.json"
        assert cfg.catalog.pages_enabled is False
        assert cfg.server.split_address() == ("0.0.0.0", 9100)
    finally:
        os.unlink(path)


def test_env_override(monkeypatch, tmp_path):
    """Environment variables override YAML values."""
    path = tmp_path / "fritz_metrics.yaml"
    path.write_text(yaml.dump({"gateway": {"url": "http://fritz.box:49000"}}))

    monkeypatch.setenv("FRITZ_METRICS_GATEWAY_URL", "http://router.lan:49000")
    monkeypatch.setenv("FRITZ_METRICS_PAGES_ENABLED", "false")
    monkeypatch.setenv("FRITZ_METRICS_MIN_CACHE_TTL", "120")
    monkeypatch.setenv("FRITZ_METRICS_VERIFY_TLS", "yes")
    cfg = load_config(path)
    assert cfg.gateway.host == "router.lan"
    assert cfg.catalog.pages_enabled is False
    assert cfg.catalog.min_cache_ttl == 120
    assert cfg.gateway.verify_tls is True


def test_env_override_invalid_number(monkeypatch, tmp_path):
    monkeypatch.setenv("FRITZ_METRICS_MIN_CACHE_TTL", "half a minute")
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")


def test_invalid_section(tmp_path):
    path = tmp_path / "fritz_metrics.yaml"
    path.write_text("gateway: just-a-string\n")
    with pytest.raises(ConfigError):
        load_config(path)


@pytest.mark.parametrize("address", ["9042", "localhost:", "localhost:http"])
def test_invalid_listen_address(address):
    with pytest.raises(ConfigError):
        ServerConfig(listen_address=address).split_address()
