"""Prometheus exporter for FRITZ!Box routers."""

__version__ = "0.4.0"
