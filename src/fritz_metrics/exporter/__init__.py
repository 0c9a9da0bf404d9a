"""Exporters that publish collected samples."""
