"""Metric catalog: descriptor types and loading."""
