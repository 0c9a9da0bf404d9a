"""Decoding and row extraction for JSON data pages."""
