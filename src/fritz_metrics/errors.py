"""Exception hierarchy for fritz_metrics."""

from __future__ import annotations


class FritzMetricsError(Exception):
    """Base class for all errors raised by fritz_metrics."""


class ConfigError(FritzMetricsError):
    """Malformed configuration or metric catalog. Fatal at startup."""


class ResolutionError(FritzMetricsError):
    """A descriptor could not be turned into a concrete call.

    Raised for unknown services or actions, a provider result lacking the
    referenced field, or an index count that is not a number.
    """


class FetchError(FritzMetricsError):
    """Network or protocol failure reported by a collaborator."""


class DecodeError(FritzMetricsError):
    """A page was fetched but its payload could not be decoded."""


class ExtractionError(DecodeError):
    """A decoded page does not contain the configured result path, key or labels."""


class ValueTypeError(FritzMetricsError):
    """A raw result value has a type that cannot be converted to a float."""


class DuplicateSeriesError(FritzMetricsError):
    """A series with the same name and label values was already reported in this pass."""
