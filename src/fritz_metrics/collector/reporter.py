"""Turn raw result rows into samples: value coercion, labels, dedup."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..catalog.descriptors import GATEWAY_LABEL, IDENTITY_LABELS, OutputDescriptor
from ..errors import DuplicateSeriesError, ValueTypeError
from .base import MetricSample

logger = logging.getLogger(__name__)


def coerce_value(value: Any, ok_value: str) -> float:
    """Convert a raw action result value to a float.

    Booleans map to 1/0, strings to 1 when equal to *ok_value* and 0
    otherwise, non-negative integers to their value.
    """
    # bool first, it is an int subclass
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int) and value >= 0:
        return float(value)
    if isinstance(value, str):
        return 1.0 if value == ok_value else 0.0
    raise ValueTypeError(f"unsupported result value {value!r} ({type(value).__name__})")


class Reporter:
    """Resolves labels and emits samples, dropping duplicate series.

    One reporter lives for one collection pass; its dedup set is discarded
    with it.
    """

    def __init__(self, gateway: str) -> None:
        self._gateway = gateway
        self._seen: set[str] = set()
        self.samples: list[MetricSample] = []

    def resolve_labels(self, output: OutputDescriptor, row: Mapping[str, Any], source: object) -> tuple[str, ...]:
        values: list[str] = []
        for name in output.var_labels:
            if name == GATEWAY_LABEL:
                values.append(self._gateway)
                continue

            raw = row.get(name)
            if raw is None:
                logger.warning("%s has no result for label %s", source, name)
                raw = ""
            value = str(raw)
            # host names and MACs differ in case between sources
            if name in IDENTITY_LABELS:
                value = value.lower()
            values.append(value)
        return tuple(values)

    def report(self, output: OutputDescriptor, value: float, row: Mapping[str, Any], source: object) -> MetricSample:
        """Emit one sample. Raises :class:`DuplicateSeriesError` on a repeated series."""
        labels = self.resolve_labels(output, row, source)

        key = output.fq_name + ":" + output.fixed_label_values + ",".join(labels)
        if key in self._seen:
            raise DuplicateSeriesError(f"{source} reported before as: {key}")
        self._seen.add(key)

        sample = MetricSample(output=output, value=value, label_values=labels)
        self.samples.append(sample)
        return sample
