"""Immutable metric descriptors built from the catalog files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

# Label name replaced by the polled device's host instead of a row field.
GATEWAY_LABEL = "gateway"

# Labels carrying host identity; their values are lowercased.
IDENTITY_LABELS = frozenset({"HostName", "MACAddress"})


class ValueKind(str, Enum):
    """Prometheus value type of an output series."""

    COUNTER = "counter"
    GAUGE = "gauge"
    UNTYPED = "untyped"


@dataclass(frozen=True)
class OutputDescriptor:
    """Name, help and label layout of the series a descriptor produces."""

    fq_name: str
    help: str
    var_labels: tuple[str, ...] = ()
    fixed_labels: tuple[tuple[str, str], ...] = ()
    kind: ValueKind = ValueKind.UNTYPED

    @property
    def label_names(self) -> tuple[str, ...]:
        """Output label names: lowercased variable labels, then fixed labels."""
        return tuple(name.lower() for name in self.var_labels) + tuple(k for k, _ in self.fixed_labels)

    @property
    def fixed_label_values(self) -> str:
        """Composite of the fixed label values, used in dedup keys."""
        return "".join(v + "," for _, v in self.fixed_labels)


@dataclass(frozen=True)
class ActionArgument:
    """Argument passed to an action call.

    ``value`` is a literal, or, when ``provider_action`` is set, the name of
    the provider result field holding the real value. With ``is_index`` the
    value is a count and the action is called once per index.
    """

    name: str
    value: str = ""
    is_index: bool = False
    provider_action: str = ""


@dataclass(frozen=True)
class ActionMetric:
    """Metric sourced from a service action call."""

    service: str
    action: str
    result: str
    output: OutputDescriptor
    ttl: int
    argument: ActionArgument | None = None
    ok_value: str = ""

    def __str__(self) -> str:
        return f"{self.service}.{self.action}"


@dataclass(frozen=True)
class PageMetric:
    """Metric sourced from a JSON data page."""

    path: str
    params: str
    result_path: str
    result_key: str
    output: OutputDescriptor
    ttl: int
    ok_value: str = ""

    @property
    def cache_key(self) -> str:
        return self.path + "_" + self.params

    def __str__(self) -> str:
        return f"{self.path}?{self.params} {self.result_path}.{self.result_key}"


@dataclass(frozen=True)
class LabelRename:
    """Replace page label values matching ``pattern`` with ``label``."""

    pattern: re.Pattern
    label: str


@dataclass(frozen=True)
class MetricCatalog:
    """All descriptors of one process, in catalog order."""

    actions: tuple[ActionMetric, ...] = ()
    pages: tuple[PageMetric, ...] = ()
    renames: tuple[LabelRename, ...] = field(default_factory=tuple)

    def outputs(self) -> list[OutputDescriptor]:
        """Output descriptors of every metric, actions first."""
        return [m.output for m in self.actions] + [m.output for m in self.pages]
