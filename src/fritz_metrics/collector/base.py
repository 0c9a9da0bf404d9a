"""Sample type and the interfaces of the protocol collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, Sequence

from ..catalog.descriptors import OutputDescriptor


@dataclass
class MetricSample:
    """A single series value produced by a collection pass."""

    output: OutputDescriptor
    value: float
    label_values: tuple[str, ...]

    @property
    def name(self) -> str:
        return self.output.fq_name

    @property
    def labels(self) -> dict[str, str]:
        """All labels of the series, variable and fixed."""
        values = self.label_values + tuple(v for _, v in self.output.fixed_labels)
        return dict(zip(self.output.label_names, values))


@dataclass(frozen=True)
class CallArgument:
    """Concrete argument of one action call."""

    name: str
    value: Any


class Action(Protocol):
    """A callable action of a discovered service.

    ``outputs`` lists the result fields the action declares. ``is_get_only``
    is true when the action takes no input arguments and returns at least
    one output, i.e. calling it cannot change the device state.
    """

    outputs: Sequence[str]
    is_get_only: bool

    def call(self, argument: CallArgument | None = None) -> Mapping[str, Any]:
        """Invoke the action. Raises on network or protocol failure."""
        ...


class Service(Protocol):
    actions: Mapping[str, Action]


ServiceTable = Mapping[str, Service]

# Performs service discovery; raises until the device answers.
Discovery = Callable[[], ServiceTable]


class PageLoader(Protocol):
    """Authenticated page fetcher.

    ``sid`` holds the session credential; setting it to ``""`` forces a new
    login on the next :meth:`load`.
    """

    sid: str

    def load(self, path: str, params: str) -> bytes:
        """Fetch a data page. Raises on failure."""
        ...
