"""Prometheus collector serving the samples of a collection pass."""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Iterator

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, UnknownMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from ..catalog.descriptors import OutputDescriptor, ValueKind
from ..collector.base import MetricSample
from ..collector.cache import ACTIONS, PAGES
from ..collector.engine import CollectionEngine

logger = logging.getLogger(__name__)

_FAMILIES = {
    ValueKind.COUNTER: CounterMetricFamily,
    ValueKind.GAUGE: GaugeMetricFamily,
    ValueKind.UNTYPED: UnknownMetricFamily,
}


def _new_family(output: OutputDescriptor) -> Metric:
    return _FAMILIES[output.kind](output.fq_name, output.help)


def _sample_name(family: Metric) -> str:
    # CounterMetricFamily strips "_total" from the family name
    return family.name + "_total" if family.type == "counter" else family.name


def build_families(outputs: Iterable[OutputDescriptor], samples: Iterable[MetricSample]) -> list[Metric]:
    """Group samples into one family per metric name.

    Several descriptors may share a name with different fixed labels; the
    first descriptor seen for a name sets its help and type.
    """
    families: dict[str, Metric] = {}
    for output in outputs:
        if output.fq_name not in families:
            families[output.fq_name] = _new_family(output)

    for sample in samples:
        family = families.get(sample.name)
        if family is None:
            family = families[sample.name] = _new_family(sample.output)
        family.add_sample(_sample_name(family), sample.labels, sample.value)
    return list(families.values())


class FritzboxCollector(Collector):
    """Runs one collection pass per scrape.

    Scrapes are serialized; the result cache and the pass state are not
    meant to be shared between concurrent passes.
    """

    def __init__(self, engine: CollectionEngine) -> None:
        self._engine = engine
        self._pass_lock = threading.Lock()

    def describe(self) -> Iterator[Metric]:
        # descriptors only, registering must not trigger a pass
        yield from build_families(self._engine.catalog.outputs(), [])
        yield from self._self_metrics()

    def collect(self) -> Iterator[Metric]:
        with self._pass_lock:
            samples = self._engine.collect()
        logger.debug("Collected %d samples", len(samples))
        yield from build_families(self._engine.catalog.outputs(), samples)
        yield from self._self_metrics()

    def _self_metrics(self) -> Iterator[Metric]:
        stats = self._engine.stats
        cache = self._engine.cache

        errors = CounterMetricFamily(
            "fritzbox_exporter_collect_errors", "Number of collection errors."
        )
        errors.add_metric([], stats.action_errors)
        yield errors

        if self._engine.session is not None:
            page_errors = CounterMetricFamily(
                "fritzbox_exporter_page_collect_errors", "Number of page collection errors."
            )
            page_errors.add_metric([], stats.page_errors)
            yield page_errors

        namespaces = [ACTIONS] + ([PAGES] if self._engine.session is not None else [])
        cached = CounterMetricFamily(
            "fritzbox_exporter_results_cached", "Number of results taken from cache.", labels=["cache"]
        )
        loaded = CounterMetricFamily(
            "fritzbox_exporter_results_loaded", "Number of results loaded from fritzbox.", labels=["cache"]
        )
        for ns in namespaces:
            counters = cache.counters(ns)
            cached.add_metric([ns], counters.cached)
            loaded.add_metric([ns], counters.loaded)
        yield cached
        yield loaded


class SnapshotCollector(Collector):
    """Serves families that were already collected, without running a pass."""

    def __init__(self, families: Iterable[Metric]) -> None:
        self._families = list(families)

    def collect(self) -> Iterator[Metric]:
        return iter(self._families)
