"""Collection engine: one pass over the catalog.

A pass walks the action metrics in catalog order, then the page metrics.
Every failure is confined to the descriptor (or single indexed call) it
happened in: it is logged, counted and skipped, and the pass goes on.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Mapping

from ..catalog.descriptors import ActionMetric, MetricCatalog, PageMetric
from ..errors import ExtractionError, FetchError, FritzMetricsError, ResolutionError
from ..pages.extract import decode_page, extract_rows
from .base import CallArgument, MetricSample, ServiceTable
from .bootstrap import BootstrapGuard
from .cache import ACTIONS, PAGES, ResultCache
from .reporter import Reporter, coerce_value
from .session import SessionReauthCoordinator

logger = logging.getLogger(__name__)

_INDEX_COUNT = re.compile(r"[+-]?[0-9]+")


@dataclass
class CollectionStats:
    """Error counters, monotonic over the process lifetime."""

    action_errors: int = 0
    page_errors: int = 0


class CollectionEngine:
    """Runs collection passes for a catalog against the discovered services."""

    def __init__(
        self,
        catalog: MetricCatalog,
        bootstrap: BootstrapGuard,
        gateway: str,
        cache: ResultCache | None = None,
        session: SessionReauthCoordinator | None = None,
    ) -> None:
        self.catalog = catalog
        self.bootstrap = bootstrap
        self.gateway = gateway
        self.cache = cache or ResultCache()
        self.session = session
        self.stats = CollectionStats()
        self._stats_lock = threading.Lock()

    def _action_error(self, metric: ActionMetric, exc: Exception) -> None:
        logger.warning("Error collecting %s: %s", metric, exc)
        with self._stats_lock:
            self.stats.action_errors += 1

    def _page_error(self, metric: PageMetric, exc: Exception) -> None:
        logger.warning("Error collecting %s: %s", metric, exc)
        with self._stats_lock:
            self.stats.page_errors += 1

    # -- action family -------------------------------------------------

    def call_action(
        self,
        services: ServiceTable,
        metric: ActionMetric,
        action_name: str,
        argument: CallArgument | None = None,
    ) -> Mapping[str, Any]:
        """Return the cached or freshly loaded result of one action call."""
        key = metric.service + "|" + action_name
        if argument is not None:
            key += "|" + argument.name + "|" + str(argument.value)

        def fetch() -> Mapping[str, Any]:
            service = services.get(metric.service)
            if service is None:
                raise ResolutionError(f"service {metric.service} not found")
            action = service.actions.get(action_name)
            if action is None:
                raise ResolutionError(f"action {action_name} not found in service {metric.service}")
            try:
                return action.call(argument)
            except FritzMetricsError:
                raise
            except Exception as exc:
                raise FetchError(f"{metric.service}.{action_name}: {exc}") from exc

        result, _ = self.cache.fetch_or_return(ACTIONS, key, metric.ttl, fetch)
        return result

    def resolve_argument(self, services: ServiceTable, metric: ActionMetric) -> Any:
        """Value of the metric's argument, following a provider action if set."""
        arg = metric.argument
        assert arg is not None
        if not arg.provider_action:
            return arg.value

        provided = self.call_action(services, metric, arg.provider_action)
        # for provider actions the value names the provider's result field
        if arg.value not in provided:
            raise ResolutionError(
                f"provider action {arg.provider_action} for {metric} has no result {arg.value}"
            )
        return provided[arg.value]

    def _report_action(self, reporter: Reporter, metric: ActionMetric, result: Mapping[str, Any]) -> None:
        if metric.result not in result:
            raise ResolutionError(f"{metric} has no result {metric.result}")
        value = coerce_value(result[metric.result], metric.ok_value)
        reporter.report(metric.output, value, result, metric)

    def collect_action(self, services: ServiceTable, metric: ActionMetric, reporter: Reporter) -> None:
        arg = metric.argument
        if arg is None:
            result = self.call_action(services, metric, metric.action)
            self._report_action(reporter, metric, result)
            return

        value = self.resolve_argument(services, metric)
        if not arg.is_index:
            result = self.call_action(services, metric, metric.action, CallArgument(arg.name, value))
            self._report_action(reporter, metric, result)
            return

        # plain decimal only, no whitespace or digit separators
        if isinstance(value, bool) or not _INDEX_COUNT.fullmatch(str(value)):
            raise ResolutionError(f"index count {value!r} for {metric} is not a number")
        count = int(str(value))
        if count < 0:
            raise ResolutionError(f"index count {count} for {metric} is negative")

        for index in range(count):
            try:
                result = self.call_action(services, metric, metric.action, CallArgument(arg.name, index))
                self._report_action(reporter, metric, result)
            except Exception as exc:
                self._action_error(metric, exc)

    # -- page family ---------------------------------------------------

    def load_page(self, metric: PageMetric) -> dict[str, Any]:
        """Return the decoded page for *metric*, from cache when fresh."""
        assert self.session is not None

        def fetch() -> dict[str, Any]:
            try:
                body = self.session.load(metric.path, metric.params)
            except Exception as exc:
                raise FetchError(f"loading {metric.path}: {exc}") from exc
            return decode_page(body)

        page, _ = self.cache.fetch_or_return(PAGES, metric.cache_key, metric.ttl, fetch)
        return page

    def collect_page(self, metric: PageMetric, reporter: Reporter) -> None:
        page = self.load_page(metric)
        try:
            rows = extract_rows(
                page,
                metric.result_path,
                metric.result_key,
                metric.ok_value,
                metric.output.var_labels,
                self.catalog.renames,
            )
        except ExtractionError:
            # don't keep a page the metric cannot be read from
            self.cache.invalidate(PAGES, metric.cache_key)
            raise

        for row in rows:
            try:
                reporter.report(metric.output, row.value, row.labels, metric)
            except FritzMetricsError as exc:
                self._page_error(metric, exc)

    # -- pass ----------------------------------------------------------

    def collect(self) -> list[MetricSample]:
        """Run one collection pass and return the samples it produced."""
        services = self.bootstrap.services
        if services is None:
            logger.debug("Services not loaded yet, skipping collection")
            return []

        reporter = Reporter(self.gateway)

        for metric in self.catalog.actions:
            try:
                self.collect_action(services, metric, reporter)
            except Exception as exc:
                self._action_error(metric, exc)

        if self.session is not None:
            for metric in self.catalog.pages:
                try:
                    self.collect_page(metric, reporter)
                except Exception as exc:
                    self._page_error(metric, exc)

        return reporter.samples
