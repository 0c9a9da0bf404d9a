"""Shared fakes for the protocol collaborators."""

from __future__ import annotations

import json

import pytest

from fritz_metrics.catalog.descriptors import MetricCatalog
from fritz_metrics.catalog.loader import parse_action_metrics, parse_page_metrics
from fritz_metrics.collector.bootstrap import BootstrapGuard
from fritz_metrics.collector.cache import ResultCache
from fritz_metrics.collector.engine import CollectionEngine
from fritz_metrics.collector.session import SessionReauthCoordinator


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAction:
    """Action returning a fixed result, or one computed from the argument."""

    def __init__(self, result=None, outputs=None, inputs=()) -> None:
        self.result = result if result is not None else {}
        self.calls = []
        if outputs is None:
            outputs = list(self.result) if isinstance(self.result, dict) else []
        self.outputs = list(outputs)
        self.inputs = list(inputs)

    @property
    def is_get_only(self):
        return not self.inputs and bool(self.outputs)

    def call(self, argument=None):
        self.calls.append(argument)
        if isinstance(self.result, Exception):
            raise self.result
        if callable(self.result):
            return self.result(argument)
        return dict(self.result)


class FakeService:
    def __init__(self, **actions) -> None:
        self.actions = actions


class FakePageLoader:
    """Page loader that logs in whenever its session id is empty."""

    def __init__(self, pages=None) -> None:
        self.pages = pages or {}
        self.sid = ""
        self.logins = 0
        self.loads = []
        self.fail = False

    def load(self, path, params):
        if not self.sid:
            self.logins += 1
            self.sid = f"sid-{self.logins}"
        self.loads.append((path, params, self.sid))
        if self.fail:
            raise ConnectionError("connection reset")
        body = self.pages[(path, params)]
        if isinstance(body, bytes):
            return body
        return json.dumps(body).encode()


def output(name, var_labels=(), fixed=None, prom_type="GaugeValue"):
    desc = {"fqName": name, "help": f"help for {name}", "varLabels": list(var_labels)}
    if fixed:
        desc["fixedLabels"] = fixed
    return {"promDesc": desc, "promType": prom_type}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(clock):
    """Build an engine with loaded services from raw catalog data."""

    def _make(actions=(), services=None, pages=None, loader=None, gateway="fritz.box"):
        page_metrics, renames = parse_page_metrics(pages) if pages is not None else ([], [])
        catalog = MetricCatalog(
            actions=tuple(parse_action_metrics(list(actions))),
            pages=tuple(page_metrics),
            renames=tuple(renames),
        )
        guard = BootstrapGuard(lambda: services if services is not None else {})
        guard.try_load()
        session = SessionReauthCoordinator(loader) if loader is not None else None
        return CollectionEngine(
            catalog, guard, gateway=gateway, cache=ResultCache(clock=clock), session=session,
        )

    return _make
