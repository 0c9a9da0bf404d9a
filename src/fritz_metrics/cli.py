"""CLI interface for fritz_metrics."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Any

import yaml

from . import __version__
from .catalog.loader import load_catalog
from .collector.base import PageLoader
from .collector.bootstrap import BootstrapGuard
from .collector.engine import CollectionEngine
from .collector.session import SessionReauthCoordinator
from .config import FritzMetricsConfig, load_config
from .errors import ConfigError
from .plugins import load_factory

logger = logging.getLogger(__name__)


def _page_loader(cfg: FritzMetricsConfig) -> PageLoader:
    if not cfg.collaborators.page_loader:
        raise ConfigError("no page loader configured (collaborators.page_loader)")
    return load_factory(cfg.collaborators.page_loader)(cfg.gateway)


def _bootstrap(cfg: FritzMetricsConfig) -> BootstrapGuard:
    if not cfg.collaborators.discovery:
        raise ConfigError("no service discovery configured (collaborators.discovery)")
    discovery = load_factory(cfg.collaborators.discovery)(cfg.gateway)
    return BootstrapGuard(discovery, retry_seconds=cfg.bootstrap.retry_seconds)


def _build_engine(cfg: FritzMetricsConfig) -> CollectionEngine:
    """Load the catalogs and wire the engine to its collaborators."""
    catalog = load_catalog(
        cfg.catalog.metrics_file,
        cfg.catalog.page_metrics_file if cfg.catalog.pages_enabled else None,
        min_ttl=cfg.catalog.min_cache_ttl,
    )
    session = None
    if cfg.catalog.pages_enabled:
        session = SessionReauthCoordinator(_page_loader(cfg))

    return CollectionEngine(
        catalog,
        _bootstrap(cfg),
        gateway=cfg.gateway.host,
        session=session,
    )


def _cmd_serve(args: argparse.Namespace) -> None:
    """Serve metrics over HTTP until interrupted."""
    cfg = load_config(args.config)
    host, port = cfg.server.split_address()

    from prometheus_client import REGISTRY, start_http_server

    from .exporter.prometheus import FritzboxCollector

    engine = _build_engine(cfg)
    engine.bootstrap.start()
    REGISTRY.register(FritzboxCollector(engine))

    stop = False

    def _handle_signal(_sig: int, _frame: object) -> None:
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    start_http_server(port, addr=host)
    print(f"metrics available at http://{cfg.server.listen_address}/metrics")
    try:
        while not stop:
            time.sleep(0.5)
    finally:
        engine.bootstrap.stop()


def _cmd_collect(args: argparse.Namespace) -> None:
    """Run one collection pass and print the exposition."""
    cfg = load_config(args.config)

    from prometheus_client import CollectorRegistry, generate_latest

    from .exporter.prometheus import FritzboxCollector, SnapshotCollector

    engine = _build_engine(cfg)
    engine.bootstrap.load_blocking()

    families = list(FritzboxCollector(engine).collect())
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(families))
    print(generate_latest(registry).decode("utf-8"))

    if args.json_out:
        records = [
            {"name": s.name, "labels": s.labels, "value": s.value}
            for family in families
            for s in family.samples
        ]
        _write_json(args.json_out, records)


def _cmd_services(args: argparse.Namespace) -> None:
    """List discovered services and actions, optionally calling them.

    Only get-only actions are called or written to the template.
    """
    cfg = load_config(args.config)

    from rich.console import Console
    from rich.table import Table

    services = _bootstrap(cfg).load_blocking()

    table = Table(title="Services", show_lines=True)
    table.add_column("Service", style="cyan")
    table.add_column("Action", style="green")
    table.add_column("Outputs")
    table.add_column("Result", width=60)

    template: list[dict[str, Any]] = []
    for service_id in sorted(services):
        actions = services[service_id].actions
        for name in sorted(actions):
            action = actions[name]
            outputs = list(action.outputs)
            if not action.is_get_only:
                table.add_row(service_id, name, ", ".join(outputs), "[dim]not called[/dim]")
                continue

            template.extend({"service": service_id, "action": name, "result": key} for key in outputs)

            result_str = ""
            if args.call:
                try:
                    result = action.call(None)
                except Exception as exc:
                    result_str = f"[red]FAILED: {exc}[/red]"
                else:
                    result_str = "\n".join(f"{k}: {result.get(k)}" for k in outputs)
            table.add_row(service_id, name, ", ".join(outputs), result_str)

    Console().print(table)

    if args.json_out:
        _write_json(args.json_out, template)


def _cmd_test_pages(args: argparse.Namespace) -> None:
    """Load every page listed in a file and dump the raw bodies."""
    cfg = load_config(args.config)
    with open(args.pages_file, encoding="utf-8") as fh:
        pages = yaml.safe_load(fh) or []

    session = SessionReauthCoordinator(_page_loader(cfg))
    for page in pages:
        path, params = page.get("path", ""), page.get("params", "")
        print(f"TESTING: {path} ({params})")
        try:
            print(session.load(path, params).decode("utf-8", errors="replace"))
        except Exception as exc:
            print(f"FAILED: {exc}")
        print()


def _cmd_check(args: argparse.Namespace) -> None:
    """Validate the metric catalogs and print the descriptors."""
    cfg = load_config(args.config)

    from rich.console import Console
    from rich.table import Table

    catalog = load_catalog(
        cfg.catalog.metrics_file,
        cfg.catalog.page_metrics_file if cfg.catalog.pages_enabled else None,
        min_ttl=cfg.catalog.min_cache_ttl,
    )

    table = Table(title="Metric catalog")
    table.add_column("Source", style="cyan")
    table.add_column("Metric", style="green")
    table.add_column("Type", width=8)
    table.add_column("Labels")
    table.add_column("TTL", justify="right")
    for metric in [*catalog.actions, *catalog.pages]:
        table.add_row(
            str(metric),
            metric.output.fq_name,
            metric.output.kind.value,
            ", ".join(metric.output.label_names),
            f"{metric.ttl}s",
        )
    Console().print(table)
    print(f"{len(catalog.actions)} action metrics, {len(catalog.pages)} page metrics, "
          f"{len(catalog.renames)} label renames")


def _cmd_version(_args: argparse.Namespace) -> None:
    print(f"fritz_metrics {__version__}")


def _write_json(path: str, data: Any) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
    print(f"JSON written to {path}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the fritz-metrics CLI."""
    parser = argparse.ArgumentParser(
        prog="fritz-metrics",
        description="Prometheus exporter for FRITZ!Box routers",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to fritz_metrics.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    serve_p = sub.add_parser("serve", help="Serve metrics over HTTP")
    serve_p.set_defaults(func=_cmd_serve)

    collect_p = sub.add_parser("collect", help="Print configured metrics once and exit")
    collect_p.add_argument("--json-out", default=None, help="Also store samples as JSON")
    collect_p.set_defaults(func=_cmd_collect)

    services_p = sub.add_parser("services", help="List all services and actions of the router")
    services_p.add_argument("--call", action="store_true", help="Call actions without arguments")
    services_p.add_argument("--json-out", default=None, help="Write a metric catalog template")
    services_p.set_defaults(func=_cmd_services)

    pages_p = sub.add_parser("test-pages", help="Load data pages and dump their content")
    pages_p.add_argument("pages_file", help="JSON/YAML list of {path, params}")
    pages_p.set_defaults(func=_cmd_test_pages)

    check_p = sub.add_parser("check", help="Validate metric catalogs")
    check_p.set_defaults(func=_cmd_check)

    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(2)


if __name__ == "__main__":
    main()
