"""Load and validate metric catalog files."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigError
from .descriptors import (
    ActionArgument,
    ActionMetric,
    LabelRename,
    MetricCatalog,
    OutputDescriptor,
    PageMetric,
    ValueKind,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_TTL = 30

_KIND_NAMES = {
    "CounterValue": ValueKind.COUNTER,
    "GaugeValue": ValueKind.GAUGE,
    "UntypedValue": ValueKind.UNTYPED,
    "counter": ValueKind.COUNTER,
    "gauge": ValueKind.GAUGE,
    "untyped": ValueKind.UNTYPED,
}


def _read(path: str | Path) -> Any:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as fh:
            return yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"cannot read metric file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse metric file {path}: {exc}") from exc


def _require(entry: dict[str, Any], key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{where}: missing or invalid '{key}'")
    return value


def _ttl(raw: Any, min_ttl: int, where: str) -> int:
    if raw is None:
        return min_ttl
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigError(f"{where}: cacheEntryTTL must be an integer")
    return max(raw, min_ttl)


def parse_output(entry: dict[str, Any], where: str) -> OutputDescriptor:
    """Build the output descriptor from ``promDesc`` and ``promType``."""
    desc = entry.get("promDesc")
    if not isinstance(desc, dict):
        raise ConfigError(f"{where}: missing 'promDesc'")

    var_labels = desc.get("varLabels") or []
    if not isinstance(var_labels, list) or not all(isinstance(l, str) for l in var_labels):
        raise ConfigError(f"{where}: 'varLabels' must be a list of strings")

    fixed = desc.get("fixedLabels") or {}
    if not isinstance(fixed, dict):
        raise ConfigError(f"{where}: 'fixedLabels' must be a mapping")

    prom_type = entry.get("promType") or "UntypedValue"
    kind = _KIND_NAMES.get(prom_type)
    if kind is None:
        raise ConfigError(f"{where}: unknown promType {prom_type!r}")

    # variable labels are exposed lowercased next to the fixed ones
    names = [label.lower() for label in var_labels] + [str(k) for k in fixed]
    clashes = sorted({name for name in names if names.count(name) > 1})
    if clashes:
        raise ConfigError(f"{where}: duplicate label names {', '.join(clashes)}")

    return OutputDescriptor(
        fq_name=_require(desc, "fqName", where),
        help=str(desc.get("help", "")),
        var_labels=tuple(var_labels),
        # sorted so the dedup composite is stable across runs
        fixed_labels=tuple(sorted((str(k), str(v)) for k, v in fixed.items())),
        kind=kind,
    )


def _parse_argument(raw: Any, where: str) -> ActionArgument | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: 'actionArgument' must be a mapping")
    value = raw.get("Value", "")
    return ActionArgument(
        name=_require(raw, "Name", where),
        value="" if value is None else str(value),
        is_index=bool(raw.get("IsIndex", False)),
        provider_action=raw.get("ProviderAction") or "",
    )


def parse_action_metrics(data: Any, min_ttl: int = DEFAULT_MIN_TTL) -> list[ActionMetric]:
    """Validate a list of action metric entries."""
    if not isinstance(data, list):
        raise ConfigError("action metric catalog must be a list")

    metrics: list[ActionMetric] = []
    for idx, entry in enumerate(data):
        where = f"metric #{idx}"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where}: expected a mapping")
        metrics.append(ActionMetric(
            service=_require(entry, "service", where),
            action=_require(entry, "action", where),
            result=_require(entry, "result", where),
            argument=_parse_argument(entry.get("actionArgument"), where),
            ok_value=str(entry.get("okValue") or ""),
            output=parse_output(entry, where),
            ttl=_ttl(entry.get("cacheEntryTTL"), min_ttl, where),
        ))
    return metrics


def parse_label_renames(data: Any) -> list[LabelRename]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError("'labelRenames' must be a list")

    renames: list[LabelRename] = []
    for idx, entry in enumerate(data):
        where = f"label rename #{idx}"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where}: expected a mapping")
        try:
            pattern = re.compile(_require(entry, "matchRegex", where))
        except re.error as exc:
            raise ConfigError(f"{where}: invalid matchRegex: {exc}") from exc
        renames.append(LabelRename(pattern=pattern, label=_require(entry, "renameLabel", where)))
    return renames


def parse_page_metrics(data: Any, min_ttl: int = DEFAULT_MIN_TTL) -> tuple[list[PageMetric], list[LabelRename]]:
    """Validate a page metric file: ``{"labelRenames": [...], "metrics": [...]}``."""
    if not isinstance(data, dict):
        raise ConfigError("page metric catalog must be a mapping")

    renames = parse_label_renames(data.get("labelRenames"))

    entries = data.get("metrics") or []
    if not isinstance(entries, list):
        raise ConfigError("'metrics' must be a list")

    metrics: list[PageMetric] = []
    for idx, entry in enumerate(entries):
        where = f"page metric #{idx}"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where}: expected a mapping")
        metrics.append(PageMetric(
            path=_require(entry, "path", where),
            params=str(entry.get("params") or ""),
            result_path=str(entry.get("resultPath") or ""),
            result_key=_require(entry, "resultKey", where),
            ok_value=str(entry.get("okValue") or ""),
            output=parse_output(entry, where),
            ttl=_ttl(entry.get("cacheEntryTTL"), min_ttl, where),
        ))
    return metrics, renames


def load_catalog(
    metrics_file: str | Path,
    page_metrics_file: str | Path | None = None,
    min_ttl: int = DEFAULT_MIN_TTL,
) -> MetricCatalog:
    """Load the action catalog and, if given, the page catalog.

    Raises :class:`ConfigError` on any malformed entry.
    """
    actions = parse_action_metrics(_read(metrics_file), min_ttl)

    pages: list[PageMetric] = []
    renames: list[LabelRename] = []
    if page_metrics_file is not None:
        pages, renames = parse_page_metrics(_read(page_metrics_file), min_ttl)

    logger.info(
        "Loaded %d action metrics and %d page metrics (min TTL %ds)",
        len(actions), len(pages), min_ttl,
    )
    return MetricCatalog(actions=tuple(actions), pages=tuple(pages), renames=tuple(renames))
