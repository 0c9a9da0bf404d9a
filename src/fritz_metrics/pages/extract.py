"""Decode JSON data pages and extract metric rows from them.

A result path is a dot separated list of keys into the decoded page. The
element ``*`` fans out over every object inside a list or mapping, so
``data.drives.*`` yields one row per drive; numeric keys index lists. An
empty path means the page root itself is the only row.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..catalog.descriptors import LabelRename
from ..errors import DecodeError, ExtractionError

_NUMBER_WITH_UNIT = re.compile(r"^\s*([-+]?\d+(?:[.,]\d+)?)\s*(\S*)\s*$")


@dataclass
class PageRow:
    """One value extracted from a page with the labels found beside it."""

    value: float
    labels: dict[str, str] = field(default_factory=dict)


def decode_page(body: bytes) -> dict[str, Any]:
    """Decode a page body. The top level must be a JSON object."""
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _walk(node: Any, keys: list[str], where: str) -> list[dict[str, Any]]:
    for i, key in enumerate(keys):
        if key == "*":
            if isinstance(node, list):
                children = node
            elif isinstance(node, dict):
                children = list(node.values())
            else:
                raise ExtractionError(f"cannot expand '*' at {where or '<root>'}")
            rows: list[dict[str, Any]] = []
            for child in children:
                if isinstance(child, dict):
                    rows.extend(_walk(child, keys[i + 1:], where + ".*"))
            return rows

        if isinstance(node, list) and key.isdigit() and int(key) < len(node):
            node = node[int(key)]
        elif isinstance(node, dict) and key in node:
            node = node[key]
        else:
            raise ExtractionError(f"key {key!r} not found at {where or '<root>'}")
        where = f"{where}.{key}" if where else key

    if not isinstance(node, dict):
        raise ExtractionError(f"{where or '<root>'} is not an object")
    return [node]


def parse_value(raw: Any, ok_value: str) -> float:
    """Convert a page value to a float.

    Strings are compared with *ok_value* when it is set, otherwise parsed as
    a number with an optional unit suffix (``"3.5 GB"``, ``"42%"``).
    """
    if isinstance(raw, bool):
        return 1.0 if raw else 0.0
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        if ok_value:
            return 1.0 if raw == ok_value else 0.0
        match = _NUMBER_WITH_UNIT.match(raw)
        if match is None:
            raise ExtractionError(f"cannot parse value {raw!r}")
        return float(match.group(1).replace(",", "."))
    raise ExtractionError(f"unsupported value {raw!r}")


def rename_label(value: str, renames: Iterable[LabelRename]) -> str:
    for rename in renames:
        if rename.pattern.search(value):
            return rename.label
    return value


def extract_rows(
    page: dict[str, Any],
    result_path: str,
    result_key: str,
    ok_value: str = "",
    label_names: Iterable[str] = (),
    renames: Iterable[LabelRename] = (),
) -> list[PageRow]:
    """Extract every row under *result_path* that carries *result_key*.

    Raises :class:`ExtractionError` if the path or the value is missing in
    any row. Missing labels are left out for the reporter to fill.
    """
    keys = result_path.split(".") if result_path else []
    renames = list(renames)
    wanted = list(label_names)

    rows: list[PageRow] = []
    for node in _walk(page, keys, ""):
        if result_key not in node:
            raise ExtractionError(f"value {result_key!r} not found in {result_path or '<root>'}")
        row = PageRow(value=parse_value(node[result_key], ok_value))
        for name in wanted:
            if name not in node:
                # labels like "gateway" are filled in by the reporter
                continue
            row.labels[name] = rename_label(str(node[name]), renames)
        rows.append(row)
    return rows
