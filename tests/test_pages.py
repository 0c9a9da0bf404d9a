"""Tests for page decoding and row extraction."""

import re

import pytest

from fritz_metrics.catalog.descriptors import LabelRename
from fritz_metrics.errors import DecodeError, ExtractionError
from fritz_metrics.pages.extract import decode_page, extract_rows, parse_value

USB_PAGE = {
    "data": {
        "usbOverview": {
            "devices": [
                {"deviceType": "storage", "deviceName": "SanDisk", "storageTotal": "57.3 GB", "connected": True},
                {"deviceType": "storage", "deviceName": "WD Elements", "storageTotal": "931,5 GB", "connected": False},
                "not an object",
            ],
        },
    },
}


def test_decode_page():
    assert decode_page(b'{"data": {"a": 1}}') == {"data": {"a": 1}}


@pytest.mark.parametrize("body", [b"<html></html>", b"[1, 2]", b"\xff\xfe"])
def test_decode_page_invalid(body):
    with pytest.raises(DecodeError):
        decode_page(body)


def test_wildcard_over_list():
    rows = extract_rows(USB_PAGE, "data.usbOverview.devices.*", "storageTotal",
                        label_names=["gateway", "deviceName"])
    assert [(r.value, r.labels) for r in rows] == [
        (57.3, {"deviceName": "SanDisk"}),
        (931.5, {"deviceName": "WD Elements"}),
    ]


def test_wildcard_over_mapping():
    page = {"ports": {"lan1": {"speed": 1000}, "lan2": {"speed": 100}}}
    rows = extract_rows(page, "ports.*", "speed")
    assert sorted(r.value for r in rows) == [100.0, 1000.0]


def test_numeric_path_element():
    rows = extract_rows(USB_PAGE, "data.usbOverview.devices.1", "connected")
    assert rows[0].value == 0.0


def test_empty_path_uses_root():
    rows = extract_rows({"temp": 52}, "", "temp")
    assert rows[0].value == 52.0


def test_ok_value():
    page = {"wlan": {"state": "on"}}
    assert extract_rows(page, "wlan", "state", ok_value="on")[0].value == 1.0
    assert extract_rows(page, "wlan", "state", ok_value="off")[0].value == 0.0


def test_label_renames():
    renames = [
        LabelRename(re.compile("(?i)prozessor"), "CPU"),
        LabelRename(re.compile("(?i)wlan|wifi"), "WLAN"),
    ]
    page = {"drain": [{"name": "Prozessor", "v": 1}, {"name": "WiFi 5GHz", "v": 2}, {"name": "USB", "v": 3}]}
    rows = extract_rows(page, "drain.*", "v", label_names=["name"], renames=renames)
    assert [r.labels["name"] for r in rows] == ["CPU", "WLAN", "USB"]


@pytest.mark.parametrize("path, key", [
    ("data.missing", "x"),
    ("data.usbOverview.devices.7", "storageTotal"),
    ("data.usbOverview.devices.*", "missing"),
    ("data.usbOverview.devices.0.deviceName", "x"),
])
def test_extraction_errors(path, key):
    with pytest.raises(ExtractionError):
        extract_rows(USB_PAGE, path, key)


@pytest.mark.parametrize("raw, expected", [
    ("42%", 42.0),
    ("  -3.5 dB", -3.5),
    ("1,25 Mbit/s", 1.25),
    (7, 7.0),
    (0.5, 0.5),
    (True, 1.0),
])
def test_parse_value(raw, expected):
    assert parse_value(raw, "") == expected


@pytest.mark.parametrize("raw", ["n/a", None, [1]])
def test_parse_value_invalid(raw):
    with pytest.raises(ExtractionError):
        parse_value(raw, "")
