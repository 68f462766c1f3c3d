from __future__ import annotations

from pymaxxi._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "deviceId": "CCU-1",
        "apiKey": "secret",
        "wifi": {"ssid": "home", "wifiPassword": "hunter2"},
        "password": "pw",
    }

    redacted = redact_for_log(payload)
    assert redacted["deviceId"] == "CCU-1"
    assert redacted["apiKey"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["wifi"]["ssid"] == "home"
    assert redacted["wifi"]["wifiPassword"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_caps_long_lists() -> None:
    redacted = redact_for_log({"cells": list(range(8))}, max_items=3)
    assert redacted["cells"] == [0, 1, 2, "<5 more>"]
