"""Display-role classification for telemetry keys.

Roles follow the usual home-automation vocabulary (``value.power``,
``value.battery``...) and are attached to a leaf once, when it is created.
"""

from __future__ import annotations

DEFAULT_ROLE = "value"

# Exact key matches, compared case-insensitively.
_KEY_ROLES: dict[str, str] = {
    "soc": "value.battery",
    "batterysoc": "value.battery",
    "pccu": "value.power",
    "pr": "value.power",
    "pv_power": "value.power",
    "pv_power_total": "value.power",
    "batterycapacity": "value.energy",
    "wifistrength": "value.rssi",
    "rssi": "value.rssi",
    "ip": "info.ip",
    "ip_addr": "info.ip",
    "ipaddress": "info.ip",
    "firmwareversion": "info.firmware",
    "firmware": "info.firmware",
    "deviceid": "info.serial",
    "serial": "info.serial",
    "date": "date",
    "timestamp": "date",
    "uptime": "value.interval",
    "error": "indicator.error",
    "online": "indicator.reachable",
}

# Substring matches, checked in order after the exact table.
_FRAGMENT_ROLES: tuple[tuple[str, str], ...] = (
    ("soc", "value.battery"),
    ("temperature", "value.temperature"),
    ("temp", "value.temperature"),
    ("voltage", "value.voltage"),
    ("current", "value.current"),
    ("energy", "value.energy"),
    ("capacity", "value.energy"),
    ("power", "value.power"),
    ("time", "date"),
)


def determine_role(key: str) -> str:
    """Return the display role for a telemetry *key* (never empty)."""
    normalized = (key or "").strip().lower()
    if not normalized:
        return DEFAULT_ROLE
    exact = _KEY_ROLES.get(normalized)
    if exact is not None:
        return exact
    for fragment, role in _FRAGMENT_ROLES:
        if fragment in normalized:
            return role
    return DEFAULT_ROLE
