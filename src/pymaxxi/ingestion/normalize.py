"""Normalization helpers.

Centralizes identifier sanitizing and timer-period clamping.
"""

from __future__ import annotations

import math
import re
from typing import Any

_FORBIDDEN_CHARS = re.compile(r"[^a-zA-Z0-9_-]")

MIN_INTERVAL_MS = 1000
MAX_INTERVAL_MS = 3_600_000


def sanitize(raw_key: str | None) -> str:
    """Map an arbitrary telemetry key onto a namespace-safe path segment.

    Every character outside ``[A-Za-z0-9_-]`` becomes ``_``; the result keeps
    the length of the input. ``None`` and ``""`` yield ``""``.
    """
    return _FORBIDDEN_CHARS.sub("_", raw_key or "")


def join_path(*segments: str) -> str:
    return ".".join(segment for segment in segments if segment)


def parent_path(path: str) -> str:
    """Return the container path of *path* (``""`` for a top-level segment)."""
    head, _, _ = path.rpartition(".")
    return head


def validate_interval(
    value: Any,
    min_ms: int | float = MIN_INTERVAL_MS,
    max_ms: int | float = MAX_INTERVAL_MS,
) -> int | float:
    """Clamp a configured timer period (milliseconds) into ``[min_ms, max_ms]``.

    Anything that is not a finite number falls back to ``min_ms``.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return min_ms
    if not math.isfinite(value):
        return min_ms
    if value < min_ms:
        return min_ms
    if value > max_ms:
        return max_ms
    return value
