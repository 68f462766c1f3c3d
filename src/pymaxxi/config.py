"""Adapter configuration for pymaxxi."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pymaxxi.exceptions import MaxxiConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[float] | type[int]) -> float | int:
    try:
        return cast(value)
    except ValueError as exc:
        raise MaxxiConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class MaxxiConfig:
    """Adapter configuration.

    Parameters
    ----------
    namespace : str
        Root of every path the adapter writes (e.g. ``"maxxi-charge.0"``).
        Device trees live at ``<namespace>.<device id>``.
    sweep_interval_ms : int
        Period of the presence sweep in milliseconds. Clamped to
        ``[1000, 3600000]`` before the timer is armed.
    liveness_window_s : float
        Seconds without telemetry after which a device is evicted from
        the roster.
    eco_mode_enabled : bool
        Start the eco-mode hook when the adapter starts.
    local_ip_fallback : str
        Value written to ``info.localip`` when the host address cannot be
        resolved.
    """

    namespace: str = "maxxi-charge.0"
    sweep_interval_ms: int = 2 * 60 * 1000
    liveness_window_s: float = 5 * 60.0
    eco_mode_enabled: bool = False
    local_ip_fallback: str = "unknown"

    @classmethod
    def from_env(cls, **overrides: Any) -> MaxxiConfig:
        """Create configuration from ``MAXXI_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        MaxxiConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        namespace = env.get("MAXXI_NAMESPACE")
        if namespace is not None:
            config_kwargs["namespace"] = namespace.strip()

        interval_env = env.get("MAXXI_SWEEP_INTERVAL_MS")
        if interval_env is not None and "sweep_interval_ms" not in overrides:
            config_kwargs["sweep_interval_ms"] = _env_number("MAXXI_SWEEP_INTERVAL_MS", interval_env, int)

        window_env = env.get("MAXXI_LIVENESS_WINDOW_S")
        if window_env is not None and "liveness_window_s" not in overrides:
            config_kwargs["liveness_window_s"] = _env_number("MAXXI_LIVENESS_WINDOW_S", window_env, float)

        if "eco_mode_enabled" not in overrides:
            config_kwargs["eco_mode_enabled"] = _env_bool(env.get("MAXXI_ECO_MODE_ENABLED"), False)

        fallback = env.get("MAXXI_LOCAL_IP_FALLBACK")
        if fallback is not None:
            config_kwargs["local_ip_fallback"] = fallback

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
