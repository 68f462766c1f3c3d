"""Adapter shell wiring telemetry delivery to the state tree.

The transport (local push receiver, cloud poller) calls
:meth:`MaxxiAdapter.handle_snapshot` for every snapshot it receives. The
adapter records presence, materializes the snapshot below the device root and
runs the periodic presence sweep.

Usage::

    async with MaxxiAdapter(MaxxiConfig.from_env(), store) as adapter:
        await adapter.handle_snapshot("ccu-1", payload)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
import time
from collections.abc import Callable
from typing import Any, Protocol

from pymaxxi.config import MaxxiConfig
from pymaxxi.ingestion.materialize import LeafOutcome, MaterializeReport, TreeMaterializer
from pymaxxi.ingestion.normalize import join_path, sanitize, validate_interval
from pymaxxi.presence import PresenceTracker
from pymaxxi.state.cache import ExistenceCache
from pymaxxi.state.ensure import ensure_state_exists
from pymaxxi.state.objects import ObjectDefinition, ScalarType, StateChange, StateValue
from pymaxxi.state.store import InMemoryStateStore, StateStoreBackend

_logger = logging.getLogger(__name__)

LOCAL_IP_ID = "info.localip"
SOC_SUFFIX = ".SOC"

_LOCAL_IP_DEFINITION = ObjectDefinition.leaf("Local IP Address", ScalarType.STRING, "info.ip")


class EcoModeHook(Protocol):
    """Seasonal eco-mode policy, driven by connection and SOC changes."""

    async def start_monitoring(self) -> None: ...

    def cleanup(self) -> None: ...

    async def handle_soc_change(self, path: str, state: StateValue) -> None: ...


class CommandHandler(Protocol):
    async def handle_command_change(self, path: str, state: StateValue) -> None: ...


def resolve_local_ip() -> str | None:
    """Return the first non-loopback IPv4 address of this host, if any."""
    hostname = socket.gethostname()
    for family, _, _, _, sockaddr in socket.getaddrinfo(hostname, None, socket.AF_INET):
        if family != socket.AF_INET:
            continue
        address = str(sockaddr[0])
        if not address.startswith("127."):
            return address
    return None


class MaxxiAdapter:
    """Owns the existence cache, presence tracker and sweep timer."""

    def __init__(
        self,
        config: MaxxiConfig,
        store: StateStoreBackend | None = None,
        *,
        eco_mode: EcoModeHook | None = None,
        commands: CommandHandler | None = None,
        clock: Callable[[], float] = time.time,
        ip_resolver: Callable[[], str | None] = resolve_local_ip,
    ) -> None:
        self._config = config
        self._store: StateStoreBackend = store if store is not None else InMemoryStateStore(clock=clock)
        self._cache = ExistenceCache()
        self._materializer = TreeMaterializer(self._store, self._cache)
        self._presence = PresenceTracker(
            self._store,
            namespace=config.namespace,
            window_s=config.liveness_window_s,
            clock=clock,
        )
        self._eco_mode = eco_mode
        self._commands = commands
        self._ip_resolver = ip_resolver
        self._sweep_task: asyncio.Task[None] | None = None
        self._sweep_interval_ms: int | float = validate_interval(config.sweep_interval_ms)
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MaxxiAdapter:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def store(self) -> StateStoreBackend:
        return self._store

    @property
    def presence(self) -> PresenceTracker:
        return self._presence

    @property
    def cache(self) -> ExistenceCache:
        return self._cache

    @property
    def sweep_interval_ms(self) -> int | float:
        """Sweep period after clamping."""
        return self._sweep_interval_ms

    @property
    def sweep_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def device_path(self, device_id: str) -> str:
        return join_path(self._config.namespace, sanitize(device_id))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Publish the initial info leaves and arm the sweep timer.

        Failures are logged; the adapter keeps running in a degraded state.
        """
        if isinstance(self._store, InMemoryStateStore) and self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self.handle_state_change)
        try:
            await self._publish_local_ip()
            await self._presence.ensure_objects()
            await self._store.set_state(self._presence.connection_path, False, ack=True)
            await self._store.set_state(self._presence.roster_path, "", ack=True)

            self._arm_sweep(self._sweep_interval_ms)

            if self._config.eco_mode_enabled and self._eco_mode is not None:
                await self._eco_mode.start_monitoring()
        except Exception as exc:
            _logger.error("Fatal error during initialization: %s", exc)
            _logger.debug("Initialization failure", exc_info=True)

    async def stop(self) -> None:
        """Publish the disconnected state, release hooks and disarm the sweep."""
        try:
            await self._presence.reset()
            if self._eco_mode is not None:
                self._eco_mode.cleanup()
        except Exception as exc:
            _logger.error("Error during shutdown: %s", exc)
        finally:
            await self._disarm_sweep()
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            _logger.info("Adapter terminated.")

    async def _publish_local_ip(self) -> None:
        path = join_path(self._config.namespace, LOCAL_IP_ID)
        address = self._config.local_ip_fallback
        try:
            loop = asyncio.get_running_loop()
            resolved = await loop.run_in_executor(None, self._ip_resolver)
            if resolved:
                address = resolved
        except Exception:
            _logger.debug("Local IP resolution failed; using fallback", exc_info=True)

        await ensure_state_exists(self._store, self._cache, path, _LOCAL_IP_DEFINITION)
        await self._store.set_state(path, address, ack=True)
        _logger.debug("Local IP address determined and cached: %s", address)

    # ------------------------------------------------------------------
    # Sweep timer
    # ------------------------------------------------------------------

    def _arm_sweep(self, interval_ms: int | float) -> None:
        if self.sweep_running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(interval_ms / 1000.0))

    async def _disarm_sweep(self) -> None:
        task = self._sweep_task
        self._sweep_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                await self._presence.sweep()
            except Exception:
                _logger.error("Presence sweep failed", exc_info=True)

    # ------------------------------------------------------------------
    # Inbound hooks
    # ------------------------------------------------------------------

    async def handle_snapshot(self, device_id: str, document: Any) -> MaterializeReport:
        """Record *device_id* as live and write *document* into its subtree."""
        if not sanitize(device_id):
            _logger.warning("Dropping snapshot with empty device id")
            report = MaterializeReport(base_path=self._config.namespace)
            report.outcomes.append(LeafOutcome(path=self._config.namespace, error="empty device id"))
            return report
        try:
            await self._presence.record_seen(device_id)
        except Exception as exc:
            _logger.error("Failed to publish presence for %s: %s", device_id, exc)
        return await self._materializer.materialize(self.device_path(device_id), document)

    async def handle_state_change(self, change: StateChange) -> None:
        """Route unacknowledged writes to the eco-mode and command hooks."""
        state = change.state
        if state is None or state.ack:
            return

        if self._eco_mode is not None:
            if change.path == self._presence.connection_path:
                if state.val is True:
                    await self._eco_mode.start_monitoring()
                else:
                    self._eco_mode.cleanup()
            if change.path.endswith(SOC_SUFFIX):
                await self._eco_mode.handle_soc_change(change.path, state)

        if self._commands is not None:
            await self._commands.handle_command_change(change.path, state)
