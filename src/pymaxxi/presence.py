"""Device presence tracking.

Keeps the last-seen time of every controller that reported telemetry and
derives the aggregate ``info.connection`` flag and ``info.activeDevices``
roster from it. Devices silent for longer than the liveness window are
evicted by :meth:`PresenceTracker.sweep`, which the adapter runs on a timer.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable

from pymaxxi.ingestion.normalize import join_path
from pymaxxi.state.objects import ObjectDefinition, ScalarType
from pymaxxi.state.store import StateStoreBackend

_logger = logging.getLogger(__name__)

DEFAULT_LIVENESS_WINDOW_S = 5 * 60.0

CONNECTION_ID = "info.connection"
ACTIVE_DEVICES_ID = "info.activeDevices"

_CONNECTION_DEFINITION = ObjectDefinition.leaf(
    {"en": "Connection active", "de": "Verbindung aktiv"},
    ScalarType.BOOLEAN,
    "indicator.connected",
)
_ACTIVE_DEVICES_DEFINITION = ObjectDefinition.leaf(
    {"en": "Active CCUs", "de": "Aktive CCUs"},
    ScalarType.STRING,
    "value",
)


class PresenceState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class PresenceTracker:
    """Track live devices and publish the aggregate liveness signal.

    The published pair (``connected``, ``roster``) is always updated together.
    :meth:`record_seen` only republishes when the signal was ``False``; while
    already connected a heartbeat just refreshes the device timestamp and the
    roster is brought up to date by the next sweep.
    """

    def __init__(
        self,
        store: StateStoreBackend,
        *,
        namespace: str = "",
        window_s: float = DEFAULT_LIVENESS_WINDOW_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._window_s = window_s
        self._clock = clock
        self._records: dict[str, float] = {}
        self._connected = False
        self._roster = ""
        self.connection_path = join_path(namespace, CONNECTION_ID)
        self.roster_path = join_path(namespace, ACTIVE_DEVICES_ID)

    @property
    def connected(self) -> bool:
        """Last published liveness signal."""
        return self._connected

    @property
    def roster(self) -> str:
        """Last published comma-joined roster."""
        return self._roster

    @property
    def state(self) -> PresenceState:
        return PresenceState.CONNECTED if self._connected else PresenceState.DISCONNECTED

    @property
    def devices(self) -> list[str]:
        """Device ids currently on record, in first-seen order."""
        return list(self._records)

    @property
    def window_s(self) -> float:
        return self._window_s

    def last_seen(self, device_id: str) -> float | None:
        return self._records.get(device_id)

    async def ensure_objects(self) -> None:
        """Create the connection and roster leaves if they are missing."""
        await self._store.set_object_not_exists(self.connection_path, _CONNECTION_DEFINITION)
        await self._store.set_object_not_exists(self.roster_path, _ACTIVE_DEVICES_DEFINITION)

    async def record_seen(self, device_id: str) -> None:
        """Refresh the last-seen time of *device_id*."""
        self._records[device_id] = self._clock()
        if not self._connected:
            await self._publish()

    async def sweep(self, now: float | None = None, window_s: float | None = None) -> list[str]:
        """Evict devices last seen before ``now - window_s`` and republish.

        A device seen exactly at the cutoff is kept. The signal and roster are
        written even when nothing was evicted. Returns the evicted ids.
        """
        if now is None:
            now = self._clock()
        if window_s is None:
            window_s = self._window_s
        cutoff = now - window_s

        evicted = [device_id for device_id, seen in self._records.items() if seen < cutoff]
        for device_id in evicted:
            del self._records[device_id]
            _logger.info("Device %s marked as inactive and removed.", device_id)

        await self._publish()
        return evicted

    async def reset(self) -> None:
        """Forget every device and publish the disconnected state."""
        self._records.clear()
        await self._publish()

    async def _publish(self) -> None:
        keys = list(self._records)
        roster = ",".join(keys)
        connected = bool(keys)

        # Committed only once the store accepted both values, so a failed write
        # is retried by the next record_seen.
        await self._store.set_states({self.roster_path: roster, self.connection_path: connected}, ack=True)

        was_connected = self._connected
        self._roster = roster
        self._connected = connected
        if was_connected != connected:
            _logger.info("Presence changed to %s roster=%s", self.state.name, roster)
