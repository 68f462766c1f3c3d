from __future__ import annotations

import asyncio
from collections.abc import Mapping

import pytest

from pymaxxi.adapter import MaxxiAdapter
from pymaxxi.config import MaxxiConfig
from pymaxxi.exceptions import MaxxiStoreError
from pymaxxi.state.objects import ObjectDefinition, ObjectType, ScalarType, StateChange, StateValue
from pymaxxi.state.store import InMemoryStateStore

NS = "maxxi-charge.0"


class _Clock:
    def __init__(self, now: float = 10_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _EcoMode:
    def __init__(self) -> None:
        self.started = 0
        self.cleaned = 0
        self.soc_changes: list[tuple[str, object]] = []

    async def start_monitoring(self) -> None:
        self.started += 1

    def cleanup(self) -> None:
        self.cleaned += 1

    async def handle_soc_change(self, path: str, state: StateValue) -> None:
        self.soc_changes.append((path, state.val))


class _Commands:
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    async def handle_command_change(self, path: str, state: StateValue) -> None:
        self.calls.append((path, state.val))


def _adapter(clock: _Clock, **kwargs) -> tuple[MaxxiAdapter, InMemoryStateStore]:
    store = InMemoryStateStore(clock=clock)
    config = kwargs.pop("config", MaxxiConfig(namespace=NS))
    adapter = MaxxiAdapter(config, store, clock=clock, ip_resolver=lambda: "192.168.1.20", **kwargs)
    return adapter, store


@pytest.mark.asyncio
async def test_start_publishes_info_leaves_and_arms_sweep() -> None:
    adapter, store = _adapter(_Clock())

    async with adapter:
        assert store.states[f"{NS}.info.localip"].val == "192.168.1.20"
        assert store.objects[f"{NS}.info.localip"].common.role == "info.ip"
        assert store.objects[f"{NS}.info"].type == ObjectType.CHANNEL
        assert store.states[f"{NS}.info.connection"].val is False
        assert store.states[f"{NS}.info.activeDevices"].val == ""
        assert store.objects[f"{NS}.info.connection"].common.type == ScalarType.BOOLEAN
        assert adapter.sweep_running

    assert not adapter.sweep_running


@pytest.mark.asyncio
async def test_local_ip_falls_back_when_resolution_fails() -> None:
    def _fail() -> str | None:
        raise OSError("no network")

    store = InMemoryStateStore()
    adapter = MaxxiAdapter(MaxxiConfig(namespace=NS, local_ip_fallback="ioBroker IP"), store, ip_resolver=_fail)

    await adapter.start()
    try:
        assert store.states[f"{NS}.info.localip"].val == "ioBroker IP"
    finally:
        await adapter.stop()


@pytest.mark.asyncio
async def test_snapshot_end_to_end_then_eviction() -> None:
    clock = _Clock()
    adapter, store = _adapter(clock)
    await adapter.start()
    try:
        report = await adapter.handle_snapshot("A1", {"battery": {"soc": 42}, "status": "ok"})

        assert report.ok
        assert store.objects[f"{NS}.A1.battery"].type == ObjectType.CHANNEL
        assert store.objects[f"{NS}.A1.battery.soc"].common.type == ScalarType.NUMBER
        assert store.states[f"{NS}.A1.battery.soc"].val == 42
        assert store.states[f"{NS}.A1.battery.soc"].ack is True
        assert store.objects[f"{NS}.A1.status"].common.type == ScalarType.STRING
        assert store.states[f"{NS}.A1.status"].val == "ok"
        assert store.states[f"{NS}.info.activeDevices"].val == "A1"
        assert store.states[f"{NS}.info.connection"].val is True

        clock.now += 6 * 60
        await adapter.presence.sweep()

        assert store.states[f"{NS}.info.activeDevices"].val == ""
        assert store.states[f"{NS}.info.connection"].val is False
    finally:
        await adapter.stop()


@pytest.mark.asyncio
async def test_device_id_is_sanitized_for_namespace_root() -> None:
    adapter, store = _adapter(_Clock())
    await adapter.start()
    try:
        await adapter.handle_snapshot("ccu.01 east", {"SOC": 80})
    finally:
        await adapter.stop()

    assert adapter.device_path("ccu.01 east") == f"{NS}.ccu_01_east"
    assert store.states[f"{NS}.ccu_01_east.SOC"].val == 80


def test_sweep_interval_is_clamped() -> None:
    too_fast, _ = _adapter(_Clock(), config=MaxxiConfig(namespace=NS, sweep_interval_ms=10))
    too_slow, _ = _adapter(_Clock(), config=MaxxiConfig(namespace=NS, sweep_interval_ms=10**9))
    default, _ = _adapter(_Clock())

    assert too_fast.sweep_interval_ms == 1000
    assert too_slow.sweep_interval_ms == 3_600_000
    assert default.sweep_interval_ms == 120_000


@pytest.mark.asyncio
async def test_sweep_timer_evicts_stale_devices() -> None:
    clock = _Clock()
    adapter, store = _adapter(clock)
    await adapter.start()
    try:
        await adapter.handle_snapshot("A1", {"SOC": 1})
        clock.now += 6 * 60

        # Re-arm with a short period so the loop fires within the test.
        await adapter._disarm_sweep()  # noqa: SLF001
        adapter._arm_sweep(1)  # noqa: SLF001
        for _ in range(50):
            if store.states[f"{NS}.info.connection"].val is False:
                break
            await asyncio.sleep(0.01)

        assert adapter.presence.devices == []
        assert store.states[f"{NS}.info.activeDevices"].val == ""
    finally:
        await adapter.stop()


@pytest.mark.asyncio
async def test_unacked_connection_change_drives_eco_mode() -> None:
    eco = _EcoMode()
    commands = _Commands()
    adapter, store = _adapter(_Clock(), eco_mode=eco, commands=commands)
    await adapter.start()
    try:
        await store.set_state(f"{NS}.info.connection", True, ack=False)
        await store.set_state(f"{NS}.info.connection", False, ack=False)
        await store.set_object(f"{NS}.A1.SOC", ObjectDefinition.leaf("SOC", ScalarType.NUMBER, "value.battery"))
        await store.set_state(f"{NS}.A1.SOC", 55, ack=False)
        # Acknowledged writes come from the adapter itself and are not routed.
        await store.set_state(f"{NS}.A1.SOC", 56, ack=True)
    finally:
        await adapter.stop()

    assert eco.started == 1
    # One cleanup from the False write, one from stop().
    assert eco.cleaned == 2
    assert eco.soc_changes == [(f"{NS}.A1.SOC", 55)]
    assert [path for path, _ in commands.calls] == [
        f"{NS}.info.connection",
        f"{NS}.info.connection",
        f"{NS}.A1.SOC",
    ]


@pytest.mark.asyncio
async def test_eco_mode_started_on_startup_when_enabled() -> None:
    eco = _EcoMode()
    adapter, _ = _adapter(_Clock(), config=MaxxiConfig(namespace=NS, eco_mode_enabled=True), eco_mode=eco)

    await adapter.start()
    await adapter.stop()

    assert eco.started == 1


@pytest.mark.asyncio
async def test_handle_state_change_ignores_missing_state() -> None:
    commands = _Commands()
    adapter, _ = _adapter(_Clock(), commands=commands)

    await adapter.handle_state_change(StateChange(path=f"{NS}.A1.SOC", state=None))

    assert commands.calls == []


@pytest.mark.asyncio
async def test_start_and_stop_survive_store_failures() -> None:
    class _BrokenStore(InMemoryStateStore):
        async def set_state(self, path: str, val: object, *, ack: bool = False) -> StateValue:
            raise MaxxiStoreError("read-only", path=path)

        async def set_states(self, values: Mapping[str, object], *, ack: bool = False) -> list[StateValue]:
            raise MaxxiStoreError("read-only")

    eco = _EcoMode()
    adapter = MaxxiAdapter(MaxxiConfig(namespace=NS), _BrokenStore(), eco_mode=eco, ip_resolver=lambda: None)

    await adapter.start()
    report = await adapter.handle_snapshot("A1", {"SOC": 1})
    await adapter.stop()

    assert not report.ok
    assert not adapter.sweep_running


@pytest.mark.asyncio
@pytest.mark.parametrize("device_id", ["", None])
async def test_snapshot_without_device_id_is_dropped(device_id: str | None) -> None:
    adapter, store = _adapter(_Clock())
    await adapter.start()
    try:
        report = await adapter.handle_snapshot(device_id, {"SOC": 80})  # type: ignore[arg-type]

        assert [outcome.error for outcome in report.failed] == ["empty device id"]
        assert f"{NS}.SOC" not in store.objects
        assert adapter.presence.devices == []
        assert store.states[f"{NS}.info.connection"].val is False
    finally:
        await adapter.stop()
