"""Authoritative state store.

The materializer and presence tracker only talk to the store through
:class:`StateStoreBackend`. :class:`InMemoryStateStore` is the reference
implementation used by the adapter when no host store is supplied, and by the
test-suite.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from pymaxxi.exceptions import MaxxiStoreError
from pymaxxi.state.objects import ObjectDefinition, StateChange, StateValue

_logger = logging.getLogger(__name__)

StateListener = Callable[[StateChange], Awaitable[None] | None]


class StateStoreBackend(Protocol):
    async def get_object(self, path: str) -> ObjectDefinition | None: ...

    async def set_object(self, path: str, definition: ObjectDefinition) -> None: ...

    async def set_object_not_exists(self, path: str, definition: ObjectDefinition) -> bool: ...

    async def get_state(self, path: str) -> StateValue | None: ...

    async def set_state(self, path: str, val: Any, *, ack: bool = False) -> StateValue: ...

    async def set_states(self, values: Mapping[str, Any], *, ack: bool = False) -> list[StateValue]: ...


class InMemoryStateStore:
    """Dict-backed store keyed by full namespace path.

    ``set_state`` requires the object to exist; writing a value to an unknown
    path raises :class:`MaxxiStoreError`.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._objects: dict[str, ObjectDefinition] = {}
        self._states: dict[str, StateValue] = {}
        self._listeners: list[StateListener] = []

    @property
    def objects(self) -> dict[str, ObjectDefinition]:
        return dict(self._objects)

    @property
    def states(self) -> dict[str, StateValue]:
        return dict(self._states)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def get_object(self, path: str) -> ObjectDefinition | None:
        return self._objects.get(path)

    async def set_object(self, path: str, definition: ObjectDefinition) -> None:
        if not path:
            raise MaxxiStoreError("Object path must be non-empty", path=path)
        self._objects[path] = definition

    async def set_object_not_exists(self, path: str, definition: ObjectDefinition) -> bool:
        """Create *path* only if it is absent. Returns ``True`` when created."""
        if path in self._objects:
            return False
        await self.set_object(path, definition)
        return True

    async def get_state(self, path: str) -> StateValue | None:
        return self._states.get(path)

    async def set_state(self, path: str, val: Any, *, ack: bool = False) -> StateValue:
        state = self._build_state(path, val, ack)
        self._states[path] = state
        await self._notify(StateChange(path=path, state=state))
        return state

    async def set_states(self, values: Mapping[str, Any], *, ack: bool = False) -> list[StateValue]:
        """Write several values; listeners run only after all of them are stored.

        Nothing is stored if any path or value is rejected.
        """
        states = [self._build_state(path, val, ack) for path, val in values.items()]
        for path, state in zip(values, states, strict=True):
            self._states[path] = state
        for path, state in zip(values, states, strict=True):
            await self._notify(StateChange(path=path, state=state))
        return states

    def _build_state(self, path: str, val: Any, ack: bool) -> StateValue:
        if path not in self._objects:
            raise MaxxiStoreError(f"No object at {path}", path=path)
        try:
            return StateValue(val=val, ack=ack, ts=self._clock())
        except ValueError as exc:
            raise MaxxiStoreError(f"Unsupported value for {path}: {exc}", path=path) from exc

    async def _notify(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _logger.debug("State listener failed for %s", change.path, exc_info=True)
