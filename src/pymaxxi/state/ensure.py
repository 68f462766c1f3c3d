"""Create-if-missing helper shared by the materializer and the adapter."""

from __future__ import annotations

from pymaxxi.ingestion.normalize import parent_path
from pymaxxi.state.cache import ExistenceCache
from pymaxxi.state.objects import ObjectDefinition
from pymaxxi.state.store import StateStoreBackend


async def ensure_object(
    store: StateStoreBackend,
    cache: ExistenceCache,
    path: str,
    definition: ObjectDefinition,
) -> bool:
    """Make sure *path* exists, consulting *cache* before the store.

    Returns ``True`` if this call created the object. The cache is only
    updated after the store confirmed or created the object, so a failing
    create never leaves a false positive behind.
    """
    if cache.has(path):
        return False
    created = False
    if await store.get_object(path) is None:
        created = await store.set_object_not_exists(path, definition)
    cache.add(path)
    return created


async def ensure_state_exists(
    store: StateStoreBackend,
    cache: ExistenceCache,
    path: str,
    definition: ObjectDefinition,
) -> list[str]:
    """Ensure the parent folder of *path* and then *path* itself.

    Returns the paths created by this call, parent first.
    """
    created: list[str] = []
    parent = parent_path(path)
    if parent and await ensure_object(store, cache, parent, ObjectDefinition.folder()):
        created.append(parent)
    if await ensure_object(store, cache, path, definition):
        created.append(path)
    return created
