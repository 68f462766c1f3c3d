"""Process-lifetime cache of namespace paths known to exist."""

from __future__ import annotations

from collections.abc import Iterator


class ExistenceCache:
    """Monotonic set of paths already confirmed in the authoritative store.

    The cache is advisory. A miss must always be followed by an authoritative
    lookup, and a path may only be added once it has been confirmed or
    created. Entries are never removed.
    """

    def __init__(self) -> None:
        self._paths: set[str] = set()

    def has(self, path: str) -> bool:
        return path in self._paths

    def add(self, path: str) -> None:
        self._paths.add(path)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._paths))
