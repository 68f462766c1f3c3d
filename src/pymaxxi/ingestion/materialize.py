"""Flatten telemetry documents into the state tree.

One call to :meth:`TreeMaterializer.materialize` per received snapshot:

- mapping keys are sanitized into path segments;
- every array element gets its own container level (``<key>.<index>``);
- scalars become leaves whose metadata is fixed on first creation, after
  which only the value is rewritten (acknowledged).

Leaf failures are isolated: a store error on one leaf is logged and recorded
in the returned :class:`MaterializeReport` while the remaining leaves are
still written.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pymaxxi._redact import redact_for_log
from pymaxxi.ingestion.document import MappingNode, Node, ScalarNode, SequenceNode, to_node
from pymaxxi.ingestion.normalize import sanitize
from pymaxxi.roles import determine_role
from pymaxxi.state.cache import ExistenceCache
from pymaxxi.state.ensure import ensure_state_exists
from pymaxxi.state.objects import ObjectDefinition
from pymaxxi.state.store import StateStoreBackend

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LeafOutcome:
    """Result of ensuring and writing a single leaf."""

    path: str
    value: Any = None
    created: tuple[str, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class MaterializeReport:
    base_path: str
    outcomes: list[LeafOutcome] = field(default_factory=list)

    @property
    def written(self) -> list[str]:
        return [outcome.path for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[LeafOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def created(self) -> list[str]:
        return [path for outcome in self.outcomes for path in outcome.created]

    @property
    def ok(self) -> bool:
        return not self.failed


class TreeMaterializer:
    """Write telemetry documents into a :class:`StateStoreBackend`.

    The existence cache is shared for the lifetime of the owning adapter so
    that repeated snapshots only touch the store for value writes.
    """

    def __init__(
        self,
        store: StateStoreBackend,
        cache: ExistenceCache | None = None,
        *,
        classify: Callable[[str], str] = determine_role,
    ) -> None:
        self._store = store
        self._cache = cache if cache is not None else ExistenceCache()
        self._classify = classify

    @property
    def cache(self) -> ExistenceCache:
        return self._cache

    async def materialize(self, base_path: str, document: Any) -> MaterializeReport:
        """Materialize *document* below *base_path*."""
        report = MaterializeReport(base_path=base_path)
        _logger.debug("Materializing %s document=%s", base_path, redact_for_log(document))

        node = to_node(document)
        if isinstance(node, MappingNode):
            await self._walk_mapping(base_path, node, report)
        elif isinstance(node, SequenceNode):
            for index, item in enumerate(node.items):
                await self._visit(f"{base_path}.{index}", str(index), item, report)
        else:
            _logger.warning("Ignoring scalar telemetry document for %s", base_path)

        if report.failed:
            _logger.warning(
                "Materialized %s with %d failed leaf write(s) of %d",
                base_path,
                len(report.failed),
                len(report.outcomes),
            )
        return report

    async def _walk_mapping(self, base_path: str, node: MappingNode, report: MaterializeReport) -> None:
        for key, child in node.entries:
            segment = sanitize(key)
            if not segment:
                _logger.warning("Skipping empty telemetry key below %s", base_path)
                report.outcomes.append(LeafOutcome(path=base_path, error="empty key"))
                continue
            await self._visit(f"{base_path}.{segment}", key, child, report)

    async def _visit(self, path: str, name: str, node: Node, report: MaterializeReport) -> None:
        if isinstance(node, SequenceNode):
            for index, item in enumerate(node.items):
                await self._visit(f"{path}.{index}", name, item, report)
        elif isinstance(node, MappingNode):
            await self._walk_mapping(path, node, report)
        else:
            report.outcomes.append(await self._write_leaf(path, name, node))

    async def _write_leaf(self, path: str, name: str, node: ScalarNode) -> LeafOutcome:
        try:
            definition = ObjectDefinition.leaf(name, node.scalar_type, self._classify(name))
            created = await ensure_state_exists(self._store, self._cache, path, definition)
            await self._store.set_state(path, node.value, ack=True)
        except Exception as exc:
            _logger.warning("Failed to write %s: %s", path, exc)
            _logger.debug("Leaf write failure for %s", path, exc_info=True)
            return LeafOutcome(path=path, value=node.value, error=str(exc) or type(exc).__name__)
        return LeafOutcome(path=path, value=node.value, created=tuple(created))
