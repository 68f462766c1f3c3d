"""pymaxxi - Telemetry state-tree synchronization for MaxxiCharge controllers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymaxxi")
except PackageNotFoundError:
    __version__ = "0+local"
from pymaxxi.adapter import CommandHandler, EcoModeHook, MaxxiAdapter
from pymaxxi.config import MaxxiConfig
from pymaxxi.exceptions import MaxxiConfigError, MaxxiError, MaxxiStoreError
from pymaxxi.ingestion.materialize import LeafOutcome, MaterializeReport, TreeMaterializer
from pymaxxi.ingestion.normalize import sanitize, validate_interval
from pymaxxi.presence import PresenceState, PresenceTracker
from pymaxxi.roles import determine_role
from pymaxxi.state.cache import ExistenceCache
from pymaxxi.state.objects import ObjectDefinition, ScalarType, StateChange, StateValue
from pymaxxi.state.store import InMemoryStateStore, StateStoreBackend

__all__ = [
    "__version__",
    "CommandHandler",
    "EcoModeHook",
    "ExistenceCache",
    "InMemoryStateStore",
    "LeafOutcome",
    "MaterializeReport",
    "MaxxiAdapter",
    "MaxxiConfig",
    "MaxxiConfigError",
    "MaxxiError",
    "MaxxiStoreError",
    "ObjectDefinition",
    "PresenceState",
    "PresenceTracker",
    "ScalarType",
    "StateChange",
    "StateStoreBackend",
    "StateValue",
    "TreeMaterializer",
    "determine_role",
    "sanitize",
    "validate_interval",
]
