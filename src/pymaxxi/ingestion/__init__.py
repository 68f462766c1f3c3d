"""Ingestion layer.

This package turns telemetry snapshots received from charge controllers into
writes against the flat state tree.
"""

__all__: list[str] = []
