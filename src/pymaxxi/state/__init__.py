"""State/store layer.

This package owns the flat, dot-addressed state tree: the node definitions,
the authoritative store interface and the process-lifetime existence cache
used to keep repeated synchronization cheap.
"""
