"""Custom exception hierarchy for pymaxxi."""

from __future__ import annotations


class MaxxiError(Exception):
    """Base exception for all pymaxxi errors."""


class MaxxiConfigError(MaxxiError):
    """Invalid or missing configuration."""


class MaxxiStoreError(MaxxiError):
    """The authoritative state store rejected an object or value write."""

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
    ) -> None:
        self.path = path
        super().__init__(message)
