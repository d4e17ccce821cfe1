"""
Object retrieval port.

The core never moves bytes. It only asks for a time-limited retrieval
reference for an object it already knows the storage key of.
"""

from __future__ import annotations

from typing import Protocol


class PresignError(Exception):
    """Raised when a retrieval reference cannot be produced or validated."""


class PresignPort(Protocol):
    def presign_download(self, storage_key: str, ttl_seconds: int) -> str:
        """
        Build a retrieval URL for storage_key that stops working after ttl_seconds.

        Raises:
            PresignError: if the reference cannot be generated
        """
        ...
