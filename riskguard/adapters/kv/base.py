"""Key-value store interface.

The rate limit engine depends on this abstraction only, so the storage
backend (remote REST store or in-process map) can be swapped at startup.

Contract shared by all implementations:
- Reads of an expired entry behave exactly like reads of an absent one.
- Transport failures never raise; callers receive a neutral value instead
  (``get`` -> None, ``set`` -> False, ``incr`` -> 0, ``delete`` -> 0).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

KVValue = str | int


class AbstractKeyValueStore(ABC):
    """Interface for async key-value stores with per-key expiry."""

    @abstractmethod
    async def get(self, key: str) -> KVValue | None:
        """Return the stored scalar, or None if absent, expired or unreachable."""
        raise NotImplementedError

    @abstractmethod
    async def set(
        self,
        key: str,
        value: KVValue,
        *,
        expire_seconds: int | None = None,
    ) -> bool:
        """Store a value, optionally expiring it after ``expire_seconds``.

        Args:
            key: Entry key.
            value: Scalar to store.
            expire_seconds: Lifetime of the entry; None keeps it until overwritten.

        Returns:
            True when the write was accepted.
        """
        raise NotImplementedError

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Atomically increment a counter, initializing it to 1 when absent.

        Returns:
            The incremented value, or 0 when the store could not be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Delete a key and return the number of removed entries (0 or 1)."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the store."""
        return None
