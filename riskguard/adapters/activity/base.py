from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class AbstractActivityLog(ABC):
    """Interface for the per-user log of expensive operations.

    Unlike the key-value stores, implementations raise ``StorageAppError``
    when the backing system cannot be reached; callers decide whether that
    fails open or closed.
    """

    @abstractmethod
    async def count_since(self, user_id: str, since: datetime) -> int:
        """Count entries for ``user_id`` created strictly after ``since``."""
        raise NotImplementedError

    @abstractmethod
    async def record(self, user_id: str, created: datetime) -> None:
        """Append an entry for ``user_id`` at ``created``."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
