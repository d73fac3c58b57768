"""Key-value store adapters.

Every rate limit counter, lockout marker and the global toggle live behind
``AbstractKeyValueStore``. The remote (Upstash REST) and in-process variants
are interchangeable; ``create_kv_store`` picks one from settings.
"""

from riskguard.adapters.kv.base import AbstractKeyValueStore, KVValue
from riskguard.adapters.kv.factory import create_kv_store
from riskguard.adapters.kv.in_memory import InMemoryKeyValueStore
from riskguard.adapters.kv.upstash import UpstashKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "InMemoryKeyValueStore",
    "KVValue",
    "UpstashKeyValueStore",
    "create_kv_store",
]
