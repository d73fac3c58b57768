"""Activity log adapters.

The analysis rate limit counts rows in a system of record instead of a
key-value counter. Appwrite is used when configured; otherwise an
in-process log keeps the same behavior for development and tests.
"""

from riskguard.adapters.activity.appwrite import AppwriteActivityLog
from riskguard.adapters.activity.base import AbstractActivityLog
from riskguard.adapters.activity.factory import create_activity_log
from riskguard.adapters.activity.in_memory import InMemoryActivityLog

__all__ = [
    "AbstractActivityLog",
    "AppwriteActivityLog",
    "InMemoryActivityLog",
    "create_activity_log",
]
