"""Record store backends.

``RedisStore`` needs the ``redis`` extra and is imported from
``lnpaywall.stores.redis`` directly.
"""

from lnpaywall.stores.memory import MemoryStore
from lnpaywall.stores.sqlite import SQLiteStore

__all__ = ["MemoryStore", "SQLiteStore"]
