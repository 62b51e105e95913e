"""Host key-value storage backing the task history."""

from vault_clipper.storage.kv import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
]
