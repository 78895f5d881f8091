"""Durable key-value storage."""

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .config import CONFIG


class KeyValueStore(ABC):
    """String-keyed store of string values"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    def close(self) -> None:
        pass


class MemoryStore(KeyValueStore):
    """Non-durable store for tests and throwaway sessions"""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value


class SQLiteStore(KeyValueStore):
    """SQLite-backed store; keys are scoped to a namespace"""

    def __init__(self, db_path: Optional[str] = None, namespace: Optional[str] = None):
        self.namespace = namespace or CONFIG["store_namespace"]
        self.conn = sqlite3.connect(db_path or CONFIG["store_path"], check_same_thread=False)
        self._init_schema()

    def _init_schema(self):
        """Create database tables"""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            )
        """)
        self.conn.commit()

    def get(self, key):
        cursor = self.conn.execute(
            "SELECT value FROM kv_store WHERE namespace = ? AND key = ?",
            (self.namespace, key)
        )
        row = cursor.fetchone()
        return row[0] if row else None

    def set(self, key, value):
        now = datetime.now().isoformat()
        self.conn.execute("""
            INSERT INTO kv_store (namespace, key, value, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(namespace, key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
        """, (self.namespace, key, value, now))
        self.conn.commit()

    def close(self):
        self.conn.close()
