"""Asynchronous key-value stores holding JSON records."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy import update as sa_update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, SQLModel, col, select

from vault_clipper.storage.common import build_sqlite_engine, utc_now
from vault_clipper.storage.sqlmodel_models import KeyValueEntry

logger = logging.getLogger(__name__)

_KV_TABLE = KeyValueEntry.__table__
Record = dict[str, Any]
RecordMutation = Callable[[Record | None], Record | None]


class KeyValueStore(Protocol):
    """Host storage of whole JSON records.

    Read-modify-write goes through ``update``, which applies the mutation
    atomically against every other writer, including other processes.
    """

    async def get(self, key: str) -> Record | None:
        """Return the stored record or None."""

    async def update(self, key: str, mutate: RecordMutation) -> Record | None:
        """Apply ``mutate`` to the current record and store its result.

        ``mutate`` gets a private copy (None when the key is missing) and
        returns the new record, or None to leave storage untouched. It may be
        called more than once and must not have side effects beyond its
        return value. Returns what the last call returned.
        """


class SqliteKeyValueStore:
    """Key-value store persisted in one SQLite table.

    Each row carries a version; ``update`` writes only if the version it read
    is still current and retries otherwise.
    """

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def init_schema(self) -> None:
        """Create tables if missing."""

        SQLModel.metadata.create_all(self.engine, tables=[_KV_TABLE])

    def close(self) -> None:
        self.engine.dispose()

    async def get(self, key: str) -> Record | None:
        return await asyncio.to_thread(self._get, key)

    async def update(self, key: str, mutate: RecordMutation) -> Record | None:
        return await asyncio.to_thread(self._update, key, mutate)

    def _get(self, key: str) -> Record | None:
        with Session(self.engine) as session:
            row = session.exec(select(KeyValueEntry).where(KeyValueEntry.key == key)).one_or_none()
            if row is None:
                return None
            return json.loads(row.value_json)

    def _update(self, key: str, mutate: RecordMutation) -> Record | None:
        while True:
            with Session(self.engine) as session:
                row = session.exec(
                    select(KeyValueEntry).where(KeyValueEntry.key == key),
                ).one_or_none()
                current = json.loads(row.value_json) if row is not None else None
                value = mutate(current)
                if value is None:
                    return None
                payload = json.dumps(value, ensure_ascii=False)
                now = utc_now()
                if row is None:
                    statement = (
                        sqlite_insert(_KV_TABLE)
                        .values(key=key, value_json=payload, version=1, updated_at=now)
                        .on_conflict_do_nothing(index_elements=[_KV_TABLE.c.key])
                    )
                else:
                    statement = (
                        sa_update(KeyValueEntry)
                        .where(
                            col(KeyValueEntry.key) == key,
                            col(KeyValueEntry.version) == row.version,
                        )
                        .values(value_json=payload, version=row.version + 1, updated_at=now)
                    )
                result = session.exec(statement)
                if result.rowcount != 1:
                    session.rollback()
                    logger.debug("Concurrent write to %s; retrying update", key)
                    continue
                session.commit()
                return value


class MemoryKeyValueStore:
    """In-process store; ``latency_seconds`` delays every call."""

    def __init__(self, *, latency_seconds: float = 0.0) -> None:
        self.latency_seconds = latency_seconds
        self._data: dict[str, Record] = {}
        self.writes = 0

    async def get(self, key: str) -> Record | None:
        await asyncio.sleep(self.latency_seconds)
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def update(self, key: str, mutate: RecordMutation) -> Record | None:
        await asyncio.sleep(self.latency_seconds)
        current = self._data.get(key)
        value = mutate(copy.deepcopy(current) if current is not None else None)
        if value is not None:
            self._data[key] = copy.deepcopy(value)
            self.writes += 1
        return value
