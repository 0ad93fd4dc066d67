"""Record Store Adapter — key-value backends with transparent failover, and the carnet repository.

Invariants:
    - Every backend implements KeyValueStore.get/put and raises StoreError on failure
    - FallbackKeyValueStore retries the SAME call on the secondary when the primary fails;
      callers see StoreError only when both backends fail
    - A value written only to the secondary is never shadowed by the primary's older copy:
      the key stays pending until it is restored to the primary
    - The JSON file must hold an object; anything else is a StoreError, never a crash
    - CarnetStore reads and writes the whole collection under one logical key
    - A missing key reads as an empty collection

Design Decisions:
    - SQL primary (kv_records table) + JSON file secondary: the file survives a dead
      database the same way localStorage backed up IndexedDB in the browser app
    - File IO runs in a worker thread (asyncio.to_thread) to keep the event loop free
    - Writes to the JSON file go through a temp file + os.replace (no torn writes)
    - Pending keys live in memory only: a restart during an outage reads the primary again
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from sqlalchemy import select

from app.core.carnet import Carnet, carnet_from_record, carnet_to_record
from app.core.errors import StoreError
from app.core.repository_protocols import KeyValueStore
from app.infrastructure.database import DatabaseSessionManager
from app.models.kv_record import KeyValueRecord

logger = logging.getLogger(__name__)


class SqlKeyValueStore:
    """Primary backend — one kv_records row per key."""

    name = "database"

    def __init__(self, manager: DatabaseSessionManager):
        self._manager = manager

    async def get(self, key: str) -> Any | None:
        async with self._manager.session() as db:
            result = await db.execute(
                select(KeyValueRecord.value).where(KeyValueRecord.key == key),
            )
            return result.scalar_one_or_none()

    async def put(self, key: str, value: Any) -> None:
        async with self._manager.session() as db:
            await db.merge(KeyValueRecord(key=key, value=value))
            await db.commit()


class JsonFileKeyValueStore:
    """Secondary backend — all keys in one JSON document on local disk."""

    name = "file"

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def _read_document(self) -> dict:
        if not self._path.exists():
            return {}
        with self._path.open(encoding="utf-8") as fh:
            document = json.load(fh)
        if not isinstance(document, dict):
            raise ValueError("fallback store document is not a JSON object")
        return document

    def _write_document(self, document: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(document, fh, ensure_ascii=False)
        os.replace(tmp, self._path)

    def _put_sync(self, key: str, value: Any) -> None:
        document = self._read_document()
        document[key] = value
        self._write_document(document)

    async def get(self, key: str) -> Any | None:
        try:
            document = await asyncio.to_thread(self._read_document)
        except (OSError, ValueError) as e:
            raise StoreError(str(e), "get")
        return document.get(key)

    async def put(self, key: str, value: Any) -> None:
        try:
            await asyncio.to_thread(self._put_sync, key, value)
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(str(e), "put")


class FallbackKeyValueStore:
    """Primary backend with a secondary taking over on failure.

    A key written to the secondary during a primary outage is pending: reads
    serve the secondary copy until it has been copied back to the primary.
    Successful primary writes are mirrored to the secondary so it never
    holds an older collection than the primary.
    """

    def __init__(self, primary: KeyValueStore, secondary: KeyValueStore):
        self.primary = primary
        self.secondary = secondary
        self.name = f"{primary.name}+{secondary.name}"
        self._pending: set[str] = set()

    async def _reconcile(self, key: str) -> bool:
        """Copy a pending key back to the primary. False while it still fails."""
        value = await self.secondary.get(key)
        try:
            await self.primary.put(key, value)
        except StoreError as e:
            logger.warning(
                f"Primary store still failing, serving {self.secondary.name}: {e.message}",
                extra={"store": self.primary.name},
            )
            return False
        self._pending.discard(key)
        logger.info(
            f"Restored {key!r} from {self.secondary.name} to primary store",
            extra={"store": self.primary.name},
        )
        return True

    async def get(self, key: str) -> Any | None:
        if key in self._pending and not await self._reconcile(key):
            return await self.secondary.get(key)
        try:
            return await self.primary.get(key)
        except StoreError as e:
            logger.warning(
                f"Primary store get failed, using {self.secondary.name}: {e.message}",
                extra={"store": self.primary.name},
            )
            return await self.secondary.get(key)

    async def put(self, key: str, value: Any) -> None:
        try:
            await self.primary.put(key, value)
        except StoreError as e:
            logger.warning(
                f"Primary store put failed, using {self.secondary.name}: {e.message}",
                extra={"store": self.primary.name},
            )
            await self.secondary.put(key, value)
            self._pending.add(key)
            return

        self._pending.discard(key)
        try:
            await self.secondary.put(key, value)
        except StoreError as e:
            # Primary already holds the value
            logger.warning(
                f"Mirror write to {self.secondary.name} failed: {e.message}",
                extra={"store": self.secondary.name},
            )


class CarnetStore:
    """CarnetRepository over a KeyValueStore — the collection is one blob."""

    def __init__(self, kv: KeyValueStore, key: str = "villanueva-carnets"):
        self._kv = kv
        self._key = key

    async def load_all(self) -> list[Carnet]:
        records = await self._kv.get(self._key)
        return [carnet_from_record(r) for r in records or []]

    async def save_all(self, carnets: list[Carnet]) -> None:
        await self._kv.put(self._key, [carnet_to_record(c) for c in carnets])
        logger.debug(
            f"Saved {len(carnets)} carnet(s)", extra={"store": self._kv.name},
        )
