"""Record Store Adapter — tests for SQL/file backends, failover and the carnet repository.

Tests cover:
    - SqlKeyValueStore get/put round trip and upsert on the same key
    - JsonFileKeyValueStore: missing file reads empty; corrupt or non-object file raises StoreError
    - FallbackKeyValueStore: primary used when healthy and mirrored, secondary on get/put
      failure, StoreError only when both fail
    - Writes made during an outage are restored to the primary once it recovers
    - Refused database connections surface as DatabaseError and fail over
    - CarnetStore: missing key is an empty collection, records use the persisted field names
    - Broken database (no kv_records table) fails over to the JSON file
"""

import json

import pytest
from sqlalchemy import text

from app.core.errors import DatabaseError, StoreError
from app.infrastructure.database import DatabaseSessionManager
from app.infrastructure.record_store import (
    CarnetStore, FallbackKeyValueStore, JsonFileKeyValueStore, SqlKeyValueStore,
)
from tests.helpers import make_carnet
from tests.services.memory_store import MemoryKeyValueStore


# ─── SQL backend ─────────────────────────────────────────────────

async def test_sql_store_round_trip(test_db_manager):
    store = SqlKeyValueStore(test_db_manager)
    assert await store.get("villanueva-carnets") is None

    await store.put("villanueva-carnets", [{"id": "carnet-1"}])
    await store.put("villanueva-carnets", [{"id": "carnet-1"}, {"id": "carnet-2"}])

    assert await store.get("villanueva-carnets") == [
        {"id": "carnet-1"}, {"id": "carnet-2"},
    ]


async def test_sql_store_without_table_raises_database_error(test_engine, test_db_manager):
    async with test_engine.begin() as conn:
        await conn.execute(text("DROP TABLE kv_records"))

    with pytest.raises(DatabaseError) as exc_info:
        await SqlKeyValueStore(test_db_manager).get("villanueva-carnets")
    assert isinstance(exc_info.value, StoreError)


# ─── file backend ────────────────────────────────────────────────

async def test_file_store_missing_file_reads_none(fallback_path):
    assert await JsonFileKeyValueStore(fallback_path).get("any") is None


async def test_file_store_round_trip_keeps_other_keys(fallback_path):
    store = JsonFileKeyValueStore(fallback_path)
    await store.put("a", [1])
    await store.put("b", {"x": "Teléfono"})

    assert await store.get("a") == [1]
    document = json.loads(fallback_path.read_text(encoding="utf-8"))
    assert document == {"a": [1], "b": {"x": "Teléfono"}}


async def test_file_store_corrupt_file_raises_store_error(fallback_path):
    fallback_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        await JsonFileKeyValueStore(fallback_path).get("a")


@pytest.mark.parametrize("content", ["[1, 2]", '"text"', "null"])
async def test_file_store_non_object_document_raises_store_error(fallback_path, content):
    fallback_path.write_text(content, encoding="utf-8")
    store = JsonFileKeyValueStore(fallback_path)

    with pytest.raises(StoreError):
        await store.get("a")
    with pytest.raises(StoreError):
        await store.put("a", [1])
    assert fallback_path.read_text(encoding="utf-8") == content


# ─── unreachable database ────────────────────────────────────────

class _RefusedSession:
    """Session whose connection attempt is refused by the server."""

    async def execute(self, *args, **kwargs):
        raise ConnectionRefusedError(111, "Connect call failed ('10.0.0.5', 5432)")

    async def merge(self, *args, **kwargs):
        raise ConnectionRefusedError(111, "Connect call failed ('10.0.0.5', 5432)")

    async def rollback(self):
        pass

    async def close(self):
        pass


def _refusing_manager() -> DatabaseSessionManager:
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager._session_factory = _RefusedSession
    return manager


async def test_refused_connection_raises_database_error():
    store = SqlKeyValueStore(_refusing_manager())

    with pytest.raises(DatabaseError) as exc_info:
        await store.get("villanueva-carnets")
    assert exc_info.value.operation == "connect"
    assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)

    with pytest.raises(DatabaseError):
        await store.put("villanueva-carnets", [])


async def test_refused_connection_fails_over_to_file(fallback_path):
    store = CarnetStore(FallbackKeyValueStore(
        SqlKeyValueStore(_refusing_manager()), JsonFileKeyValueStore(fallback_path),
    ))

    await store.save_all([make_carnet("carnet-a")])

    assert [c.id for c in await store.load_all()] == ["carnet-a"]
    document = json.loads(fallback_path.read_text(encoding="utf-8"))
    assert [r["id"] for r in document["villanueva-carnets"]] == ["carnet-a"]


# ─── failover ────────────────────────────────────────────────────

async def test_fallback_uses_primary_and_mirrors_to_secondary():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    store = FallbackKeyValueStore(primary, secondary)

    await store.put("k", 1)

    assert primary.data == {"k": 1}
    assert secondary.data == {"k": 1}
    assert await store.get("k") == 1


async def test_fallback_put_goes_to_secondary_on_primary_failure():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    primary.fail_put_after = 0
    store = FallbackKeyValueStore(primary, secondary)

    await store.put("k", 1)

    assert secondary.data == {"k": 1}


async def test_fallback_get_reads_secondary_on_primary_failure():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    primary.fail_get = True
    secondary.data["k"] = "from-secondary"

    assert await FallbackKeyValueStore(primary, secondary).get("k") == "from-secondary"


async def test_fallback_raises_when_both_fail():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    primary.fail_put_after = 0
    secondary.fail_put_after = 0

    with pytest.raises(StoreError):
        await FallbackKeyValueStore(primary, secondary).put("k", 1)


async def test_fallback_serves_outage_writes_over_stale_primary():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    primary.data["k"] = "old"
    primary.fail_put_after = 0
    store = FallbackKeyValueStore(primary, secondary)

    await store.put("k", "new")

    assert await store.get("k") == "new"
    assert primary.data == {"k": "old"}


async def test_fallback_restores_outage_writes_when_primary_recovers():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    primary.fail_get = True
    primary.fail_put_after = 0
    store = FallbackKeyValueStore(primary, secondary)
    await store.put("k", ["ana"])

    primary.fail_get = False
    primary.fail_put_after = None

    assert await store.get("k") == ["ana"]
    assert primary.data == {"k": ["ana"]}

    await store.put("k", ["ana", "luis"])
    assert await store.get("k") == ["ana", "luis"]
    assert primary.data == secondary.data == {"k": ["ana", "luis"]}


async def test_fallback_put_after_recovery_clears_pending_key():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    primary.fail_put_after = 0
    store = FallbackKeyValueStore(primary, secondary)
    await store.put("k", 1)

    primary.fail_put_after = None
    await store.put("k", 2)
    secondary.data["k"] = "edited-elsewhere"

    assert await store.get("k") == 2


async def test_fallback_mirror_failure_keeps_primary_write():
    primary, secondary = MemoryKeyValueStore("p"), MemoryKeyValueStore("s")
    secondary.fail_put_after = 0
    store = FallbackKeyValueStore(primary, secondary)

    await store.put("k", 1)

    assert primary.data == {"k": 1}
    assert await store.get("k") == 1


async def test_fallback_name_lists_both_backends():
    store = FallbackKeyValueStore(MemoryKeyValueStore("p"), MemoryKeyValueStore("s"))
    assert store.name == "p+s"


async def test_broken_database_fails_over_to_file(test_engine, carnet_store, fallback_path):
    async with test_engine.begin() as conn:
        await conn.execute(text("DROP TABLE kv_records"))

    await carnet_store.save_all([make_carnet("carnet-a")])

    document = json.loads(fallback_path.read_text(encoding="utf-8"))
    assert [r["id"] for r in document["villanueva-carnets"]] == ["carnet-a"]
    assert [c.id for c in await carnet_store.load_all()] == ["carnet-a"]


# ─── carnet repository ───────────────────────────────────────────

async def test_carnet_store_missing_key_is_empty(memory_kv):
    assert await CarnetStore(memory_kv).load_all() == []


async def test_carnet_store_writes_persisted_record_shape(memory_kv):
    carnet = make_carnet("carnet-a")
    store = CarnetStore(memory_kv)

    await store.save_all([carnet])

    records = memory_kv.data["villanueva-carnets"]
    assert records[0]["id"] == "carnet-a"
    assert records[0]["tipo"] == "Individual"
    assert records[0]["estado"] == "Activo"
    assert records[0]["miembros"][0]["numeroLote"] == "10"
    assert await store.load_all() == [carnet]


async def test_carnet_store_custom_key(memory_kv):
    await CarnetStore(memory_kv, "otro-key").save_all([make_carnet()])
    assert list(memory_kv.data) == ["otro-key"]
