from __future__ import annotations

from pathlib import Path

import pytest

from statement_ingest.errors import AmbiguousMappingError
from statement_ingest.models import HeaderMapping, MappingRecord, Tag
from statement_ingest.signatures import SIGNATURE_ERROR
from statement_ingest.store import InMemoryMappingStore, MappingRegistry, SqlMappingStore
from tests.helpers.db import bootstrap_sqlite_db, stored_keys

D, I, E, S, X = Tag.DATE, Tag.INCOME, Tag.EXPENSES, Tag.DESCRIPTION, Tag.IGNORE


@pytest.fixture(params=["memory", "sqlite"])
def registry(request, tmp_path: Path) -> MappingRegistry:
    if request.param == "memory":
        return MappingRegistry(InMemoryMappingStore())
    url = bootstrap_sqlite_db(tmp_path / "store.sqlite")
    return MappingRegistry(SqlMappingStore(url))


def test_remember_then_lookup(registry):
    mapping = HeaderMapping.of([D, S, E, X])
    record = registry.remember(
        "st_abc", mapping, mapping_sig="mp_xyz", data_row_index=2, currency="EUR", file_name="a.csv"
    )
    assert record is not None

    assert registry.lookup("st_abc") == mapping
    stored = registry.lookup_record("st_abc")
    assert stored.mapping_sig == "mp_xyz"
    assert stored.data_row_index == 2
    assert stored.currency == "EUR"
    assert stored.file_names == ["a.csv"]


def test_remember_keeps_created_at_and_merges_file_names(registry):
    mapping = HeaderMapping.of([D, S, E])
    first = registry.remember("st_abc", mapping, mapping_sig="mp_1", file_name="a.csv")
    registry.remember("st_abc", mapping, mapping_sig="mp_1", file_name="b.csv")
    registry.remember("st_abc", mapping, mapping_sig="mp_1", file_name="a.csv")

    stored = registry.lookup_record("st_abc")
    assert stored.file_names == ["a.csv", "b.csv"]
    assert stored.created_at == first.created_at


def test_lookup_miss_and_forget(registry):
    assert registry.lookup("st_missing") is None
    registry.remember("st_abc", HeaderMapping.of([D, E]), mapping_sig="mp_1")
    registry.forget("st_abc")
    assert registry.lookup("st_abc") is None
    registry.forget("st_abc")


def test_conflicting_mapping_is_never_persisted(registry):
    with pytest.raises(AmbiguousMappingError):
        registry.remember("st_abc", HeaderMapping.of([D, D, E]), mapping_sig="mp_1")
    assert registry.lookup("st_abc") is None


def test_error_signature_is_never_a_key(registry):
    assert registry.remember(SIGNATURE_ERROR, HeaderMapping.of([D, E]), mapping_sig="mp_1") is None
    assert registry.lookup(SIGNATURE_ERROR) is None


def test_corrupt_value_is_treated_as_a_miss():
    store = InMemoryMappingStore()
    store.set("st_bad", {"mapping": [], "structureSig": "st_bad", "mappingSig": "mp_1"})
    store.set("st_worse", {"mapping": ["Date", "Wat"], "structureSig": "st_worse"})
    registry = MappingRegistry(store)
    assert registry.lookup("st_bad") is None
    assert registry.lookup("st_worse") is None


def test_stored_value_uses_camel_case_keys_and_keeps_extras():
    store = InMemoryMappingStore()
    registry = MappingRegistry(store)
    registry.remember("st_abc", HeaderMapping.of([D, "-", E]), mapping_sig="mp_1")
    value = store.get("st_abc")
    assert value["mapping"] == ["Date", "Ignore", "Expenses"]
    assert {"structureSig", "mappingSig", "createdAt", "fileNames"} <= set(value)

    value["note"] = "added elsewhere"
    record = MappingRecord.model_validate(value)
    assert record.to_store_value()["note"] == "added elsewhere"


def test_sql_store_persists_json_rows(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "store.sqlite")
    store = SqlMappingStore(url)
    store.set("st_b", {"mapping": ["Date"], "structureSig": "st_b", "mappingSig": "mp"})
    store.set("st_a", {"mapping": ["Income"], "structureSig": "st_a", "mappingSig": "mp"})
    store.set("st_a", {"mapping": ["Expenses"], "structureSig": "st_a", "mappingSig": "mp"})

    assert stored_keys(url) == ["st_a", "st_b"]
    assert store.get("st_a")["mapping"] == ["Expenses"]
    store.delete("st_b")
    assert store.get("st_b") is None
