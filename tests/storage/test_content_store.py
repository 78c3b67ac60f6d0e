"""
Content Store Contract Tests
============================

Every backend runs through the same contract:
put is idempotent and deduplicating, get(put(B)) == B, and unknown
addresses fail with REVISION_NOT_FOUND.
"""

import pytest
from hypothesis import given, strategies as st

from mdhost.contracts.base import ContentAddress, ErrorCode
from mdhost.storage import (
    FileContentStore, InMemoryContentStore, StorageConfig, create_content_store
)


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "file":
        return FileContentStore(tmp_path / "blobs")
    return InMemoryContentStore()


class TestPutGet:

    def test_round_trip(self, store):
        put = store.put(b"# Hi")
        assert put.is_success
        got = store.get(put.value)
        assert got.is_success
        assert got.value == b"# Hi"

    def test_put_returns_content_address(self, store):
        result = store.put(b"hello")
        assert result.value == ContentAddress.compute(b"hello")

    def test_empty_payload(self, store):
        address = store.put(b"").value
        assert store.get(address).value == b""

    def test_unknown_address_not_found(self, store):
        missing = ContentAddress.compute(b"never stored")
        result = store.get(missing)
        assert result.is_failure
        assert result.error.code == ErrorCode.REVISION_NOT_FOUND
        assert not store.contains(missing)


class TestIdempotency:

    def test_repeated_put_same_address(self, store):
        addresses = {store.put(b"same bytes").value for _ in range(5)}
        assert len(addresses) == 1
        assert store.contains(addresses.pop())

    def test_memory_store_keeps_one_copy(self):
        store = InMemoryContentStore()
        for _ in range(10):
            store.put(b"dup")
        store.put(b"other")
        assert len(store) == 2

    def test_file_store_keeps_one_blob(self, tmp_path):
        store = FileContentStore(tmp_path)
        for _ in range(3):
            store.put(b"dup")
        blobs = [p for p in tmp_path.rglob("*") if p.is_file()]
        assert len(blobs) == 1
        assert blobs[0].read_bytes() == b"dup"

    def test_file_store_leaves_no_temp_files(self, tmp_path):
        store = FileContentStore(tmp_path)
        store.put(b"one")
        store.put(b"two")
        assert not [p for p in tmp_path.rglob(".tmp-*")]

    @given(st.lists(st.binary(max_size=256), max_size=20))
    def test_round_trip_property(self, payloads):
        store = InMemoryContentStore()
        addresses = [store.put(p).value for p in payloads]
        for payload, address in zip(payloads, addresses):
            assert store.get(address).value == payload
        assert len(store) == len(set(payloads))


class TestFileStorePersistence:

    def test_survives_reopen(self, tmp_path):
        address = FileContentStore(tmp_path).put(b"durable").value
        reopened = FileContentStore(tmp_path)
        assert reopened.get(address).value == b"durable"

    def test_blob_path_sharded_by_prefix(self, tmp_path):
        store = FileContentStore(tmp_path)
        address = store.put(b"abc").value
        path = store.blob_path(address)
        assert path.parent.name == address.hex[:2]
        assert path.name == address.hex


class TestFactory:

    def test_memory_default(self):
        assert isinstance(create_content_store(), InMemoryContentStore)

    def test_file_backend(self, tmp_path):
        store = create_content_store(StorageConfig(backend_type="file", storage_dir=str(tmp_path)))
        assert isinstance(store, FileContentStore)
        assert store.root == tmp_path / "blobs"

    def test_file_backend_requires_dir(self):
        with pytest.raises(ValueError):
            StorageConfig(backend_type="file")
