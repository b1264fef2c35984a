import json
from decimal import Decimal

import pytest

from common.exceptions import StorageError
from modules.cart.storage import CartStorage, FileBackend, MemoryBackend, StorageBackend
from tests.helpers import make_item


class BrokenBackend(StorageBackend):
    def read(self, key):
        raise OSError("disk gone")

    def write(self, key, data):
        raise OSError("disk full")

    def delete(self, key):
        raise OSError("read-only")


@pytest.fixture
def storage():
    return CartStorage(MemoryBackend(), key="cart")


class TestSave:
    def test_round_trip(self, storage):
        items = [make_item(price="9.99", quantity=2, variant={"color": "red"})]
        assert storage.save(items) is True
        assert storage.load() == [{
            "id": 1,
            "name": "Widget",
            "price": Decimal("9.99"),
            "quantity": 2,
            "image": None,
            "variant": {"color": "red"},
        }]

    def test_invalid_items_are_skipped(self, storage):
        storage.save([make_item(product_id=1), {"id": -1, "name": "Bad", "price": 1}])
        assert [item["id"] for item in storage.load()] == [1]

    def test_rejects_non_list(self, storage):
        with pytest.raises(StorageError) as exc:
            storage.save({"id": 1})
        assert exc.value.code == "INVALID_FORMAT"

    def test_rejects_too_many_items(self):
        storage = CartStorage(MemoryBackend(), max_items=2)
        with pytest.raises(StorageError) as exc:
            storage.save([make_item(product_id=i) for i in range(1, 4)])
        assert exc.value.code == "SIZE_LIMIT"

    def test_rejects_oversized_payload(self):
        storage = CartStorage(MemoryBackend(), max_bytes=20)
        with pytest.raises(StorageError) as exc:
            storage.save([make_item()])
        assert exc.value.code == "STORAGE_LIMIT"

    def test_backend_failure(self):
        storage = CartStorage(BrokenBackend())
        with pytest.raises(StorageError) as exc:
            storage.save([make_item()])
        assert exc.value.code == "STORAGE_ERROR"


class TestLoad:
    def test_missing_is_empty(self, storage):
        assert storage.load() == []

    def test_corrupt_json_is_cleared(self, storage):
        storage.backend.write("cart", "{not json")
        assert storage.load() == []
        assert storage.backend.read("cart") is None

    def test_non_list_is_cleared(self, storage):
        storage.backend.write("cart", json.dumps({"id": 1}))
        assert storage.load() == []
        assert storage.backend.read("cart") is None

    def test_invalid_items_dropped_and_cleaned_cart_saved(self, storage):
        raw = [make_item(product_id=1), {"id": "x", "name": "", "price": "abc"}]
        storage.backend.write("cart", json.dumps(raw))

        assert [item["id"] for item in storage.load()] == [1]
        assert len(json.loads(storage.backend.read("cart"))) == 1

    def test_deeply_nested_json_is_cleared(self, storage):
        storage.backend.write("cart", "[" * 100_000 + "]" * 100_000)
        assert storage.load() == []
        assert storage.backend.read("cart") is None

    def test_oversized_snapshot_is_cleared_even_when_all_items_are_valid(self):
        storage = CartStorage(MemoryBackend(), key="cart")
        storage.save([make_item(product_id=i, name="x" * 150) for i in range(1, 4)])
        small = CartStorage(storage.backend, key="cart", max_bytes=100)

        assert small.load() == []
        assert storage.backend.read("cart") is None

    def test_unreadable_backend_is_empty(self):
        assert CartStorage(BrokenBackend()).load() == []

    def test_clear(self, storage):
        storage.save([make_item()])
        assert storage.clear() is True
        assert storage.load() == []
        assert CartStorage(BrokenBackend()).clear() is False


class TestFileBackend:
    def test_round_trip_through_files(self, tmp_path):
        storage = CartStorage(FileBackend(tmp_path / "carts"), key="cart")
        storage.save([make_item(name="Café", price=3)])

        assert (tmp_path / "carts" / "cart.json").exists()
        assert storage.load()[0]["name"] == "Café"

        storage.clear()
        assert not (tmp_path / "carts" / "cart.json").exists()
