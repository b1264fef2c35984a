"""
Cart Module - Local Persistence
=================================
Load/save/clear of a cart snapshot through a pluggable backend.

Every item is re-validated on the way in and out. Corrupt data is never
fatal: it is logged, cleared and read back as an empty cart.
"""

import json
import logging
import os
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from config.settings import CART_STORAGE_KEY, CART_STORAGE_DIR, MAX_CART_SIZE, MAX_STORAGE_SIZE
from common.exceptions import CartError, StorageError, ValidationError
from common.sanitizer import validate_cart_item

logger = logging.getLogger("safecart.storage")


# ==========================================
# Backends
# ==========================================

class StorageBackend:
    """Key -> text storage medium. Subclasses own the actual medium."""

    def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def write(self, key: str, data: str):
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError


class MemoryBackend(StorageBackend):

    def __init__(self):
        self.data: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, data: str):
        self.data[key] = data

    def delete(self, key: str):
        self.data.pop(key, None)


class FileBackend(StorageBackend):
    """One UTF-8 JSON file per key inside `directory`."""

    def __init__(self, directory=CART_STORAGE_DIR):
        self.directory = str(directory)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, key: str, data: str):
        os.makedirs(self.directory, exist_ok=True)
        with open(self._path(key), "w", encoding="utf-8") as f:
            f.write(data)

    def delete(self, key: str):
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)


# ==========================================
# Snapshot codec
# ==========================================

def _serialize(item: dict) -> dict:
    price = item["price"]
    return {
        "id": item["id"],
        "name": item["name"],
        "price": float(price) if isinstance(price, Decimal) else price,
        "quantity": item["quantity"],
        "image": item["image"],
        "variant": item["variant"],
    }


class CartStorage:

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        key: str = CART_STORAGE_KEY,
        max_items: int = MAX_CART_SIZE,
        max_bytes: int = MAX_STORAGE_SIZE,
    ):
        self.backend = backend if backend is not None else MemoryBackend()
        self.key = key
        self.max_items = max_items
        self.max_bytes = max_bytes

    def save(self, cart: Sequence[dict]) -> bool:
        """
        Validate and persist the items. Invalid items are skipped.
        Raises StorageError (INVALID_FORMAT / SIZE_LIMIT / STORAGE_LIMIT / STORAGE_ERROR).
        """
        if not isinstance(cart, (list, tuple)):
            raise StorageError("Invalid cart data format", "INVALID_FORMAT")
        if len(cart) > self.max_items:
            raise StorageError(f"Cart size exceeds limit ({self.max_items} items)", "SIZE_LIMIT")

        validated = self._validate_all(cart, "Skipping invalid cart item")
        data = json.dumps([_serialize(item) for item in validated], ensure_ascii=False)

        if len(data.encode("utf-8")) > self.max_bytes:
            raise StorageError("Cart data too large", "STORAGE_LIMIT")

        try:
            self.backend.write(self.key, data)
        except Exception as e:
            logger.error("Failed to save cart: %s", e)
            raise StorageError("Failed to save cart", "STORAGE_ERROR") from e
        return True

    def load(self) -> List[dict]:
        """
        Read back the validated items. Invalid items are dropped and the
        cleaned list re-saved; oversized or unreadable data yields [].
        """
        try:
            saved = self.backend.read(self.key)
            if not saved:
                return []

            if len(saved.encode("utf-8")) > self.max_bytes:
                logger.warning("Stored cart exceeds %s bytes, resetting...", self.max_bytes)
                self.clear()
                return []

            parsed = json.loads(saved)
            if not isinstance(parsed, list):
                logger.warning("Invalid cart format in storage, resetting...")
                self.clear()
                return []

            validated = self._validate_all(parsed, "Invalid item in cart, removing")[: self.max_items]
            if len(validated) != len(parsed):
                self.save(validated)
            return validated

        except (ValueError, TypeError, RecursionError, OSError, CartError) as e:
            logger.error("Failed to load cart: %s", e)
            self.clear()
            return []

    def clear(self) -> bool:
        try:
            self.backend.delete(self.key)
            return True
        except OSError as e:
            logger.error("Failed to clear cart: %s", e)
            return False

    def _validate_all(self, items, warning: str) -> List[dict]:
        validated = []
        for item in items:
            try:
                validated.append(validate_cart_item(item))
            except ValidationError as e:
                logger.warning("%s: %s", warning, e.message)
        return validated
