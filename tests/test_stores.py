from datetime import timedelta
from decimal import Decimal

import pytest

from config.fixtures import seed
from common.exceptions import InsufficientStock, InvalidDiscountCode, NotFound, OutOfRange
from common.helpers import now_utc
from modules.cart.service import cart_service
from modules.catalog.service import catalog_service
from modules.coupon.service import discount_service
from tests.helpers import make_item


class TestCatalog:
    def test_fixtures_are_seeded_once(self, db, seeded):
        assert catalog_service.count(db) == 4
        assert seed(db) == {"products": 0, "discounts": 0}

    def test_find_all_pages_by_id(self, db, seeded):
        assert [p.id for p in catalog_service.find_all(db)] == [1, 2, 3, 4]
        assert [p.id for p in catalog_service.find_all(db, limit=2, offset=1)] == [2, 3]

    def test_find_all_rejects_bad_paging(self, db):
        with pytest.raises(OutOfRange):
            catalog_service.find_all(db, limit=0)
        with pytest.raises(OutOfRange):
            catalog_service.find_all(db, limit=101)
        with pytest.raises(OutOfRange):
            catalog_service.find_all(db, offset=-1)

    def test_get_by_id(self, db, seeded):
        product = catalog_service.get_by_id(db, 1)
        assert product.name == "iPhone 15 Pro"
        assert product.price == Decimal("999.00")
        assert catalog_service.find_by_id(db, 99) is None
        with pytest.raises(NotFound):
            catalog_service.get_by_id(db, 99)

    def test_decrease_stock(self, db, seeded):
        assert catalog_service.decrease_stock(db, 2, 5).stock == 25
        with pytest.raises(InsufficientStock) as exc:
            catalog_service.decrease_stock(db, 2, 26)
        assert exc.value.product_name == "MacBook Air M3"
        with pytest.raises(NotFound):
            catalog_service.decrease_stock(db, 99, 1)


class TestDiscounts:
    def test_validate_known_code(self, db, seeded):
        assert discount_service.validate_code(db, "save10") == {
            "valid": True,
            "percentage": 10,
            "message": "10% discount applied",
        }

    @pytest.mark.parametrize("code", ["NOPE", "bad code!", "AB", None])
    def test_validate_unknown_or_malformed(self, db, seeded, code):
        result = discount_service.validate_code(db, code)
        assert result["valid"] is False
        assert result["percentage"] == 0

    def test_expired_code(self, db):
        discount_service.create(db, "OLD", 5, expires_at=now_utc() - timedelta(days=1))
        with pytest.raises(InvalidDiscountCode) as exc:
            discount_service.get_valid(db, "OLD")
        assert exc.value.message == "Discount code has expired"

    def test_exhausted_code(self, db):
        discount_service.create(db, "ONCE", 5, max_uses=1, used_count=1)
        assert discount_service.validate_code(db, "ONCE")["message"] == "Discount code usage limit reached"

    def test_code_without_expiry_never_expires(self, db):
        discount_service.create(db, "FOREVER", 5)
        assert discount_service.get_valid(db, "forever").percentage == 5

    def test_increment_usage(self, db, seeded):
        discount = discount_service.find_by_code(db, "SAVE20")
        discount_service.increment_usage(db, discount.id)
        assert discount.used_count == 1
        assert discount.remaining_uses == 49
        with pytest.raises(NotFound):
            discount_service.increment_usage(db, 999)


class TestCartStore:
    def test_cart_is_created_once_per_owner(self, db):
        first = cart_service.get_or_create_cart(db, "alice")
        second = cart_service.get_or_create_cart(db, "alice")
        assert first.id == second.id
        assert cart_service.get_or_create_cart(db, "bob").id != first.id

    def test_add_merges_rows(self, db, seeded):
        cart = cart_service.get_or_create_cart(db, "alice")
        cart_service.add_item(db, cart, make_item(product_id=3, quantity=1))
        cart_service.add_item(db, cart, make_item(product_id=3, quantity=2))
        cart_service.add_item(db, cart, make_item(product_id=3, variant={"color": "black"}))

        assert [(item.product_id, item.quantity) for item in cart.items] == [(3, 3), (3, 1)]
        assert cart_service.item_quantity(cart, 3, None) == 3

    def test_update_by_item_id(self, db, seeded):
        cart = cart_service.get_or_create_cart(db, "alice")
        item = cart_service.add_item(db, cart, make_item(product_id=1))
        cart_service.update_item_quantity(db, cart, item.id, 4)
        assert item.quantity == 4
        with pytest.raises(NotFound):
            cart_service.update_item_quantity(db, cart, "missing", 4)

    def test_remove_and_clear(self, db, seeded):
        cart = cart_service.get_or_create_cart(db, "alice")
        first = cart_service.add_item(db, cart, make_item(product_id=1))
        cart_service.add_item(db, cart, make_item(product_id=2))
        cart_service.add_item(db, cart, make_item(product_id=3))

        assert cart_service.remove_item(db, cart, first.id) is True
        assert cart_service.remove_item(db, cart, first.id) is False
        assert len(cart.items) == 2

        cart_service.apply_discount(db, cart, 10, "SAVE10")
        cart_service.clear(db, cart)
        assert cart.items == []
        assert cart.discount == 0
        assert cart.discount_code is None

    def test_view_totals(self, db, seeded):
        cart = cart_service.get_or_create_cart(db, "alice")
        cart_service.add_item(db, cart, make_item(product_id=1, price=40, quantity=2))
        cart_service.apply_discount(db, cart, 10, "SAVE10")

        view = cart_service.to_view(cart)
        assert view["user_id"] == "alice"
        assert view["item_count"] == 2
        assert view["subtotal"] == Decimal("80.00")
        assert view["discount_amount"] == Decimal("8.00")
        assert view["tax"] == Decimal("7.20")
        assert view["shipping"] == Decimal("10.00")
        assert view["total"] == Decimal("89.20")
        assert view["items"][0]["subtotal"] == Decimal("80.00")

    def test_empty_cart_has_no_shipping(self, db):
        view = cart_service.to_view(cart_service.get_or_create_cart(db, "alice"))
        assert view["items"] == []
        assert view["shipping"] == 0
        assert view["total"] == 0
