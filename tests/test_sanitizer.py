from decimal import Decimal

import pytest

from common.exceptions import InvalidInput, NotANumber, OutOfRange, ValidationError
from common.sanitizer import (
    sanitize_integer, sanitize_number, sanitize_object, sanitize_text, sanitize_url,
    validate_cart_item, validate_cart_item_id, validate_discount_code, validate_price,
    validate_product_name, validate_quantity, validate_variant,
)


class TestSanitizeText:
    def test_strips_script_blocks_and_tags(self):
        assert sanitize_text("<script>alert(1)</script>Hello <b>World</b>") == "Hello World"

    def test_trims_whitespace(self):
        assert sanitize_text("   padded  ") == "padded"

    def test_non_string_becomes_empty(self):
        assert sanitize_text(None) == ""
        assert sanitize_text(42) == ""

    def test_truncates_to_max_length(self):
        assert sanitize_text("abcdef", max_length=3) == "abc"


class TestSanitizeNumber:
    def test_parses_numbers_and_numeric_strings(self):
        assert sanitize_number("12.5") == Decimal("12.5")
        assert sanitize_number(7) == Decimal("7")
        assert sanitize_number(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, "abc", "", True, float("nan"), float("inf")])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(NotANumber):
            sanitize_number(value)

    def test_out_of_range_is_rejected_not_clamped(self):
        with pytest.raises(OutOfRange) as exc:
            sanitize_number(150, 0, 100)
        assert exc.value.code == "OUT_OF_RANGE"

    def test_integer_rejects_fractions(self):
        assert sanitize_integer("3") == 3
        with pytest.raises(NotANumber):
            sanitize_integer(2.5)


class TestSanitizeUrl:
    def test_accepts_http_and_https(self):
        assert sanitize_url("https://example.com/a.png") == "https://example.com/a.png"
        assert sanitize_url("HTTP://example.com") == "http://example.com/"

    @pytest.mark.parametrize("value", ["javascript:alert(1)", "ftp://example.com/x", "not a url", "", None])
    def test_blocks_everything_else(self, value):
        assert sanitize_url(value) is None


class TestSanitizeObject:
    def test_cleans_keys_and_string_values(self):
        result = sanitize_object({"<b>size</b>": "<i>M</i>", "": "dropped", "count": 2})
        assert result == {"size": "M", "count": 2}

    def test_truncates_long_keys(self):
        result = sanitize_object({"k" * 80: 1})
        assert list(result) == ["k" * 50]

    def test_non_mapping_becomes_empty(self):
        assert sanitize_object(["a"]) == {}

    def test_rejects_deep_nesting(self):
        value = {}
        for _ in range(15):
            value = {"level": value}
        with pytest.raises(InvalidInput):
            sanitize_object(value)


class TestFieldValidators:
    def test_product_name_bounds(self):
        assert validate_product_name("  Phone ") == "Phone"
        with pytest.raises(InvalidInput):
            validate_product_name("<b></b>")
        with pytest.raises(InvalidInput):
            validate_product_name("x" * 201)

    def test_price_is_rounded_to_cents(self):
        assert validate_price("19.999") == Decimal("20.00")
        with pytest.raises(OutOfRange):
            validate_price(-1)

    def test_quantity_bounds(self):
        assert validate_quantity(999) == 999
        with pytest.raises(OutOfRange):
            validate_quantity(0)
        with pytest.raises(OutOfRange):
            validate_quantity(1000)

    def test_empty_variant_is_none(self):
        assert validate_variant(None) is None
        assert validate_variant({}) is None
        assert validate_variant({"color": "red"}) == {"color": "red"}

    def test_discount_code(self):
        assert validate_discount_code(" save10 ") == "SAVE10"
        for bad in ["AB", "X" * 21, "SAVE 10", "SAVE!", None]:
            with pytest.raises(InvalidInput):
                validate_discount_code(bad)

    def test_cart_item_id(self):
        assert validate_cart_item_id(" abc ") == "abc"
        with pytest.raises(InvalidInput):
            validate_cart_item_id("")
        with pytest.raises(InvalidInput):
            validate_cart_item_id("x" * 65)


class TestValidateCartItem:
    def test_returns_normalized_item(self):
        item = validate_cart_item({
            "id": "3", "name": "<b>Pods</b>", "price": "249", "image": "javascript:x",
            "variant": {"color": "white"},
        })
        assert item == {
            "id": 3,
            "name": "Pods",
            "price": Decimal("249.00"),
            "quantity": 1,
            "image": None,
            "variant": {"color": "white"},
        }

    def test_any_bad_field_rejects_the_whole_item(self):
        with pytest.raises(ValidationError):
            validate_cart_item({"id": 1, "name": "Ok", "price": "free"})
        with pytest.raises(InvalidInput):
            validate_cart_item("not a mapping")
