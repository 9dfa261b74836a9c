from decimal import Decimal

import pytest

from storefront.cart.models import CartItem
from storefront.cart.totals import compute_totals, parse_amount, parse_cart, to_minor_units
from storefront.errors import CartValidationError, InvalidAmountError


def test_total_has_no_float_drift(sample_cart):
    totals = compute_totals(parse_cart(sample_cart))
    assert totals.total == Decimal("119.94")
    assert totals.total_minor_units == 11994
    assert [line.subtotal for line in totals.lines] == [Decimal("39.98")] * 3
    assert totals.item_count == 6

def test_empty_cart_total_is_zero():
    totals = compute_totals([])
    assert totals.total == Decimal("0.00")
    assert totals.to_dict() == {"items": [], "item_count": 0, "total": "0.00"}

def test_to_dict_formats_prices_and_subtotals(sample_cart):
    data = compute_totals(parse_cart(sample_cart)).to_dict()
    assert data["total"] == "119.94"
    first = data["items"][0]
    assert first["id"] == "1"
    assert first["price"] == "19.99"
    assert first["subtotal"] == "39.98"

def test_rounding_is_half_up_to_cents():
    item = CartItem(id="x", name="x", price="0.125", quantity=1)
    assert compute_totals([item]).total == Decimal("0.13")

def test_id_is_coerced_to_string():
    assert CartItem.model_validate({"id": 7, "name": "x", "price": "1", "quantity": 1}).id == "7"

@pytest.mark.parametrize("price", ["abc", "", None, True, "-1", "NaN", "Infinity", "1e30", "1000000.01"])
def test_malformed_price_is_rejected(price):
    with pytest.raises(CartValidationError) as exc:
        parse_cart([{"id": 1, "name": "x", "price": price, "quantity": 1}])
    assert exc.value.error_type == "validation_error"
    assert "price" in exc.value.message

@pytest.mark.parametrize("quantity", [0, -2, 1.5, "two", 1000, 10**30])
def test_invalid_quantity_is_rejected(quantity):
    with pytest.raises(CartValidationError):
        parse_cart([{"id": 1, "name": "x", "price": "1", "quantity": quantity}])

def test_cart_must_be_a_list():
    with pytest.raises(CartValidationError):
        parse_cart({"id": 1})

def test_error_message_points_to_the_bad_item(sample_cart):
    sample_cart[2]["price"] = "oops"
    with pytest.raises(CartValidationError) as exc:
        parse_cart(sample_cart)
    assert "Article 2" in exc.value.message

@pytest.mark.parametrize("value", [None, "", "abc", 0, "0", -5, "-0.01", False, "1e30", "1000000000.01"])
def test_parse_amount_rejects_non_positive_or_invalid(value):
    with pytest.raises(InvalidAmountError):
        parse_amount(value)

def test_parse_amount_accepts_strings_and_numbers():
    assert parse_amount("10.50") == Decimal("10.50")
    assert parse_amount(3) == Decimal("3")

def test_to_minor_units():
    assert to_minor_units(Decimal("119.94")) == 11994
    assert to_minor_units(Decimal("0.005")) == 1

def test_largest_accepted_cart_still_totals():
    items = parse_cart([{"id": i, "name": "Max", "price": "1000000", "quantity": 999} for i in range(5)])
    totals = compute_totals(items)
    assert totals.total == Decimal("4995000000.00")
    assert totals.total_minor_units == 499500000000
