import pytest

from teapos.cart import Cart
from teapos.errors import InactiveProductError, UnknownToppingError
from teapos.models import Product


def test_same_product_twice_gives_two_lines(milk_tea):
    cart = Cart()

    first = cart.add_product(milk_tea)
    second = cart.add_product(milk_tea)

    assert len(cart) == 2
    assert first.line_id != second.line_id
    assert cart.total() == 40000


def test_inactive_product_cannot_be_added():
    cart = Cart()
    product = Product(product_id="p-off", name="Bạc xỉu", price=18000, is_active=False)

    with pytest.raises(InactiveProductError):
        cart.add_product(product)
    assert not cart


def test_quantity_zero_removes_line(milk_tea):
    cart = Cart()
    line = cart.add_product(milk_tea)
    cart.set_quantity(line.line_id, 3)
    assert cart.total() == 60000

    cart.set_quantity(line.line_id, 0)

    assert len(cart) == 0


def test_add_topping_increments_existing(lemon_tea):
    cart = Cart()
    line = cart.add_product(lemon_tea)

    cart.add_topping(line.line_id, "19")
    cart.add_topping(line.line_id, 19)
    cart.add_topping(line.line_id, "18")

    assert [(t.topping.topping_id, t.quantity) for t in line.toppings] == [("19", 2), ("18", 1)]
    assert cart.total() == 15000 + 5000 * 2 + 10000


def test_set_topping_quantity(lemon_tea):
    cart = Cart()
    line = cart.add_product(lemon_tea)

    cart.set_topping_quantity(line.line_id, "20", 3)
    assert line.toppings[0].quantity == 3

    cart.set_topping_quantity(line.line_id, "20", 0)
    assert line.toppings == []


def test_unknown_topping(lemon_tea):
    cart = Cart()
    line = cart.add_product(lemon_tea)

    with pytest.raises(UnknownToppingError):
        cart.add_topping(line.line_id, "99")


def test_customizations(milk_tea):
    cart = Cart()
    line = cart.add_product(milk_tea)

    cart.set_upsize(line.line_id, True)
    cart.set_note(line.line_id, "ít ngọt")
    cart.set_sugar_level(line.line_id, "less-sugar")
    cart.set_ice_level(line.line_id, "no-ice")

    assert line.is_upsize and line.note == "ít ngọt"
    assert (line.sugar_level, line.ice_level) == ("less-sugar", "no-ice")
    assert cart.total() == 30000
    assert cart.total(upsize_surcharge=5000) == 25000
    with pytest.raises(ValueError):
        cart.set_sugar_level(line.line_id, "extra")
    with pytest.raises(ValueError):
        cart.set_ice_level(line.line_id, "extra")


def test_unknown_line(milk_tea):
    cart = Cart()
    cart.add_product(milk_tea)

    with pytest.raises(KeyError):
        cart.set_note("missing", "x")
    cart.remove("missing")
    assert len(cart) == 1


def test_clear(milk_tea, lemon_tea):
    cart = Cart()
    cart.add_product(milk_tea)
    cart.add_product(lemon_tea)

    cart.clear()

    assert not cart
    assert cart.total() == 0
