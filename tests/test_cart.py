import pytest

from cart import Cart
from errors import InsufficientStock, ItemNotInCart


def test_add_item_inserts_then_increments(cart, state):
    product = state.find_product("p1")
    cart.add_item(product)
    cart.add_item(product)

    assert len(cart) == 1
    item = cart.get("p1")
    assert item.quantity == 2
    assert item.unit_price == 100
    assert item.total == 200


def test_add_item_rejects_out_of_stock(cart, state, make_product):
    state.update_product(make_product("p1", stock=0))
    with pytest.raises(InsufficientStock):
        cart.add_item(state.find_product("p1"))
    assert cart.is_empty()


def test_add_item_rejects_quantity_above_stock(cart, state):
    milk = state.find_product("p3")  # stock 3
    for _ in range(3):
        cart.add_item(milk)
    with pytest.raises(InsufficientStock):
        cart.add_item(milk)
    assert cart.get("p3").quantity == 3


def test_add_item_reads_live_stock(cart, state, make_product):
    stale = state.find_product("p3")
    cart.add_item(stale)
    state.update_product(make_product("p3", stock=1))
    with pytest.raises(InsufficientStock):
        cart.add_item(stale)


def test_wholesale_scenario(make_product):
    # stock 5, retail 100, wholesale 80 from 5 units
    product = make_product(stock=5, normal_price=100, wholesale_price=80, wholesale_threshold=5)
    cart = Cart(lookup=lambda pid: product if pid == product.id else None)

    for _ in range(4):
        cart.add_item(product)
    assert cart.get(product.id).unit_price == 100
    assert cart.get(product.id).total == 400

    cart.change_quantity(product.id, 1)
    item = cart.get(product.id)
    assert item.quantity == 5
    assert item.unit_price == 80
    assert item.is_wholesale is True
    assert item.total == 400

    with pytest.raises(InsufficientStock):
        cart.change_quantity(product.id, 1)
    assert cart.get(product.id).quantity == 5


def test_change_quantity_back_below_threshold_reprices(cart, state):
    sugar = state.find_product("p2")
    for _ in range(10):
        cart.add_item(sugar)
    assert cart.get("p2").is_wholesale is True

    cart.change_quantity("p2", -1)
    item = cart.get("p2")
    assert item.quantity == 9
    assert item.unit_price == 150
    assert item.is_wholesale is False


def test_change_quantity_to_zero_removes_line(cart, state):
    cart.add_item(state.find_product("p1"))
    assert cart.change_quantity("p1", -5) is None
    assert cart.get("p1") is None
    assert cart.is_empty()


def test_change_quantity_decrease_allowed_above_stock(cart, state, make_product):
    cart.add_item(state.find_product("p1"))
    cart.add_item(state.find_product("p1"))
    cart.add_item(state.find_product("p1"))
    state.update_product(make_product("p1", stock=1))
    cart.change_quantity("p1", -1)
    assert cart.get("p1").quantity == 2


def test_change_quantity_unknown_item(cart):
    with pytest.raises(ItemNotInCart):
        cart.change_quantity("nope", 1)


def test_increase_of_vanished_product_is_rejected(cart, state):
    cart.add_item(state.find_product("p1"))
    state.delete_product("p1")
    with pytest.raises(InsufficientStock):
        cart.change_quantity("p1", 1)


def test_totals_follow_lines(cart, state):
    cart.add_item(state.find_product("p1"))
    cart.add_item(state.find_product("p2"))
    cart.change_quantity("p2", 2)

    assert all(item.total == item.unit_price * item.quantity for item in cart)
    assert cart.subtotal == sum(item.total for item in cart)
    assert cart.subtotal == 100 + 3 * 150
    assert cart.tax == pytest.approx(cart.subtotal * 0.08)
    # tax is displayed only, never charged
    assert cart.total == cart.subtotal


def test_cart_never_touches_stock(cart, state):
    cart.add_item(state.find_product("p1"))
    cart.change_quantity("p1", 2)
    assert state.find_product("p1").stock == 5


def test_clear(cart, state):
    cart.add_item(state.find_product("p1"))
    cart.clear()
    assert cart.is_empty()
    assert cart.subtotal == 0
