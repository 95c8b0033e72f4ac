from datetime import datetime

import pytest

from cart import Cart
from schemas import Product, UnitType
from state import PosState


def local(year, month, day, hour=12, minute=0, second=0):
    # Aware timestamp in the machine's local zone
    return datetime(year, month, day, hour, minute, second).astimezone()


@pytest.fixture
def make_product():
    def _make(product_id="p1", **overrides):
        fields = dict(
            id=product_id,
            name=f"Product {product_id}",
            sku=f"SKU-{product_id}",
            category="Groceries",
            unit=UnitType.PIECE,
            stock=10,
            cost_price=60,
            normal_price=100,
            wholesale_threshold=5,
            wholesale_price=80,
            reorder_level=2,
        )
        fields.update(overrides)
        return Product(**fields)

    return _make


@pytest.fixture
def state(make_product):
    return PosState(
        products=[
            make_product("p1", name="Maize Flour 2kg", stock=5),
            make_product("p2", name="Sugar (Loose)", unit=UnitType.KG, stock=20,
                         cost_price=110, normal_price=150, wholesale_threshold=10,
                         wholesale_price=135, reorder_level=20),
            make_product("p3", name="Fresh Milk 1L", unit=UnitType.LITER, stock=3,
                         cost_price=65, normal_price=85, wholesale_threshold=6,
                         wholesale_price=75, reorder_level=5),
        ]
    )


@pytest.fixture
def cart(state):
    return Cart(lookup=state.find_product)


@pytest.fixture
def today():
    return local(2026, 10, 19, 18, 0)


@pytest.fixture
def at():
    return local


@pytest.fixture
def make_sale(make_product):
    from pricing import price_line
    from schemas import PaymentMethod, Sale

    counter = iter(range(1, 10000))

    def _make(timestamp, lines=None, payment_method=PaymentMethod.CASH, discount=0.0,
              cashier="Main Counter", total=None):
        lines = lines or [("p1", 1)]
        items = [
            price_line(make_product(pid, name=f"Product {pid}", stock=1000), qty)
            for pid, qty in lines
        ]
        subtotal = sum(i.total for i in items)
        total = subtotal if total is None else total
        return Sale(
            id=f"GW-T{next(counter):05d}",
            timestamp=timestamp,
            cashier=cashier,
            items=items,
            subtotal=subtotal,
            tax=subtotal * 0.08,
            discount=discount,
            total=total,
            payment_method=payment_method,
            amount_received=total,
            change=0.0,
            is_retail=not any(i.is_wholesale for i in items),
            cost_of_goods_sold=sum(i.product.cost_price * i.quantity for i in items),
        )

    return _make
