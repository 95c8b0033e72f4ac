import pytest

from pricing import price_line, resolve_price


@pytest.mark.parametrize("qty", [0, 1, 4, 4.99])
def test_below_threshold_uses_normal_price(make_product, qty):
    product = make_product(normal_price=100, wholesale_price=80, wholesale_threshold=5)
    quote = resolve_price(product, qty)
    assert quote.unit_price == 100
    assert quote.is_wholesale is False


@pytest.mark.parametrize("qty", [5, 5.5, 12])
def test_at_or_above_threshold_uses_wholesale_price(make_product, qty):
    product = make_product(normal_price=100, wholesale_price=80, wholesale_threshold=5)
    quote = resolve_price(product, qty)
    assert quote.unit_price == 80
    assert quote.is_wholesale is True


@pytest.mark.parametrize("qty", [None, "abc", float("nan"), object()])
def test_malformed_quantity_counts_as_zero(make_product, qty):
    product = make_product(wholesale_threshold=5)
    assert resolve_price(product, qty) == (100, False)


def test_zero_threshold_is_always_wholesale(make_product):
    product = make_product(wholesale_threshold=0)
    assert resolve_price(product, None).is_wholesale is True


def test_price_line_copies_product(make_product):
    product = make_product(stock=10)
    item = price_line(product, 6)
    assert item.unit_price == 80
    assert item.total == 480
    assert item.product == product
    assert item.product is not product
