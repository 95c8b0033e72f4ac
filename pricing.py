import math
from typing import Any, NamedTuple

from schemas import Product, CartItem


class PriceQuote(NamedTuple):
    unit_price: float
    is_wholesale: bool


def _as_quantity(quantity: Any) -> float:
    # Anything that is not a finite number counts as zero
    try:
        qty = float(quantity)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(qty) or math.isinf(qty):
        return 0.0
    return qty


def resolve_price(product: Product, quantity: Any) -> PriceQuote:
    """Retail or wholesale unit price for `quantity` units of `product`."""
    qty = _as_quantity(quantity)
    is_wholesale = qty >= product.wholesale_threshold
    unit_price = product.wholesale_price if is_wholesale else product.normal_price
    return PriceQuote(unit_price, is_wholesale)


def price_line(product: Product, quantity: float) -> CartItem:
    quote = resolve_price(product, quantity)
    return CartItem(
        product=product.model_copy(deep=True),
        quantity=quantity,
        unit_price=quote.unit_price,
        is_wholesale=quote.is_wholesale,
    )
