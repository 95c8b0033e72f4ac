import logging
import math
import secrets
import string
from datetime import datetime
from typing import List, Optional

from cart import Cart
from config import RECEIPT_PREFIX
from errors import DayClosed, EmptyCart, InsufficientCash, InventoryConflict, InvalidDiscount
from schemas import PaymentMethod, Sale
from state import PosState

logger = logging.getLogger("pos.checkout")

_ID_ALPHABET = string.digits + string.ascii_uppercase


def new_sale_id(state: PosState, prefix: str = RECEIPT_PREFIX) -> str:
    while True:
        sale_id = prefix + "-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
        if state.find_sale(sale_id) is None:
            return sale_id


def find_inventory_conflicts(state: PosState, cart: Cart) -> List[str]:
    # Products whose cart quantity is above live stock, or that no longer exist
    conflicts = []
    for item in cart.items:
        live = state.find_product(item.product.id)
        if live is None or item.quantity > live.stock:
            conflicts.append(item.product.id)
    return conflicts


def checkout(
    state: PosState,
    cart: Cart,
    payment_method: PaymentMethod,
    amount_received: float,
    cashier: str,
    discount: float = 0.0,
    now: Optional[datetime] = None,
) -> Sale:
    """
    Finalize the cart into a Sale, archive it and take its quantities out of
    stock. Nothing changes unless every precondition holds. The cart is
    cleared on success.
    """
    payment_method = PaymentMethod(payment_method)

    if cart.is_empty():
        raise EmptyCart()
    if state.is_day_closed:
        raise DayClosed()

    conflicts = find_inventory_conflicts(state, cart)
    if conflicts:
        logger.warning("Checkout blocked by inventory conflict: %s", conflicts)
        raise InventoryConflict(conflicts)

    subtotal = cart.subtotal
    total = cart.total

    if payment_method == PaymentMethod.CASH:
        received = float(amount_received or 0)
        if not math.isfinite(received) or received < total:
            raise InsufficientCash(received, total)
        change = max(0.0, received - total)
    else:
        received = total
        change = 0.0

    if discount < 0:
        raise InvalidDiscount(discount)

    items = [item.model_copy(deep=True) for item in cart.items]
    sale = Sale(
        id=new_sale_id(state),
        timestamp=now or datetime.now().astimezone(),
        cashier=cashier,
        items=items,
        subtotal=subtotal,
        tax=cart.tax,
        discount=discount,
        total=total,
        payment_method=payment_method,
        amount_received=received,
        change=change,
        is_retail=not any(item.is_wholesale for item in items),
        cost_of_goods_sold=sum(item.product.cost_price * item.quantity for item in items),
    )

    state.record_sale(sale)
    cart.clear()

    logger.info(
        "Sale %s finalized by %s: %d lines, total %.2f (%s)",
        sale.id, cashier, len(items), total, payment_method.value,
    )
    return sale
