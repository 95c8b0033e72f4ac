"""
Error taxonomy for the POS core.

ValidationRejection: the caller's input is wrong; adjust and retry.
StateConflict: the caller's view of the shop is stale; refresh and retry.
MalformedSnapshot: persisted or uploaded data could not be read.
"""

from typing import List


class POSError(Exception):
    pass


class ValidationRejection(POSError):
    pass


class StateConflict(POSError):
    pass


class MalformedSnapshot(POSError):
    pass


class EmptyCart(ValidationRejection):
    def __init__(self):
        super().__init__("Cart is empty")


class InsufficientStock(ValidationRejection):
    def __init__(self, product_id: str, available: float):
        self.product_id = product_id
        self.available = available
        super().__init__(f"Only {available:g} available for {product_id}")


class InsufficientCash(ValidationRejection):
    def __init__(self, received: float, total: float):
        self.received = received
        self.total = total
        super().__init__(f"Cash received {received:.2f} is below total {total:.2f}")


class InvalidDiscount(ValidationRejection):
    def __init__(self, discount: float):
        self.discount = discount
        super().__init__(f"Discount must not be negative: {discount}")


class ItemNotInCart(ValidationRejection):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not in cart: {product_id}")


class DayClosed(StateConflict):
    def __init__(self):
        super().__init__("Day is closed; no further sales until the day is reopened")


class DayAlreadyClosed(StateConflict):
    def __init__(self):
        super().__init__("Day already closed")


class InventoryConflict(StateConflict):
    def __init__(self, product_ids: List[str]):
        self.product_ids = product_ids
        super().__init__(
            "One or more items in the cart exceed available stock: " + ", ".join(product_ids)
        )
