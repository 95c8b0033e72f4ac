from typing import Callable, Dict, List, Optional

from config import TAX_RATE
from errors import InsufficientStock, ItemNotInCart
from pricing import price_line
from schemas import Product, CartItem

ProductLookup = Callable[[str], Optional[Product]]


# Cart of line items for the active sale, one entry per product.
# Stock checks always read the live catalog through `lookup`; the cart never
# changes stock itself.
class Cart:
    def __init__(self, lookup: Optional[ProductLookup] = None, tax_rate: float = TAX_RATE):
        self._items: Dict[str, CartItem] = {}  # product id -> line, insertion ordered
        self._lookup = lookup
        self.tax_rate = tax_rate

    def _live(self, product_id: str, fallback: Optional[Product] = None) -> Optional[Product]:
        if self._lookup is None:
            return fallback
        return self._lookup(product_id)

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    def get(self, product_id: str) -> Optional[CartItem]:
        return self._items.get(product_id)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.items)

    def is_empty(self) -> bool:
        return not self._items

    def add_item(self, product: Product) -> CartItem:
        live = self._live(product.id, fallback=product)
        available = live.stock if live is not None else 0
        existing = self._items.get(product.id)
        new_qty = existing.quantity + 1 if existing else 1

        if available <= 0 or new_qty > available:
            raise InsufficientStock(product.id, available)

        item = price_line(live, new_qty)
        self._items[product.id] = item
        return item

    def change_quantity(self, product_id: str, delta: float) -> Optional[CartItem]:
        """
        Move a line's quantity by `delta` (floored at zero) and reprice it.
        Returns the updated line, or None when the line was removed.
        """
        item = self._items.get(product_id)
        if item is None:
            raise ItemNotInCart(product_id)

        live = self._live(product_id, fallback=item.product)
        new_qty = max(0, item.quantity + delta)

        if delta > 0:
            available = live.stock if live is not None else 0
            if new_qty > available:
                raise InsufficientStock(product_id, available)

        if new_qty == 0:
            del self._items[product_id]
            return None

        updated = price_line(live or item.product, new_qty)
        self._items[product_id] = updated
        return updated

    def remove(self, product_id: str) -> None:
        if product_id not in self._items:
            raise ItemNotInCart(product_id)
        del self._items[product_id]

    def clear(self) -> None:
        self._items.clear()

    @property
    def subtotal(self) -> float:
        return sum(item.total for item in self._items.values())

    @property
    def tax(self) -> float:
        return self.subtotal * self.tax_rate

    @property
    def total(self) -> float:
        # Tax and discount are shown separately, not charged
        return self.subtotal
