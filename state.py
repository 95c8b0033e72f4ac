"""
The POS application state: catalog, sales archive, Z-report history, the
day-closed flag and the shop settings, with the mutations that move it from
one state to the next.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from errors import MalformedSnapshot
from schemas import Product, Sale, ZReport, ShopSettings, Snapshot, Backup

logger = logging.getLogger("pos.state")


class PosState:
    def __init__(
        self,
        products: Optional[List[Product]] = None,
        sales: Optional[List[Sale]] = None,
        z_report_history: Optional[List[ZReport]] = None,
        current_z_report: Optional[ZReport] = None,
        is_day_closed: bool = False,
        settings: Optional[ShopSettings] = None,
    ):
        self.products: List[Product] = list(products or [])
        self.sales: List[Sale] = list(sales or [])  # insertion order, oldest first
        self.z_report_history: List[ZReport] = list(z_report_history or [])
        self.current_z_report = current_z_report
        self.is_day_closed = is_day_closed
        self.settings = settings or ShopSettings()

    # Catalog

    def find_product(self, product_id: str) -> Optional[Product]:
        for p in self.products:
            if p.id == product_id:
                return p
        return None

    def _index_of(self, product_id: str) -> int:
        for i, p in enumerate(self.products):
            if p.id == product_id:
                return i
        return -1

    def add_product(self, product: Product) -> None:
        if self._index_of(product.id) != -1:
            raise ValueError(f"Product id already exists: {product.id}")
        self.products.append(product)

    def update_product(self, product: Product) -> None:
        idx = self._index_of(product.id)
        if idx == -1:
            raise KeyError(product.id)
        self.products[idx] = product

    def delete_product(self, product_id: str) -> None:
        idx = self._index_of(product_id)
        if idx == -1:
            raise KeyError(product_id)
        del self.products[idx]

    def import_products(self, records: Iterable[Any]) -> Tuple[int, int]:
        """
        Bulk import: replace products whose id already exists, append the rest.
        Every record is validated before any is applied.
        Returns (inserted, updated).
        """
        try:
            incoming = [
                r if isinstance(r, Product) else Product.model_validate(r) for r in records
            ]
        except (ValidationError, TypeError) as e:
            raise MalformedSnapshot(f"Invalid product record: {e}") from e

        inserted = updated = 0
        for product in incoming:
            idx = self._index_of(product.id)
            if idx == -1:
                self.products.append(product)
                inserted += 1
            else:
                self.products[idx] = product
                updated += 1
        logger.info("Imported products: %d inserted, %d updated", inserted, updated)
        return inserted, updated

    # Sales

    def record_sale(self, sale: Sale) -> None:
        # Append the sale and take the sold quantities out of stock
        self.sales.append(sale)
        for item in sale.items:
            idx = self._index_of(item.product.id)
            if idx == -1:
                continue
            live = self.products[idx]
            self.products[idx] = live.model_copy(
                update={"stock": max(0, live.stock - item.quantity)}
            )

    def find_sale(self, sale_id: str) -> Optional[Sale]:
        for s in self.sales:
            if s.id == sale_id:
                return s
        return None

    def purge_sales(self) -> int:
        count = len(self.sales)
        self.sales = []
        logger.warning("Purged %d sales from the archive", count)
        return count

    # Day close

    def archive_z_report(self, report: ZReport) -> None:
        self.z_report_history.append(report)
        self.current_z_report = report
        self.is_day_closed = True

    def reopen_day(self) -> None:
        self.is_day_closed = False

    # Snapshot / backup

    def to_snapshot(self) -> Snapshot:
        return Snapshot(
            products=self.products,
            sales=self.sales,
            z_report_history=self.z_report_history,
            current_z_report=self.current_z_report,
            is_day_closed=self.is_day_closed,
        )

    def dump_snapshot(self) -> Dict[str, Any]:
        return self.to_snapshot().model_dump(mode="json", by_alias=True)

    @classmethod
    def from_snapshot(cls, doc: Any, settings: Optional[ShopSettings] = None) -> "PosState":
        try:
            snap = doc if isinstance(doc, Snapshot) else Snapshot.model_validate(doc)
        except ValidationError as e:
            raise MalformedSnapshot(f"Invalid snapshot: {e}") from e
        return cls(
            products=snap.products,
            sales=snap.sales,
            z_report_history=snap.z_report_history,
            current_z_report=snap.current_z_report,
            is_day_closed=snap.is_day_closed,
            settings=settings,
        )

    def backup(self) -> Backup:
        return Backup(
            products=self.products,
            sales=self.sales,
            shop_settings=self.settings,
            current_z_report=self.current_z_report,
            is_day_closed=self.is_day_closed,
            z_report_history=self.z_report_history,
        )

    def restore(self, doc: Any) -> None:
        """
        Replace state from a backup document in one step. Fields missing from
        the document keep their current value. A document that does not
        validate leaves the state untouched.
        """
        try:
            data = doc if isinstance(doc, Backup) else Backup.model_validate(doc)
        except ValidationError as e:
            logger.warning("Restore rejected, keeping current state: %s", e)
            raise MalformedSnapshot(f"Invalid backup: {e}") from e

        if data.products is not None:
            self.products = list(data.products)
        if data.sales is not None:
            self.sales = list(data.sales)
        if data.shop_settings is not None:
            self.settings = data.shop_settings
        if data.current_z_report is not None:
            self.current_z_report = data.current_z_report
        if data.z_report_history is not None:
            self.z_report_history = list(data.z_report_history)
        if data.is_day_closed is not None:
            self.is_day_closed = data.is_day_closed
        logger.info(
            "Restored backup: %d products, %d sales, %d Z-reports",
            len(self.products), len(self.sales), len(self.z_report_history),
        )
