"""
Record Schemas for the Shop POS

Each pydantic model is one record kind held by the POS state. JSON field names
are camelCase so documents exported by the browser-based till can be restored
directly; Python attributes stay snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

import config
from security import get_password_hash, is_password_hash


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UnitType(str, Enum):
    KG = "Kg"
    LITER = "Litre"
    PIECE = "Piece"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    MPESA = "Mpesa"
    SPLIT = "Split"


class Product(Record):
    id: str
    name: str
    sku: str = ""
    category: str = ""
    unit: UnitType = UnitType.PIECE
    stock: float = Field(0, ge=0, description="fractional for Kg/Litre units")
    cost_price: float = Field(0, ge=0)
    normal_price: float = Field(0, ge=0, description="retail price")
    wholesale_threshold: float = Field(0, ge=0, description="minimum quantity for wholesale price")
    wholesale_price: float = Field(0, ge=0)
    reorder_level: float = Field(0, ge=0)
    image: Optional[str] = None


class CartItem(Record):
    model_config = ConfigDict(frozen=True)

    product: Product
    quantity: float = Field(..., gt=0)
    unit_price: float
    is_wholesale: bool = False

    @computed_field
    @property
    def total(self) -> float:
        return self.unit_price * self.quantity


class Sale(Record):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    cashier: str = ""
    items: List[CartItem]
    subtotal: float
    tax: float
    discount: float = 0.0
    total: float
    payment_method: Optional[PaymentMethod] = None
    amount_received: float = 0.0
    change: float = 0.0
    is_retail: bool = True
    cost_of_goods_sold: float = 0.0


class TopItem(Record):
    name: str
    qty: float


class ZReport(Record):
    model_config = ConfigDict(frozen=True)

    date: str
    open_time: str
    close_time: str
    total_sales: int
    gross_sales: float
    discounts: float
    net_sales: float
    cash_total: float
    mpesa_total: float
    split_total: float
    top_items: List[TopItem] = Field(default_factory=list)


class ShopSettings(Record):
    name: str = config.SHOP_NAME
    footer: str = config.RECEIPT_FOOTER
    auto_backup_threshold: int = Field(50, ge=0, description="sales between automatic backups, 0 disables")
    auto_print_receipts: bool = True
    system_password: str = Field(default_factory=lambda: get_password_hash(config.SYSTEM_PASSWORD))
    inventory_password: str = Field(default_factory=lambda: get_password_hash(config.INVENTORY_PASSWORD))

    @field_validator("system_password", "inventory_password")
    @classmethod
    def hash_plain_secret(cls, value: str) -> str:
        # Backups from the browser till carry plain secrets
        if not value:
            raise ValueError("secret must not be empty")
        if is_password_hash(value):
            return value
        return get_password_hash(value)


class Snapshot(Record):
    products: List[Product] = Field(default_factory=list)
    sales: List[Sale] = Field(default_factory=list)
    z_report_history: List[ZReport] = Field(default_factory=list)
    current_z_report: Optional[ZReport] = None
    is_day_closed: bool = False


class Backup(Record):
    # Missing fields keep the current in-memory value on restore
    products: Optional[List[Product]] = None
    sales: Optional[List[Sale]] = None
    shop_settings: Optional[ShopSettings] = None
    current_z_report: Optional[ZReport] = None
    is_day_closed: Optional[bool] = None
    z_report_history: Optional[List[ZReport]] = None
