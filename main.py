import logging
import os
import threading
from datetime import date
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, Field, ValidationError

import reports
from cart import Cart
from checkout import checkout
from config import CURRENCY, DATA_DIR
from database import SnapshotRepository
from day_close import close_day, reopen_day
from errors import MalformedSnapshot, StateConflict, ValidationRejection
from logger import setup_logger
from rendering import render_receipt, render_z_report
from schemas import (
    Backup, CartItem, PaymentMethod, Product, Record, Sale, ShopSettings, UnitType, ZReport,
)
from security import create_access_token, decode_access_token, verify_password
from state import PosState

logger = logging.getLogger("pos.api")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

app = FastAPI(title="Shop POS API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Terminal: the single till this process serves

class Terminal:
    def __init__(self, repo: SnapshotRepository):
        self.repo = repo
        # Sync routes run in a threadpool; every mutation of state or cart holds this
        self.lock = threading.Lock()
        self.state = self._load()
        self.cart = Cart(lookup=self.state.find_product)

    def _load(self) -> PosState:
        settings = None
        settings_doc = self.repo.load_settings()
        if settings_doc is not None:
            try:
                settings = ShopSettings.model_validate(settings_doc)
            except ValidationError as e:
                logger.warning("Stored settings are invalid, using defaults: %s", e)

        doc = self.repo.load()
        if doc is None:
            return PosState(settings=settings)
        try:
            return PosState.from_snapshot(doc, settings=settings)
        except MalformedSnapshot as e:
            logger.warning("Stored snapshot is invalid, starting empty: %s", e)
            self.repo.set_aside_snapshot()
            return PosState(settings=settings)

    def persist(self) -> None:
        # Storage failures are logged, never surfaced to the till
        try:
            self.repo.save(self.state.dump_snapshot())
            self.repo.save_settings(self.state.settings.model_dump(mode="json", by_alias=True))
        except OSError:
            logger.exception("Failed to persist POS state")

    def maybe_auto_backup(self) -> None:
        threshold = self.state.settings.auto_backup_threshold
        if threshold and len(self.state.sales) % threshold == 0:
            try:
                path = self.repo.write_backup(self.state.backup().model_dump(mode="json", by_alias=True))
                logger.info("Auto-backup written to %s", path)
            except OSError:
                logger.exception("Auto-backup failed")


_terminal: Optional[Terminal] = None


def get_terminal() -> Terminal:
    global _terminal
    if _terminal is None:
        setup_logger()
        _terminal = Terminal(SnapshotRepository(DATA_DIR))
    return _terminal


# Error mapping

@app.exception_handler(ValidationRejection)
async def validation_rejection_handler(request: Request, exc: ValidationRejection):
    return JSONResponse(status_code=400, content={"detail": str(exc), "kind": "validation"})


@app.exception_handler(StateConflict)
async def state_conflict_handler(request: Request, exc: StateConflict):
    return JSONResponse(status_code=409, content={"detail": str(exc), "kind": "conflict"})


@app.exception_handler(MalformedSnapshot)
async def malformed_snapshot_handler(request: Request, exc: MalformedSnapshot):
    return JSONResponse(status_code=422, content={"detail": str(exc), "kind": "malformed"})


# Request / response models

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthRequest(BaseModel):
    password: str
    cashier: str = "Main Counter"


class ProductUpdate(Record):
    name: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[UnitType] = None
    stock: Optional[float] = Field(None, ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    normal_price: Optional[float] = Field(None, ge=0)
    wholesale_threshold: Optional[float] = Field(None, ge=0)
    wholesale_price: Optional[float] = Field(None, ge=0)
    reorder_level: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None


class StockAdjust(Record):
    product_id: str
    delta: float


class CartAdd(Record):
    product_id: str


class CartChange(Record):
    delta: float


class CartView(Record):
    items: List[CartItem]
    subtotal: float
    tax: float
    total: float


class CheckoutRequest(Record):
    payment_method: PaymentMethod = PaymentMethod.CASH
    amount_received: float = Field(0.0, ge=0, allow_inf_nan=False)
    discount: float = Field(0.0, ge=0)
    cashier: Optional[str] = None


class SettingsView(Record):
    name: str
    footer: str
    auto_backup_threshold: int
    auto_print_receipts: bool


class SettingsUpdate(Record):
    name: Optional[str] = None
    footer: Optional[str] = None
    auto_backup_threshold: Optional[int] = Field(None, ge=0)
    auto_print_receipts: Optional[bool] = None
    system_password: Optional[str] = None
    inventory_password: Optional[str] = None


# Auth helpers

async def parse_auth_request(request: Request) -> AuthRequest:
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return AuthRequest(
            password=form.get("password") or "",
            cashier=form.get("username") or form.get("cashier") or "Main Counter",
        )
    data = await request.json()
    try:
        return AuthRequest(**data)
    except (TypeError, ValidationError):
        raise HTTPException(status_code=422, detail="password is required")


def get_current_user(token: str = Depends(oauth2_scheme)) -> str:
    cashier = decode_access_token(token)
    if cashier is None:
        raise HTTPException(
            status_code=401,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return cashier


def require_inventory_password(
    x_inventory_password: str = Header(...),
    terminal: Terminal = Depends(get_terminal),
):
    if not verify_password(x_inventory_password, terminal.state.settings.inventory_password):
        raise HTTPException(status_code=403, detail="Invalid inventory password")


def cart_view(cart: Cart) -> CartView:
    return CartView(items=cart.items, subtotal=cart.subtotal, tax=cart.tax, total=cart.total)


@app.get("/")
def read_root(terminal: Terminal = Depends(get_terminal)):
    return {
        "message": "Shop POS API",
        "shop": terminal.state.settings.name,
        "is_day_closed": terminal.state.is_day_closed,
    }


@app.post("/auth/token", response_model=Token)
async def login(request: Request, terminal: Terminal = Depends(get_terminal)):
    auth = await parse_auth_request(request)
    if not verify_password(auth.password, terminal.state.settings.system_password):
        logger.warning("Failed unlock attempt for %s", auth.cashier)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return Token(access_token=create_access_token({"sub": auth.cashier}))


# Products

@app.get("/products", response_model=List[Product])
def list_products(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return terminal.state.products


@app.post("/products", response_model=Product, dependencies=[Depends(require_inventory_password)])
def create_product(product: Product, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        if terminal.state.find_product(product.id):
            raise HTTPException(status_code=400, detail="Product id already exists")
        terminal.state.add_product(product)
        terminal.persist()
    return product


@app.put("/products/{product_id}", response_model=Product, dependencies=[Depends(require_inventory_password)])
def update_product(
    product_id: str,
    update: ProductUpdate,
    terminal: Terminal = Depends(get_terminal),
    _: str = Depends(get_current_user),
):
    with terminal.lock:
        existing = terminal.state.find_product(product_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Product not found")
        # Fields sent as null are applied, so optional ones like image can be cleared
        update_dict = update.model_dump(exclude_unset=True)
        try:
            updated = Product.model_validate({**existing.model_dump(), **update_dict})
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))
        terminal.state.update_product(updated)
        terminal.persist()
    return updated


@app.delete("/products/{product_id}", dependencies=[Depends(require_inventory_password)])
def delete_product(product_id: str, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        if terminal.state.find_product(product_id) is None:
            raise HTTPException(status_code=404, detail="Product not found")
        terminal.state.delete_product(product_id)
        terminal.persist()
    return {"status": "ok"}


@app.post("/products/adjust-stock", response_model=Product, dependencies=[Depends(require_inventory_password)])
def adjust_stock(req: StockAdjust, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        existing = terminal.state.find_product(req.product_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Product not found")
        new_stock = existing.stock + req.delta
        if new_stock < 0:
            raise HTTPException(status_code=400, detail="Stock cannot go below zero")
        updated = existing.model_copy(update={"stock": new_stock})
        terminal.state.update_product(updated)
        terminal.persist()
    return updated


@app.post("/products/import", dependencies=[Depends(require_inventory_password)])
def import_products(records: List[dict], terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        inserted, updated = terminal.state.import_products(records)
        terminal.persist()
    return {"status": "ok", "inserted": inserted, "updated": updated}


@app.get("/products/export", response_model=List[Product])
def export_products(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return terminal.state.products


# Cart

@app.get("/cart", response_model=CartView)
def get_cart(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        return cart_view(terminal.cart)


@app.post("/cart/items", response_model=CartView)
def add_to_cart(req: CartAdd, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        if terminal.state.is_day_closed:
            raise HTTPException(status_code=409, detail="Day is closed")
        product = terminal.state.find_product(req.product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        terminal.cart.add_item(product)
        return cart_view(terminal.cart)


@app.patch("/cart/items/{product_id}", response_model=CartView)
def change_cart_quantity(
    product_id: str,
    req: CartChange,
    terminal: Terminal = Depends(get_terminal),
    _: str = Depends(get_current_user),
):
    with terminal.lock:
        terminal.cart.change_quantity(product_id, req.delta)
        return cart_view(terminal.cart)


@app.delete("/cart/items/{product_id}", response_model=CartView)
def remove_from_cart(product_id: str, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        terminal.cart.remove(product_id)
        return cart_view(terminal.cart)


@app.delete("/cart", response_model=CartView)
def clear_cart(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        terminal.cart.clear()
        return cart_view(terminal.cart)


# Sales

@app.post("/checkout", response_model=Sale)
def complete_sale(req: CheckoutRequest, terminal: Terminal = Depends(get_terminal), user: str = Depends(get_current_user)):
    with terminal.lock:
        sale = checkout(
            terminal.state,
            terminal.cart,
            payment_method=req.payment_method,
            amount_received=req.amount_received,
            cashier=req.cashier or user,
            discount=req.discount,
        )
        terminal.persist()
        terminal.maybe_auto_backup()
    return sale


@app.get("/sales", response_model=List[Sale])
def list_sales(q: Optional[str] = None, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    sales = reports.search_sales(terminal.state.sales, q) if q else terminal.state.sales
    # Most recent first
    return list(reversed(sales))


@app.get("/sales/{sale_id}", response_model=Sale)
def get_sale(sale_id: str, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    sale = terminal.state.find_sale(sale_id)
    if sale is None:
        raise HTTPException(status_code=404, detail="Sale not found")
    return sale


@app.get("/sales/{sale_id}/receipt", response_class=PlainTextResponse)
def get_receipt(sale_id: str, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    sale = terminal.state.find_sale(sale_id)
    if sale is None:
        raise HTTPException(status_code=404, detail="Sale not found")
    return render_receipt(sale, terminal.state.settings, CURRENCY)


# Day close

@app.post("/day/close", response_model=ZReport)
def end_shift(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        report = close_day(terminal.state)
        terminal.persist()
    return report


@app.post("/day/reopen")
def start_shift(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        reopen_day(terminal.state)
        terminal.persist()
    return {"status": "ok", "is_day_closed": terminal.state.is_day_closed}


@app.get("/zreports", response_model=List[ZReport])
def list_z_reports(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return terminal.state.z_report_history


@app.get("/zreports/current", response_model=ZReport)
def current_z_report(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    if terminal.state.current_z_report is None:
        raise HTTPException(status_code=404, detail="No Z-Report yet")
    return terminal.state.current_z_report


@app.get("/zreports/current/text", response_class=PlainTextResponse)
def current_z_report_text(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    if terminal.state.current_z_report is None:
        raise HTTPException(status_code=404, detail="No Z-Report yet")
    return render_z_report(terminal.state.current_z_report, terminal.state.settings.name, CURRENCY)


# Reports

@app.get("/reports/summary", response_model=reports.SalesSummary)
def summary_report(start: Optional[date] = None, end: Optional[date] = None,
                   terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.sales_summary(terminal.state.sales, start, end)


@app.get("/reports/profit", response_model=reports.ProfitSnapshot)
def profit_report(start: Optional[date] = None, end: Optional[date] = None,
                  terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.profit_snapshot(terminal.state.sales, start, end)


@app.get("/reports/cashiers", response_model=List[reports.CashierStats])
def cashier_report(start: Optional[date] = None, end: Optional[date] = None,
                   terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.cashier_performance(terminal.state.sales, start, end)


@app.get("/reports/stock-valuation", response_model=reports.StockValuation)
def stock_valuation_report(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.stock_valuation(terminal.state.products)


@app.get("/reports/low-stock", response_model=List[Product])
def low_stock_report(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.low_stock(terminal.state.products)


@app.get("/reports/payments", response_model=Dict[str, float])
def payments_report(start: Optional[date] = None, end: Optional[date] = None,
                    terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.payment_breakdown(terminal.state.sales, start, end)


@app.get("/reports/discounts", response_model=reports.DiscountSummary)
def discounts_report(start: Optional[date] = None, end: Optional[date] = None,
                     terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.discount_summary(terminal.state.sales, start, end)


@app.get("/reports/stock-movement", response_model=List[reports.StockMovement])
def stock_movement_report(start: Optional[date] = None, end: Optional[date] = None,
                          terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.stock_movement(terminal.state.sales, start, end)


@app.get("/reports/eod-log", response_model=List[ZReport])
def eod_log_report(start: Optional[date] = None, end: Optional[date] = None,
                   terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.eod_log(terminal.state.z_report_history, start, end)


@app.get("/reports/trend", response_model=List[reports.TrendPoint])
def trend_report(days: int = 7, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.sales_trend(terminal.state.sales, days)


@app.get("/dashboard", response_model=reports.DashboardStats)
def dashboard(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return reports.dashboard_stats(terminal.state.sales, terminal.state.products)


# Settings

@app.get("/settings", response_model=SettingsView)
def get_settings(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return SettingsView.model_validate(terminal.state.settings.model_dump())


@app.put("/settings", response_model=SettingsView, dependencies=[Depends(require_inventory_password)])
def update_settings(s: SettingsUpdate, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        current = terminal.state.settings.model_dump()
        terminal.state.settings = ShopSettings.model_validate({**current, **s.model_dump(exclude_none=True)})
        terminal.persist()
    return SettingsView.model_validate(terminal.state.settings.model_dump())


# Backup / restore

@app.get("/backup", response_model=Backup)
def backup(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    return terminal.state.backup()


@app.post("/restore", dependencies=[Depends(require_inventory_password)])
def restore(data: dict, terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        terminal.state.restore(data)
        terminal.cart.clear()
        terminal.persist()
    return {
        "status": "ok",
        "products": len(terminal.state.products),
        "sales": len(terminal.state.sales),
        "z_reports": len(terminal.state.z_report_history),
    }


@app.post("/admin/purge-sales", dependencies=[Depends(require_inventory_password)])
def purge_sales(terminal: Terminal = Depends(get_terminal), _: str = Depends(get_current_user)):
    with terminal.lock:
        count = terminal.state.purge_sales()
        terminal.persist()
    return {"status": "ok", "purged": count}


if __name__ == "__main__":
    import uvicorn
    setup_logger()
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
