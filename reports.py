# Read-only analytics over the sales archive and the catalog.
# Date ranges are inclusive local calendar dates; a None bound is open.
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from day_close import local_date, local_now
from schemas import Product, Sale, UnitType, ZReport


class SalesSummary(BaseModel):
    revenue: float = 0.0
    transactions: int = 0
    items_sold: float = 0.0
    retail_revenue: float = 0.0
    wholesale_revenue: float = 0.0


class ProfitSnapshot(BaseModel):
    revenue: float = 0.0
    cogs: float = 0.0
    profit: float = 0.0
    margin: float = 0.0


class CashierStats(BaseModel):
    cashier: str
    transactions: int
    revenue: float
    average_ticket: float


class StockValuation(BaseModel):
    cost_value: float = 0.0
    retail_value: float = 0.0


class DiscountSummary(BaseModel):
    total_discount: float = 0.0
    sales: List[Sale] = []


class StockMovement(BaseModel):
    timestamp: datetime
    sale_id: str
    product: str
    type: str = "SALE"
    qty: float
    unit: UnitType
    value: float


class DashboardStats(BaseModel):
    revenue: float = 0.0
    profit: float = 0.0
    transactions: int = 0
    low_stock_count: int = 0


class TrendPoint(BaseModel):
    day: date
    sales: float


def filter_sales(
    sales: Iterable[Sale], start: Optional[date] = None, end: Optional[date] = None
) -> List[Sale]:
    def in_range(s: Sale) -> bool:
        d = local_date(s.timestamp)
        return (start is None or d >= start) and (end is None or d <= end)

    return list(filter(in_range, sales))


def sales_summary(sales, start=None, end=None) -> SalesSummary:
    sales = filter_sales(sales, start, end)
    return SalesSummary(
        revenue=sum(s.total for s in sales),
        transactions=len(sales),
        items_sold=sum(it.quantity for s in sales for it in s.items),
        retail_revenue=sum(s.total for s in sales if s.is_retail),
        wholesale_revenue=sum(s.total for s in sales if not s.is_retail),
    )


def profit_snapshot(sales, start=None, end=None) -> ProfitSnapshot:
    sales = filter_sales(sales, start, end)
    revenue = sum(s.total for s in sales)
    cogs = sum(s.cost_of_goods_sold for s in sales)
    profit = revenue - cogs
    margin = profit / revenue * 100 if revenue else 0.0
    return ProfitSnapshot(revenue=revenue, cogs=cogs, profit=profit, margin=margin)


def cashier_performance(sales, start=None, end=None) -> List[CashierStats]:
    totals: Dict[str, List[float]] = {}
    for s in filter_sales(sales, start, end):
        row = totals.setdefault(s.cashier or "Unknown", [0, 0.0])
        row[0] += 1
        row[1] += s.total
    return [
        CashierStats(cashier=name, transactions=tx, revenue=rev, average_ticket=rev / tx)
        for name, (tx, rev) in totals.items()
    ]


def stock_valuation(products: Iterable[Product]) -> StockValuation:
    products = list(products)
    return StockValuation(
        cost_value=sum(p.stock * p.cost_price for p in products),
        retail_value=sum(p.stock * p.normal_price for p in products),
    )


def low_stock(products: Iterable[Product]) -> List[Product]:
    return [p for p in products if p.stock <= p.reorder_level]


def payment_breakdown(sales, start=None, end=None) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for s in filter_sales(sales, start, end):
        method = s.payment_method.value if s.payment_method else "Unknown"
        totals[method] += s.total
    return dict(totals)


def discount_summary(sales, start=None, end=None) -> DiscountSummary:
    sales = filter_sales(sales, start, end)
    return DiscountSummary(
        total_discount=sum(s.discount for s in sales),
        sales=[s for s in sales if s.discount > 0],
    )


def stock_movement(sales, start=None, end=None) -> List[StockMovement]:
    rows = [
        StockMovement(
            timestamp=s.timestamp,
            sale_id=s.id,
            product=it.product.name,
            qty=it.quantity,
            unit=it.product.unit,
            value=it.total,
        )
        for s in filter_sales(sales, start, end)
        for it in s.items
    ]
    rows.sort(key=lambda r: r.timestamp, reverse=True)
    return rows


def dashboard_stats(sales, products, today: Optional[date] = None) -> DashboardStats:
    today = today or local_now().date()
    todays = filter_sales(sales, today, today)
    return DashboardStats(
        revenue=sum(s.total for s in todays),
        profit=sum(s.total - s.cost_of_goods_sold for s in todays),
        transactions=len(todays),
        low_stock_count=len(low_stock(products)),
    )


def sales_trend(sales, days: int = 7, today: Optional[date] = None) -> List[TrendPoint]:
    today = today or local_now().date()
    by_day: Dict[date, float] = defaultdict(float)
    for s in sales:
        by_day[local_date(s.timestamp)] += s.total
    return [
        TrendPoint(day=d, sales=by_day.get(d, 0.0))
        for d in (today - timedelta(days=i) for i in range(days - 1, -1, -1))
    ]


def search_sales(sales: Iterable[Sale], query: str) -> List[Sale]:
    q = (query or "").lower()
    return [
        s for s in sales
        if q in s.id.lower() or any(q in it.product.name.lower() for it in s.items)
    ]


def eod_log(z_reports: Iterable[ZReport], start=None, end=None) -> List[ZReport]:
    # Z-report dates are ISO strings, so string comparison orders them
    lo = start.isoformat() if start else None
    hi = end.isoformat() if end else None
    return [
        r for r in z_reports
        if (lo is None or r.date >= lo) and (hi is None or r.date <= hi)
    ]
