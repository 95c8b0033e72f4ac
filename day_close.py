import logging
from collections import Counter
from datetime import date, datetime
from typing import Iterable, List, Optional

from config import TOP_ITEMS_LIMIT
from errors import DayAlreadyClosed
from schemas import PaymentMethod, Sale, TopItem, ZReport
from state import PosState

logger = logging.getLogger("pos.day_close")

TIME_FORMAT = "%H:%M:%S"


def local_now() -> datetime:
    return datetime.now().astimezone()


def local_date(ts: datetime) -> date:
    # Naive timestamps are taken to be local already
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone().date()


def local_time_str(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone()
    return ts.strftime(TIME_FORMAT)


def sales_on(sales: Iterable[Sale], day: date) -> List[Sale]:
    return [s for s in sales if local_date(s.timestamp) == day]


def top_items(sales: Iterable[Sale], limit: int = TOP_ITEMS_LIMIT) -> List[TopItem]:
    # Counter keeps first-seen order, and most_common() is stable for ties
    counter = Counter()
    for s in sales:
        for it in s.items:
            counter[it.product.name] += it.quantity
    return [TopItem(name=name, qty=qty) for name, qty in counter.most_common(limit)]


def build_z_report(sales: Iterable[Sale], now: Optional[datetime] = None) -> ZReport:
    """Reconcile the sales made on `now`'s calendar day into a Z-Report."""
    now = now or local_now()
    today = local_date(now)
    todays = sales_on(sales, today)

    def method_total(method: PaymentMethod) -> float:
        return sum(s.total for s in todays if s.payment_method == method)

    if todays:
        open_time = local_time_str(min(todays, key=lambda s: s.timestamp).timestamp)
    else:
        open_time = local_time_str(now)

    return ZReport(
        date=today.isoformat(),
        open_time=open_time,
        close_time=local_time_str(now),
        total_sales=len(todays),
        gross_sales=sum(s.subtotal for s in todays),
        discounts=sum(s.discount for s in todays),
        net_sales=sum(s.total for s in todays),
        cash_total=method_total(PaymentMethod.CASH),
        mpesa_total=method_total(PaymentMethod.MPESA),
        split_total=method_total(PaymentMethod.SPLIT),
        top_items=top_items(todays),
    )


def close_day(state: PosState, now: Optional[datetime] = None) -> ZReport:
    """Archive today's Z-Report and lock the till against further sales."""
    if state.is_day_closed:
        raise DayAlreadyClosed()

    report = build_z_report(state.sales, now)
    state.archive_z_report(report)

    logger.info(
        "Day %s closed: %d sales, net %.2f", report.date, report.total_sales, report.net_sales
    )
    return report


def reopen_day(state: PosState) -> None:
    # Next business day startup; history stays as archived
    state.reopen_day()
    logger.info("Day reopened for trading")
