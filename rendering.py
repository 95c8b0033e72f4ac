from config import CURRENCY, TAX_RATE
from schemas import PaymentMethod, Sale, ShopSettings, ZReport

RULE = "=" * 40
THIN_RULE = "-" * 40


def _local(ts):
    return ts.astimezone() if ts.tzinfo is not None else ts


def render_receipt(sale: Sale, settings: ShopSettings, currency: str = CURRENCY) -> str:
    """Plain-text receipt for a finalized sale."""
    ts = _local(sale.timestamp)
    method = sale.payment_method.value if sale.payment_method else "Unknown"

    lines = [
        RULE,
        f"{settings.name} - RECEIPT".center(40).rstrip(),
        RULE,
        f"RECEIPT #:  {sale.id}",
        f"DATE:       {ts.strftime('%Y-%m-%d')}",
        f"TIME:       {ts.strftime('%H:%M:%S')}",
        f"CASHIER:    {sale.cashier}",
        f"PAYMENT:    {method}",
        RULE,
        "",
        "ITEMS:",
        THIN_RULE,
    ]
    for item in sale.items:
        name = item.product.name + (" [WHOLESALE]" if item.is_wholesale else "")
        lines.append(name)
        lines.append(
            f"  {item.quantity:.2f} {item.product.unit.value} @ {item.unit_price:.2f}"
            f" = {item.total:.2f}"
        )
    lines += [
        THIN_RULE,
        f"SUBTOTAL:   {sale.subtotal:.2f}",
        f"VAT ({TAX_RATE * 100:g}%):   {sale.tax:.2f}",
        f"TOTAL:      {currency} {sale.total:.2f}",
    ]
    if sale.payment_method == PaymentMethod.CASH:
        lines += [
            f"PAID (CASH): {sale.amount_received:.2f}",
            f"CHANGE:      {sale.change:.2f}",
        ]
    lines += [
        RULE,
        settings.footer,
        "Goods once sold are not returnable",
        RULE,
    ]
    return "\n".join(lines)


def render_z_report(report: ZReport, shop_name: str, currency: str = CURRENCY) -> str:
    lines = [
        RULE,
        f"Z-REPORT: {shop_name}",
        RULE,
        f"DATE:      {report.date}",
        f"OPENED:    {report.open_time}",
        f"CLOSED:    {report.close_time}",
        RULE,
        "",
        "SALES METRICS:",
        THIN_RULE,
        f"TX COUNT:       {report.total_sales}",
        f"GROSS SALES:    {currency} {report.gross_sales:.2f}",
        f"DISCOUNTS:      {report.discounts:.2f}",
        f"NET REVENUE:    {currency} {report.net_sales:.2f}",
        "",
        "PAYMENT CHANNELS:",
        THIN_RULE,
        f"CASH TOTAL:     {currency} {report.cash_total:.2f}",
        f"M-PESA TOTAL:   {currency} {report.mpesa_total:.2f}",
        f"SPLIT TOTAL:    {currency} {report.split_total:.2f}",
        "",
        "TOP PERFORMING ITEMS:",
        THIN_RULE,
    ]
    lines += [f"{item.name:<25} {item.qty:g} units" for item in report.top_items]
    lines += [
        "",
        RULE,
        "SHIFT OFFICIALLY ARCHIVED".center(40).rstrip(),
        RULE,
    ]
    return "\n".join(lines)
