from checkout import checkout
from day_close import build_z_report
from rendering import render_receipt, render_z_report
from schemas import PaymentMethod, ShopSettings


def sell(state, cart, method, received, now, lines):
    for product_id, qty in lines:
        cart.add_item(state.find_product(product_id))
        if qty > 1:
            cart.change_quantity(product_id, qty - 1)
    return checkout(state, cart, method, received, "Amina", now=now)


def test_cash_receipt(state, cart, at):
    sale = sell(state, cart, PaymentMethod.CASH, 2000, at(2026, 10, 19, 9, 5, 30),
                [("p1", 1), ("p2", 10)])
    settings = ShopSettings(name="GODWILL SHOP", footer="Karibu tena",
                            system_password="x", inventory_password="y")

    text = render_receipt(sale, settings, "Ksh")

    assert "GODWILL SHOP - RECEIPT" in text
    assert f"RECEIPT #:  {sale.id}" in text
    assert "DATE:       2026-10-19" in text
    assert "TIME:       09:05:30" in text
    assert "CASHIER:    Amina" in text
    assert "PAYMENT:    Cash" in text
    assert "Maize Flour 2kg\n" in text
    assert "Sugar (Loose) [WHOLESALE]" in text
    assert "10.00 Kg @ 135.00 = 1350.00" in text
    assert "SUBTOTAL:   1450.00" in text
    assert "VAT (8%):   116.00" in text
    assert "TOTAL:      Ksh 1450.00" in text
    assert "PAID (CASH): 2000.00" in text
    assert "CHANGE:      550.00" in text
    assert "Karibu tena" in text
    assert render_receipt(sale, settings, "Ksh") == text


def test_non_cash_receipt_has_no_change_section(state, cart, at):
    sale = sell(state, cart, PaymentMethod.MPESA, 0, at(2026, 10, 19, 9), [("p3", 1)])
    text = render_receipt(sale, state.settings, "Ksh")
    assert "PAYMENT:    Mpesa" in text
    assert "PAID (CASH)" not in text
    assert "CHANGE:" not in text


def test_z_report_text(make_sale, at, today):
    sales = [
        make_sale(at(2026, 10, 19, 8, 30), [("p1", 3)], PaymentMethod.CASH),
        make_sale(at(2026, 10, 19, 12), [("p2", 1)], PaymentMethod.MPESA, discount=10),
    ]
    report = build_z_report(sales, now=today)

    text = render_z_report(report, "GODWILL SHOP", "Ksh")

    assert "Z-REPORT: GODWILL SHOP" in text
    assert "DATE:      2026-10-19" in text
    assert "OPENED:    08:30:00" in text
    assert "CLOSED:    18:00:00" in text
    assert "TX COUNT:       2" in text
    assert "GROSS SALES:    Ksh 400.00" in text
    assert "DISCOUNTS:      10.00" in text
    assert "NET REVENUE:    Ksh 400.00" in text
    assert "CASH TOTAL:     Ksh 300.00" in text
    assert "M-PESA TOTAL:   Ksh 100.00" in text
    assert "SPLIT TOTAL:    Ksh 0.00" in text
    assert f"{'Product p1':<25} 3 units" in text
    assert render_z_report(report, "GODWILL SHOP", "Ksh") == text


def test_z_report_keeps_fractional_quantities(make_sale, at, today):
    sales = [make_sale(at(2026, 10, 19, 9), [("p2", 2.5)], PaymentMethod.CASH)]
    report = build_z_report(sales, now=today)

    text = render_z_report(report, "GODWILL SHOP", "Ksh")

    assert f"{'Product p2':<25} 2.5 units" in text
