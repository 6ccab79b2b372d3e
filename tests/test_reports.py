"""Tests for monthly reports, the accounting summary and dashboard figures."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from azza_erp.errors import NotFoundError, ValidationError
from azza_erp.extensions import db
from azza_erp.models import Machine, ProformaInvoice
from azza_erp.services import lifecycle, reports


def _pay(invoice, amount, on):
    return lifecycle.create_payment(
        lifecycle.PaymentDraft(proforma_invoice_id=invoice.id, amount=Decimal(amount), payment_date=on)
    )


# =========================================================
# Pure grouping
# =========================================================
def test_month_label_is_turkish() -> None:
    assert reports.month_label("2026-02") == "Şubat 2026"
    assert reports.month_label("2025-12") == "Aralık 2025"
    assert reports.month_key(date(2026, 3, 9)) == "2026-03"


def test_group_monthly_only_attaches_to_invoiced_months() -> None:
    invoices = [
        SimpleNamespace(issue_date=date(2026, 1, 5), total_amount=Decimal("1000"), unit_price=None),
        SimpleNamespace(issue_date=date(2026, 1, 20), total_amount=Decimal("500"), unit_price=None),
        SimpleNamespace(issue_date=date(2026, 3, 2), total_amount=Decimal("700"), unit_price=None),
    ]
    expenses = [
        SimpleNamespace(business_date=date(2026, 1, 9), amount=Decimal("100")),
        SimpleNamespace(business_date=date(2026, 2, 14), amount=Decimal("999")),
    ]
    payments = [SimpleNamespace(payment_date=date(2026, 3, 3), amount=Decimal("300"))]

    months = reports.group_monthly(invoices, expenses, payments)

    assert [m.key for m in months] == ["2026-01", "2026-03"]
    january, march = months
    assert january.total_revenue == Decimal("1500")
    assert january.total_expenses == Decimal("100")
    assert january.profit == Decimal("1400")
    assert january.profit_margin == Decimal("93.33")
    assert march.total_collected == Decimal("300")
    assert march.total_expenses == Decimal("0")


def test_group_monthly_limit_keeps_latest() -> None:
    invoices = [
        SimpleNamespace(issue_date=date(2025, m, 1), total_amount=Decimal("1"), unit_price=None)
        for m in range(1, 13)
    ]
    months = reports.group_monthly(invoices, [], [], limit=3)
    assert [m.key for m in months] == ["2025-10", "2025-11", "2025-12"]


def test_margin_is_zero_without_revenue() -> None:
    report = reports.MonthlyReport(key="2026-01", expenses=[SimpleNamespace(amount=Decimal("50"))])
    assert report.profit == Decimal("-50")
    assert report.profit_margin == Decimal("0")


# =========================================================
# Store-backed reports
# =========================================================
def test_monthly_report(make_invoice, make_expense) -> None:
    february = make_invoice(prices=("1000",), invoice_number="2026001", issue_date=date(2026, 2, 5))
    make_invoice(prices=("4000",), invoice_number="2026002", issue_date=date(2026, 3, 1))
    make_expense("200", invoice_date=date(2026, 2, 10))
    make_expense("50", invoice_date=date(2026, 3, 1))
    make_expense("30", created_at=datetime(2026, 2, 20, 12, 0))
    _pay(february, "400", date(2026, 2, 15))

    report = reports.monthly_report(2026, 2)

    assert report.label == "Şubat 2026"
    assert report.invoice_count == 1
    assert report.total_revenue == Decimal("1000")
    assert report.total_expenses == Decimal("230")
    assert report.total_collected == Decimal("400")
    assert report.profit_margin == Decimal("77.00")

    data = report.to_dict(with_rows=True)
    assert data["profit"] == 770.0
    assert [row["invoice_number"] for row in data["invoices"]] == ["2026001"]
    assert len(data["expenses"]) == 2


@pytest.mark.usefixtures("app")
def test_month_without_invoices_has_no_report() -> None:
    with pytest.raises(NotFoundError):
        reports.monthly_report(2026, 4)


@pytest.mark.usefixtures("app")
def test_invalid_month_rejected() -> None:
    with pytest.raises(ValidationError):
        reports.monthly_report(2026, 13)


def test_monthly_reports_from_store(make_invoice) -> None:
    make_invoice(invoice_number="2025101", issue_date=date(2025, 10, 1))
    make_invoice(invoice_number="2026001", issue_date=date(2026, 1, 1))

    assert [m.key for m in reports.monthly_reports(limit=1)] == ["2026-01"]
    assert [m.key for m in reports.monthly_reports()] == ["2025-10", "2026-01"]


def test_accounting_summary(make_invoice, make_expense) -> None:
    first = make_invoice(prices=("1000",), invoice_number="2026001")
    make_invoice(prices=("2000",), invoice_number="2026002")
    make_expense("500")
    _pay(first, "1000", date(2026, 1, 10))

    summary = reports.accounting_summary()

    assert summary.total_revenue == Decimal("3000")
    assert summary.gross_profit == Decimal("2500")
    assert summary.profit_margin == Decimal("83.33")
    assert summary.pending_collections == Decimal("2000")
    assert summary.to_dict()["total_collected"] == 1000.0


def test_dashboard_stats(make_invoice, make_machine) -> None:
    invoice = make_invoice(prices=("1000", "2000"), margin="10", invoice_number="2026001")
    make_machine()
    lifecycle.create_shipment(lifecycle.ShipmentDraft(proforma_invoice_id=invoice.id))

    stats = reports.dashboard_stats()

    assert stats["total_machines"] == 3
    assert stats["total_invoices"] == 1
    assert stats["active_shipments"] == 1
    assert stats["total_revenue"] == 3300.0
    assert len(stats["recent_machines"]) == 3


# =========================================================
# Per machine
# =========================================================
def test_machine_financials_with_invoice(make_invoice, make_expense) -> None:
    invoice = make_invoice(prices=("1000",), margin="30", invoice_number="2026001")
    machine_id = invoice.items[0].machine_id
    make_expense("100", machine_id=machine_id)

    machine = db.session.get(Machine, machine_id)
    fin = reports.machine_financials(machine)

    assert fin.invoice_id == invoice.id
    assert fin.sale_price == Decimal("1300")
    assert fin.total_cost == Decimal("1100")
    assert fin.gross_profit == Decimal("200")
    assert fin.to_dict()["expense_count"] == 1


def test_machine_financials_use_own_line_on_multi_machine_invoice(make_invoice) -> None:
    invoice = make_invoice(prices=("1000", "2000", "3000"), margin="30", invoice_number="2026001")
    machines = [db.session.get(Machine, it.machine_id) for it in invoice.items]

    sale_prices = [reports.machine_financials(m).sale_price for m in machines]
    first = reports.machine_financials(machines[0])

    assert sale_prices == [Decimal("1300"), Decimal("2600"), Decimal("3900")]
    assert sum(sale_prices) == Decimal("7800")
    assert first.invoice_id == invoice.id
    assert first.gross_profit == Decimal("300")


def test_machine_financials_without_invoice(make_machine) -> None:
    fin = reports.machine_financials(make_machine(purchase_price="800"))

    assert fin.invoice_id is None
    assert fin.sale_price is None
    assert fin.gross_profit == Decimal("0")
    assert fin.to_dict()["sale_price"] is None


def test_invoice_for_machine_falls_back_to_legacy_column(make_customer, make_machine) -> None:
    machine = make_machine()
    legacy = ProformaInvoice(
        invoice_number="2024031",
        customer=make_customer(),
        machine_id=machine.id,
        brand=machine.brand,
        model=machine.model,
        unit_price=Decimal("5000"),
    )
    db.session.add(legacy)
    db.session.commit()

    assert reports.invoice_for_machine(machine.id) is legacy
    assert reports.machine_financials(machine).sale_price == Decimal("5000")
