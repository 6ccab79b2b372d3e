"""Tests for the monthly statement layout."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from azza_erp.models import PaymentStatus
from azza_erp.services.document_renderer import RecordingSurface
from azza_erp.services.reports import MonthlyReport
from azza_erp.utils.statement_pdf import (
    EXPENSE,
    EXPENSE_COLOR,
    INCOME,
    INCOME_COLOR,
    TX_COLUMNS,
    layout_monthly_statement,
    render_monthly_statement_pdf,
    statement_filename,
    statement_lines,
)


def _inv(number, day, total, status, customer="Öz Makina"):
    return SimpleNamespace(
        invoice_number=number,
        customer=SimpleNamespace(name=customer),
        status=status,
        issue_date=date(2026, 2, day),
        total_amount=Decimal(total),
        unit_price=Decimal("0"),
    )


def _exp(description, day, amount, paid=False):
    return SimpleNamespace(
        description=description,
        amount=Decimal(amount),
        paid=paid,
        business_date=date(2026, 2, day),
    )


@pytest.fixture()
def report() -> MonthlyReport:
    return MonthlyReport(
        key="2026-02",
        invoices=[
            _inv("2026001", 3, "3000", PaymentStatus.PAID),
            _inv("2026002", 10, "2000", PaymentStatus.PARTIAL, customer="Gulf Equipment"),
        ],
        expenses=[
            _exp("Gümrük müşavirliği", 3, "1500", paid=True),
            _exp("Nakliye ücreti", 20, "500"),
        ],
    )


def _layout(report) -> RecordingSurface:
    surface = RecordingSurface()
    layout_monthly_statement(surface, report, today=date(2026, 3, 1))
    return surface


def test_lines_are_date_ordered_with_running_balance(report) -> None:
    lines = statement_lines(report)

    assert [(line.kind, line.balance) for line in lines] == [
        (INCOME, Decimal("3000")),
        (EXPENSE, Decimal("1500")),
        (INCOME, Decimal("3500")),
        (EXPENSE, Decimal("3000")),
    ]
    assert lines[0].description == "Proforma 2026001 - Oz Makina"
    assert lines[1].description == "Gumruk musavirligi"


def test_same_day_rows_keep_insertion_order(report) -> None:
    # Invoice and expense both dated the 3rd: invoices are listed first
    first, second = statement_lines(report)[:2]
    assert (first.date, second.date) == (date(2026, 2, 3), date(2026, 2, 3))
    assert (first.kind, second.kind) == (INCOME, EXPENSE)


def test_status_labels(report) -> None:
    assert [line.status for line in statement_lines(report)] == ["ODENDI", "ODENDI", "KISMI", "BEKLIYOR"]


def test_expense_date_falls_back_to_entry_time() -> None:
    expense = SimpleNamespace(
        description="Liman", amount=Decimal("10"), paid=False,
        business_date=None, invoice_date=None, created_at=datetime(2026, 2, 15, 9, 30),
    )
    (line,) = statement_lines(MonthlyReport(key="2026-02", expenses=[expense]))
    assert line.date == date(2026, 2, 15)


def test_header_and_period(report) -> None:
    surface = _layout(report)
    texts = surface.texts()

    assert texts[0] == "AZZA IS MAKINELERI"
    assert "AYLIK HESAP EKSTRESI" in texts
    assert "DONEM: SUBAT 2026" in texts
    (stamp,) = surface.text_ops("Rapor Tarihi:")
    assert stamp.payload["value"] == "Rapor Tarihi: 01.03.2026"
    assert stamp.payload["align"] == "right"


def test_summary_table(report) -> None:
    summary, _tx = _layout(report).tables()

    assert summary.head == [["HESAP OZETI", "TUTAR (USD)"]]
    assert summary.body == [
        ["Toplam Gelir (Faturalar)", "+ 5,000"],
        ["Toplam Gider (Masraflar)", "- 2,000"],
        ["", ""],
        ["NET KAR/ZARAR", "+ 3,000"],
    ]
    assert summary.style_for("body", 3, 1).fill == (240, 240, 240)


def test_summary_shows_loss_with_minus_sign() -> None:
    loss = MonthlyReport(
        key="2026-02",
        invoices=[_inv("2026003", 1, "1000", PaymentStatus.PENDING)],
        expenses=[_exp("Tamir", 2, "1250.5")],
    )
    summary, _tx = _layout(loss).tables()
    assert summary.body[3] == ["NET KAR/ZARAR", "- 250.50"]


def test_transactions_table(report) -> None:
    _summary, tx = _layout(report).tables()

    assert tx.head == [TX_COLUMNS]
    assert tx.body[0] == ["03.02.2026", "Proforma 2026001 - Oz Makina", "3,000", "", "3,000", "ODENDI"]
    assert tx.body[1] == ["03.02.2026", "Gumruk musavirligi", "", "1,500", "1,500", "ODENDI"]
    assert tx.foot == [["DONEM SONU", "", "5,000", "2,000", "3,000", ""]]


def test_amount_colours(report) -> None:
    _summary, tx = _layout(report).tables()

    assert tx.style_for("body", 0, 2).text_color == INCOME_COLOR
    assert tx.style_for("body", 1, 3).text_color == EXPENSE_COLOR
    assert tx.style_for("body", 0, 3).text_color == (0, 0, 0)


def test_empty_month_has_zero_balance() -> None:
    _summary, tx = _layout(MonthlyReport(key="2026-02")).tables()

    assert tx.body == []
    assert tx.foot == [["DONEM SONU", "", "0", "0", "0", ""]]


def test_transactions_follow_summary(report) -> None:
    surface = _layout(report)
    summary_op, tx_op = [op for op in surface.ops if op.kind == "table"]
    (title,) = surface.text_ops("ISLEM HAREKETLERI")

    assert summary_op.y == 45
    assert title.y == pytest.approx(summary_op.y + summary_op.payload["height"] + 10)
    assert tx_op.y == pytest.approx(title.y + 5)


def test_footer(report) -> None:
    surface = _layout(report)
    texts = surface.texts()

    assert "AZZA IS MAKINELERI DERI TEKS. SAN. ve TIC. LTD. STI" in texts
    assert texts[-1].startswith("Bu ekstre elektronik olarak")
    footer_rule = [op for op in surface.ops if op.kind == "line"][-1]
    assert footer_rule.y == pytest.approx(surface.page_height - 25)


def test_renders_real_pdf(report) -> None:
    pdf = render_monthly_statement_pdf(report, today=date(2026, 3, 1))
    assert pdf.startswith(b"%PDF")


def test_filename_is_ascii(report) -> None:
    assert statement_filename(report) == "AZZA_Ekstre_Subat_2026.pdf"
