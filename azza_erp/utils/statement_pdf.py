# azza_erp/utils/statement_pdf.py

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from azza_erp.config.company import (
    COMPANY_ADDRESS,
    COMPANY_LEGAL_NAME,
    COMPANY_NAME,
    COMPANY_PHONE,
    COMPANY_TAX_OFFICE,
    STATEMENT_DISCLAIMER,
    STATEMENT_TITLE,
)
from azza_erp.models import PaymentStatus
from azza_erp.services.document_renderer import CellStyle, PageSurface, ReportLabSurface, TableSpec
from azza_erp.services.ledger import CENT, ZERO, invoice_total, to_decimal
from azza_erp.utils.text import normalize_text

INCOME = "GELIR"
EXPENSE = "GIDER"

INVOICE_STATUS_LABELS = {
    PaymentStatus.PAID: "ODENDI",
    PaymentStatus.PARTIAL: "KISMI",
    PaymentStatus.PENDING: "BEKLIYOR",
}

TX_COLUMNS = ["TARIH", "ACIKLAMA", "GELIR (+)", "GIDER (-)", "BAKIYE", "DURUM"]
TX_COL_WIDTHS = [22, 70, 22, 22, 25, 19]
SUMMARY_COL_WIDTHS = [120, 60]

INCOME_COLOR = (0, 100, 0)
EXPENSE_COLOR = (139, 0, 0)


@dataclass(frozen=True)
class StatementLine:
    date: date
    kind: str  # GELIR | GIDER
    description: str
    income: Decimal
    expense: Decimal
    balance: Decimal
    status: str


def _amount(v) -> str:
    """5000 -> '5,000'; cents only when there are any."""
    s = f"{to_decimal(v).quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"
    return s[:-3] if s.endswith(".00") else s


def _signed(v) -> str:
    d = to_decimal(v)
    return f"+ {_amount(d)}" if d >= 0 else f"- {_amount(-d)}"


def _fmt_date(d) -> str:
    if isinstance(d, (datetime, date)):
        return d.strftime("%d.%m.%Y")
    return str(d or "-")


def _as_date(d) -> date:
    if isinstance(d, datetime):
        return d.date()
    return d or date.min


def _expense_date(expense) -> date:
    d = getattr(expense, "business_date", None)
    if d is None:
        d = getattr(expense, "invoice_date", None) or getattr(expense, "created_at", None)
    return _as_date(d)


def statement_lines(report) -> list[StatementLine]:
    """
    Income rows (one per invoice) and expense rows (one per expense), ordered
    by business date with ties kept in insertion order, carrying a running
    balance.
    """
    entries = []
    for inv in report.invoices:
        customer = getattr(inv, "customer", None)
        status = getattr(inv, "status", None)
        entries.append((
            _as_date(getattr(inv, "issue_date", None)),
            INCOME,
            f"Proforma {normalize_text(inv.invoice_number)} - {normalize_text(getattr(customer, 'name', None))}",
            invoice_total(inv),
            ZERO,
            INVOICE_STATUS_LABELS.get(status, "BEKLIYOR"),
        ))
    for exp in report.expenses:
        entries.append((
            _expense_date(exp),
            EXPENSE,
            normalize_text(exp.description),
            ZERO,
            to_decimal(exp.amount),
            "ODENDI" if getattr(exp, "paid", False) else "BEKLIYOR",
        ))

    # sorted() is stable
    entries = sorted(entries, key=lambda e: e[0])

    lines: list[StatementLine] = []
    balance = ZERO
    for d, kind, description, income, expense, status in entries:
        balance = balance + income - expense
        lines.append(StatementLine(d, kind, description, income, expense, balance, status))
    return lines


def summary_table(report) -> TableSpec:
    return TableSpec(
        col_widths=SUMMARY_COL_WIDTHS,
        head=[["HESAP OZETI", "TUTAR (USD)"]],
        body=[
            ["Toplam Gelir (Faturalar)", f"+ {_amount(report.total_revenue)}"],
            ["Toplam Gider (Masraflar)", f"- {_amount(report.total_expenses)}"],
            ["", ""],
            ["NET KAR/ZARAR", _signed(report.profit)],
        ],
        base=CellStyle(family="helvetica", size=9),
        head_style={"fill": (240, 240, 240), "style": "bold", "line_width": 0.5},
        column_styles={
            0: {"style": "normal"},
            1: {"align": "right", "style": "bold"},
        },
        cell_styles={
            ("body", 2, 0): {"line_width": 0.8},
            ("body", 2, 1): {"line_width": 0.8},
            ("body", 3, 0): {"fill": (240, 240, 240), "style": "bold"},
            ("body", 3, 1): {"fill": (240, 240, 240), "style": "bold"},
        },
        line_width=0.3,
        padding=3,
    )


def transactions_table(report, lines: list[StatementLine]) -> TableSpec:
    body = []
    cell_styles = {}
    for i, line in enumerate(lines):
        body.append([
            _fmt_date(line.date),
            line.description,
            _amount(line.income) if line.income else "",
            _amount(line.expense) if line.expense else "",
            _amount(line.balance),
            line.status,
        ])
        if line.income:
            cell_styles[("body", i, 2)] = {"text_color": INCOME_COLOR}
        if line.expense:
            cell_styles[("body", i, 3)] = {"text_color": EXPENSE_COLOR}

    final_balance = lines[-1].balance if lines else ZERO

    return TableSpec(
        col_widths=TX_COL_WIDTHS,
        head=[list(TX_COLUMNS)],
        body=body,
        foot=[[
            "DONEM SONU",
            "",
            _amount(report.total_revenue),
            _amount(report.total_expenses),
            _amount(final_balance),
            "",
        ]],
        base=CellStyle(family="helvetica", size=7),
        head_style={"fill": (240, 240, 240), "style": "bold", "align": "center"},
        foot_style={"fill": (220, 220, 220), "style": "bold", "size": 8, "line_width": 0.8},
        column_styles={
            0: {"align": "center"},
            1: {"align": "left"},
            2: {"align": "right"},
            3: {"align": "right"},
            4: {"align": "right", "style": "bold"},
            5: {"align": "center", "size": 6},
        },
        cell_styles=cell_styles,
        line_width=0.2,
        padding=1.5,
    )


def layout_monthly_statement(surface: PageSurface, report, *, today: date | None = None) -> None:
    """Lay out one month's account statement on surface (NO DB writes)."""
    width, height, m = surface.page_width, surface.page_height, surface.margin
    today = today or date.today()

    # --- Letterhead ---
    surface.line(m, 25, width - m, 25, line_width=1)
    surface.line(m, 27, width - m, 27, line_width=0.3)
    surface.text(width / 2, 15, COMPANY_NAME, family="helvetica", style="bold", size=16, align="center")
    surface.text(width / 2, 21, STATEMENT_TITLE, family="helvetica", size=9, align="center")

    # --- Period ---
    y = 35
    surface.text(m, y, f"DONEM: {normalize_text(report.label).upper()}", family="helvetica", style="bold", size=10)
    surface.text(width - m, y, f"Rapor Tarihi: {_fmt_date(today)}", family="helvetica", size=8, align="right")

    # --- Summary ---
    y = surface.table(summary_table(report), x=m, y=y + 10) + 10

    # --- Transactions ---
    surface.text(m, y, "ISLEM HAREKETLERI", family="helvetica", style="bold", size=10)
    surface.table(transactions_table(report, statement_lines(report)), x=m, y=y + 5)

    # --- Footer ---
    y = height - 25
    surface.line(m, y, width - m, y, line_width=0.8)
    y += 6
    surface.text(m, y, COMPANY_LEGAL_NAME, family="helvetica", style="bold", size=9)
    y += 5
    surface.text(m, y, COMPANY_ADDRESS, family="helvetica", size=8)
    y += 4
    surface.text(m, y, f"Tel: {COMPANY_PHONE} | Vergi Dairesi: {COMPANY_TAX_OFFICE}", family="helvetica", size=8)
    y += 6
    surface.text(width / 2, y, STATEMENT_DISCLAIMER, family="helvetica", style="italic", size=7,
                 align="center", color=(100, 100, 100))


def render_monthly_statement_pdf(report, *, today: date | None = None) -> bytes:
    surface = ReportLabSurface(title=f"{STATEMENT_TITLE} {normalize_text(report.label)}")
    layout_monthly_statement(surface, report, today=today)
    return surface.finish()


def statement_filename(report) -> str:
    label = re.sub(r"\s+", "_", normalize_text(report.label))
    return f"AZZA_Ekstre_{label}.pdf"
