# azza_erp/services/reports.py
"""
Read-only aggregates over invoices, expenses and payments.

Amounts are summed as raw numbers whatever their currency field says.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

import sqlalchemy as sa

from azza_erp.errors import NotFoundError, ValidationError
from azza_erp.models import (
    ACTIVE_SHIPMENT_STATUSES,
    Expense,
    Machine,
    Payment,
    ProformaInvoice,
    ProformaInvoiceItem,
    Shipment,
)
from azza_erp.services.ledger import CENT, HUNDRED, ZERO, invoice_total, payments_sum, to_decimal

MONTH_NAMES_TR = [
    "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
    "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
]

DEFAULT_MONTH_LIMIT = 12
RECENT_MACHINES = 10


def _num(v) -> float:
    return float(to_decimal(v))


def _margin(profit: Decimal, revenue: Decimal) -> Decimal:
    if revenue <= 0:
        return ZERO
    return (profit / revenue * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def month_key(d: date | datetime) -> str:
    return f"{d.year}-{d.month:02d}"


def month_label(key: str) -> str:
    """'2026-02' -> 'Şubat 2026'."""
    year, month = key.split("-")
    return f"{MONTH_NAMES_TR[int(month) - 1]} {year}"


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


# =========================================================
# Monthly reports
# =========================================================
@dataclass
class MonthlyReport:
    key: str  # YYYY-MM
    invoices: list = field(default_factory=list)
    expenses: list = field(default_factory=list)
    payments: list = field(default_factory=list)

    @property
    def label(self) -> str:
        return month_label(self.key)

    @property
    def year(self) -> int:
        return int(self.key[:4])

    @property
    def month(self) -> int:
        return int(self.key[5:])

    @property
    def total_revenue(self) -> Decimal:
        return sum((invoice_total(inv) for inv in self.invoices), ZERO)

    @property
    def total_expenses(self) -> Decimal:
        return sum((to_decimal(e.amount) for e in self.expenses), ZERO)

    @property
    def total_collected(self) -> Decimal:
        return payments_sum(self.payments)

    @property
    def profit(self) -> Decimal:
        return self.total_revenue - self.total_expenses

    @property
    def profit_margin(self) -> Decimal:
        return _margin(self.profit, self.total_revenue)

    @property
    def invoice_count(self) -> int:
        return len(self.invoices)

    def to_dict(self, with_rows: bool = False) -> dict:
        data = {
            "key": self.key,
            "label": self.label,
            "total_revenue": _num(self.total_revenue),
            "total_expenses": _num(self.total_expenses),
            "total_collected": _num(self.total_collected),
            "profit": _num(self.profit),
            "profit_margin": _num(self.profit_margin),
            "invoice_count": self.invoice_count,
            "expense_count": len(self.expenses),
            "payment_count": len(self.payments),
        }
        if with_rows:
            data["invoices"] = [inv.to_dict(with_items=False) for inv in self.invoices]
            data["expenses"] = [e.to_dict() for e in self.expenses]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


def group_monthly(
    invoices: Iterable[Any],
    expenses: Iterable[Any],
    payments: Iterable[Any],
    limit: int | None = DEFAULT_MONTH_LIMIT,
) -> list[MonthlyReport]:
    """
    Bucket invoices by issue month. Expenses (by business date) and payments
    (by payment date) only land in months that already have an invoice.
    Returns the latest `limit` months, oldest first.
    """
    today = date.today()
    buckets: dict[str, MonthlyReport] = {}

    for inv in invoices:
        key = month_key(inv.issue_date or today)
        buckets.setdefault(key, MonthlyReport(key=key)).invoices.append(inv)

    for exp in expenses:
        bucket = buckets.get(month_key(exp.business_date))
        if bucket is not None:
            bucket.expenses.append(exp)

    for pay in payments:
        bucket = buckets.get(month_key(pay.payment_date or today))
        if bucket is not None:
            bucket.payments.append(pay)

    keys = sorted(buckets)
    if limit:
        keys = keys[-limit:]
    return [buckets[k] for k in keys]


def monthly_reports(limit: int | None = DEFAULT_MONTH_LIMIT) -> list[MonthlyReport]:
    invoices = ProformaInvoice.query.order_by(ProformaInvoice.issue_date, ProformaInvoice.id).all()
    expenses = Expense.query.order_by(Expense.id).all()
    payments = Payment.query.order_by(Payment.payment_date, Payment.id).all()
    return group_monthly(invoices, expenses, payments, limit=limit)


def monthly_report(year: int, month: int) -> MonthlyReport:
    """One month, read fresh. A month without invoices has no report."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    start, end = _month_bounds(year, month)

    invoices = (
        ProformaInvoice.query
        .filter(ProformaInvoice.issue_date >= start, ProformaInvoice.issue_date < end)
        .order_by(ProformaInvoice.issue_date, ProformaInvoice.id)
        .all()
    )
    if not invoices:
        raise NotFoundError(f"No invoices in {month_label(month_key(start))}.")

    expenses = (
        Expense.query
        .filter(
            sa.or_(
                sa.and_(Expense.invoice_date >= start, Expense.invoice_date < end),
                sa.and_(
                    Expense.invoice_date.is_(None),
                    Expense.created_at >= datetime.combine(start, datetime.min.time()),
                    Expense.created_at < datetime.combine(end, datetime.min.time()),
                ),
            )
        )
        .order_by(Expense.id)
        .all()
    )
    payments = (
        Payment.query
        .filter(Payment.payment_date >= start, Payment.payment_date < end)
        .order_by(Payment.payment_date, Payment.id)
        .all()
    )

    reports = group_monthly(invoices, expenses, payments, limit=None)
    return reports[0]


# =========================================================
# Totals
# =========================================================
@dataclass(frozen=True)
class AccountingSummary:
    total_revenue: Decimal
    total_expenses: Decimal
    total_collected: Decimal

    @property
    def gross_profit(self) -> Decimal:
        return self.total_revenue - self.total_expenses

    @property
    def profit_margin(self) -> Decimal:
        return _margin(self.gross_profit, self.total_revenue)

    @property
    def pending_collections(self) -> Decimal:
        return self.total_revenue - self.total_collected

    def to_dict(self) -> dict:
        return {
            "total_revenue": _num(self.total_revenue),
            "total_expenses": _num(self.total_expenses),
            "total_collected": _num(self.total_collected),
            "gross_profit": _num(self.gross_profit),
            "profit_margin": _num(self.profit_margin),
            "pending_collections": _num(self.pending_collections),
        }


def accounting_summary() -> AccountingSummary:
    revenue = sum((invoice_total(inv) for inv in ProformaInvoice.query.all()), ZERO)
    expenses = sum((to_decimal(e.amount) for e in Expense.query.all()), ZERO)
    collected = payments_sum(Payment.query.all())
    return AccountingSummary(total_revenue=revenue, total_expenses=expenses, total_collected=collected)


def dashboard_stats() -> dict:
    invoices = ProformaInvoice.query.all()
    recent = Machine.query.order_by(Machine.created_at.desc(), Machine.id.desc()).limit(RECENT_MACHINES).all()
    return {
        "total_machines": Machine.query.count(),
        "total_invoices": len(invoices),
        "active_shipments": Shipment.query.filter(Shipment.status.in_(ACTIVE_SHIPMENT_STATUSES)).count(),
        "total_revenue": _num(sum((invoice_total(inv) for inv in invoices), ZERO)),
        "recent_machines": [m.to_dict() for m in recent],
    }


# =========================================================
# Per machine
# =========================================================
@dataclass(frozen=True)
class MachineFinancials:
    machine_id: int
    purchase_price: Decimal
    purchase_currency: str
    expense_total: Decimal
    expense_count: int
    invoice_id: int | None
    sale_price: Decimal | None
    sale_currency: str | None

    @property
    def total_cost(self) -> Decimal:
        return self.purchase_price + self.expense_total

    @property
    def gross_profit(self) -> Decimal:
        # Only meaningful once the machine is on an invoice
        if self.sale_price is None:
            return ZERO
        return self.sale_price - self.total_cost

    def to_dict(self) -> dict:
        return {
            "machine_id": self.machine_id,
            "purchase_price": _num(self.purchase_price),
            "purchase_currency": self.purchase_currency,
            "expense_total": _num(self.expense_total),
            "expense_count": self.expense_count,
            "invoice_id": self.invoice_id,
            "sale_price": None if self.sale_price is None else _num(self.sale_price),
            "sale_currency": self.sale_currency,
            "total_cost": _num(self.total_cost),
            "gross_profit": _num(self.gross_profit),
        }


def _latest_item_for_machine(machine_id: int) -> ProformaInvoiceItem | None:
    return (
        ProformaInvoiceItem.query
        .join(ProformaInvoice, ProformaInvoiceItem.proforma_invoice_id == ProformaInvoice.id)
        .filter(ProformaInvoiceItem.machine_id == machine_id)
        .order_by(ProformaInvoice.created_at.desc(), ProformaInvoice.id.desc(), ProformaInvoiceItem.id.desc())
        .first()
    )


def invoice_for_machine(machine_id: int) -> ProformaInvoice | None:
    """Most recent invoice carrying the machine, as a line item or legacy column."""
    item = _latest_item_for_machine(machine_id)
    if item is not None:
        return item.invoice
    return (
        ProformaInvoice.query
        .filter(ProformaInvoice.machine_id == machine_id)
        .order_by(ProformaInvoice.created_at.desc(), ProformaInvoice.id.desc())
        .first()
    )


def machine_financials(machine: Machine) -> MachineFinancials:
    """
    Cost and margin of one machine. The sale price is the machine's own line
    on its latest invoice; legacy single-machine invoices use the invoice total.
    """
    expenses = list(machine.expenses)
    item = _latest_item_for_machine(machine.id)
    if item is not None:
        invoice = item.invoice
        sale_price = to_decimal(item.total_price)
    else:
        invoice = invoice_for_machine(machine.id)
        sale_price = invoice_total(invoice) if invoice else None
    return MachineFinancials(
        machine_id=machine.id,
        purchase_price=to_decimal(machine.purchase_price),
        purchase_currency=machine.purchase_currency.value,
        expense_total=sum((to_decimal(e.amount) for e in expenses), ZERO),
        expense_count=len(expenses),
        invoice_id=invoice.id if invoice else None,
        sale_price=sale_price,
        sale_currency=invoice.currency.value if invoice else None,
    )
