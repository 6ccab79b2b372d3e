"""Tests for the reconcile-invoices command."""

from __future__ import annotations

from azza_erp.extensions import db
from azza_erp.models import PaymentStatus


def test_clean_ledger_exits_zero(app, make_invoice) -> None:
    make_invoice(invoice_number="2026001")

    result = app.test_cli_runner().invoke(args=["reconcile-invoices"])

    assert result.exit_code == 0
    assert "Checked 1 invoices, 0 stale, 0 fixed." in result.output


def test_drift_is_reported_then_fixed(app, make_invoice) -> None:
    invoice = make_invoice(invoice_number="2026001")
    invoice.status = PaymentStatus.PARTIAL
    db.session.commit()

    runner = app.test_cli_runner()

    result = runner.invoke(args=["reconcile-invoices"])
    assert result.exit_code == 1
    assert "2026001: stored=partial computed=pending" in result.output
    assert "Checked 1 invoices, 1 stale, 0 fixed." in result.output

    result = runner.invoke(args=["reconcile-invoices", "--fix"])
    assert result.exit_code == 0
    assert "1 stale, 1 fixed." in result.output

    result = runner.invoke(args=["reconcile-invoices"])
    assert result.exit_code == 0
    assert db.session.get(type(invoice), invoice.id).status == PaymentStatus.PENDING
