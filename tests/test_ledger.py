"""Tests for the pure ledger rules."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from azza_erp.models import PaymentStatus
from azza_erp.services import ledger


def _invoice(total_amount=None, unit_price=None):
    return SimpleNamespace(total_amount=total_amount, unit_price=unit_price)


@pytest.mark.parametrize(
    ("total", "paid", "expected"),
    [
        ("10000", "0", PaymentStatus.PENDING),
        ("10000", "0.01", PaymentStatus.PARTIAL),
        ("10000", "9999.99", PaymentStatus.PARTIAL),
        ("10000", "10000", PaymentStatus.PAID),
        ("10000", "12500", PaymentStatus.PAID),
    ],
)
def test_status_is_a_function_of_payments(total, paid, expected) -> None:
    assert ledger.compute_invoice_status(Decimal(total), Decimal(paid)) == expected


def test_zero_total_without_payments_counts_as_paid() -> None:
    # "paid" is checked first, so 0 >= 0 wins over "pending"
    assert ledger.compute_invoice_status(0, 0) == PaymentStatus.PAID


def test_status_accepts_missing_values() -> None:
    assert ledger.compute_invoice_status("500", None) == PaymentStatus.PENDING
    assert ledger.compute_invoice_status(None, "1") == PaymentStatus.PAID


def test_invoice_total_falls_back_to_unit_price() -> None:
    assert ledger.invoice_total(_invoice(total_amount=Decimal("7800"))) == Decimal("7800")
    assert ledger.invoice_total(_invoice(total_amount=None, unit_price=Decimal("4200"))) == Decimal("4200")
    assert ledger.invoice_total(_invoice(total_amount=Decimal("0"), unit_price=Decimal("4200"))) == Decimal("4200")
    assert ledger.invoice_total(_invoice()) == Decimal("0")


def test_payments_sum_ignores_currency() -> None:
    payments = [
        SimpleNamespace(amount=Decimal("1000"), currency="USD"),
        SimpleNamespace(amount=Decimal("250.50"), currency="EUR"),
    ]
    assert ledger.payments_sum(payments) == Decimal("1250.50")
    assert ledger.payments_sum([]) == Decimal("0")


@pytest.mark.parametrize("paid", ["0", "3000", "10000", "15000"])
def test_remaining_balance_never_negative(paid) -> None:
    remaining = ledger.remaining_balance(_invoice(total_amount=Decimal("10000")), Decimal(paid))
    assert remaining >= 0
    assert remaining == max(Decimal("10000") - Decimal(paid), Decimal("0"))


def test_deposit_flag_is_sticky() -> None:
    assert ledger.compute_deposit_paid_flag(False, False) is False
    assert ledger.compute_deposit_paid_flag(False, True) is True
    assert ledger.compute_deposit_paid_flag(True, False) is True


def test_line_unit_price_applies_margin() -> None:
    assert ledger.line_unit_price(Decimal("1000"), Decimal("30")) == Decimal("1300.00")
    assert ledger.line_unit_price(Decimal("2000"), 30) == Decimal("2600.00")
    assert ledger.line_unit_price(None, 30) == Decimal("0.00")


def test_line_unit_price_rounds_half_up_to_cents() -> None:
    assert ledger.line_unit_price(Decimal("0.05"), Decimal("10")) == Decimal("0.06")


def test_deposit_amount() -> None:
    assert ledger.deposit_amount(Decimal("7800"), Decimal("20")) == Decimal("1560.00")
    assert ledger.deposit_amount(Decimal("7800"), 0) == Decimal("0.00")


def test_to_decimal_coercion() -> None:
    assert ledger.to_decimal(1300.0) == Decimal("1300.0")
    assert ledger.to_decimal("  12.5 ") == Decimal("12.5")
    assert ledger.to_decimal("not a number") == Decimal("0")
    assert ledger.to_decimal("") == Decimal("0")


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", Decimal("NaN"), float("inf")])
def test_to_decimal_rejects_non_finite(value) -> None:
    assert ledger.to_decimal(value) == Decimal("0")
    assert ledger.quantize_money(value) == Decimal("0.00")
