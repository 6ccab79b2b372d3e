# azza_erp/services/ledger.py
"""
Ledger reconciliation rules.

Pure functions only: no session access, no writes. Callers pass a freshly
read payments sum; nothing here caches.

Amounts are summed as raw numbers regardless of their currency field.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from azza_erp.models import PaymentStatus

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Numeric coercion used by every rule. None / blanks / garbage -> 0."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, float):
        # str() keeps 1300.0 as "1300.0" instead of the binary expansion
        d = Decimal(str(value))
    else:
        try:
            d = Decimal(str(value).strip() or "0")
        except InvalidOperation:
            return ZERO
    return d if d.is_finite() else ZERO


def quantize_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def invoice_total(invoice: Any) -> Decimal:
    """total_amount when set, else the legacy unit_price."""
    total = to_decimal(getattr(invoice, "total_amount", None))
    if total:
        return total
    return to_decimal(getattr(invoice, "unit_price", None))


def payments_sum(payments: Iterable[Any]) -> Decimal:
    return sum((to_decimal(getattr(p, "amount", p)) for p in payments), ZERO)


def compute_invoice_status(total_amount: Any, paid: Any) -> PaymentStatus:
    total = to_decimal(total_amount)
    paid = to_decimal(paid)

    if paid >= total:
        return PaymentStatus.PAID
    if paid > ZERO:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def remaining_balance(invoice: Any, paid: Any) -> Decimal:
    remaining = invoice_total(invoice) - to_decimal(paid)
    return remaining if remaining > ZERO else ZERO


def compute_deposit_paid_flag(current_flag: bool, new_payment_is_deposit: bool) -> bool:
    # Monotonic: deleting the deposit payment later never clears it.
    return bool(current_flag) or bool(new_payment_is_deposit)


def line_unit_price(purchase_price: Any, profit_margin: Any) -> Decimal:
    """Sale price of one machine: purchase price marked up by profit_margin percent."""
    if purchase_price is None:
        return quantize_money(ZERO)
    factor = Decimal(1) + to_decimal(profit_margin) / HUNDRED
    return quantize_money(to_decimal(purchase_price) * factor)


def deposit_amount(total: Any, deposit_percentage: Any) -> Decimal:
    return quantize_money(to_decimal(total) * to_decimal(deposit_percentage) / HUNDRED)
