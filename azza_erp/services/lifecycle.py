# azza_erp/services/lifecycle.py
"""
Entity lifecycle rules: every action that touches more than one row.

Each public action runs as ONE transaction: intermediate steps only flush,
the commit happens once at the end, and any failure rolls the whole action
back. Step order inside an action still follows the business sequence
(invoice -> items -> machines, payment -> invoice status, ...).

Validation happens before the first write.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Iterator

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from azza_erp.config.company import DEFAULT_BANK_HINT
from azza_erp.errors import DependencyWriteError, ErpError, NotFoundError, ValidationError
from azza_erp.extensions import db
from azza_erp.models import (
    BankAccount,
    Company,
    CompanyType,
    CurrencyType,
    Expense,
    ExpenseCategory,
    Machine,
    MachineStatus,
    Payment,
    PaymentStatus,
    ProformaInvoice,
    ProformaInvoiceItem,
    Shipment,
    ShipmentStatus,
)
from azza_erp.services import ledger, storage
from azza_erp.utils.parsing import (
    clean_str,
    parse_bool,
    parse_date,
    parse_decimal,
    parse_enum,
    parse_id_list,
    parse_int,
)

MACHINE_FILE_BUCKETS = {"documents": "documents", "images": "gallery"}


# =========================================================
# Transaction helpers
# =========================================================
@contextmanager
def _transaction(action: str) -> Iterator[None]:
    """Commit once on success; rollback (+ log) on any failure."""
    try:
        yield
        db.session.commit()
    except ErpError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed (integrity)", action)
        raise DependencyWriteError(f"{action} failed: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed", action)
        raise DependencyWriteError(f"{action} failed: {exc}") from exc
    except Exception:
        db.session.rollback()
        raise


def _get_or_404(model, obj_id: Any, *, label: str, for_update: bool = False):
    obj_id = parse_int(obj_id)
    if obj_id is None:
        raise ValidationError(f"{label} is required.")
    obj = db.session.get(model, obj_id, with_for_update=for_update or None)
    if obj is None:
        raise NotFoundError(f"{label} {obj_id} not found.")
    return obj


def _require_enum(enum_cls, value: Any, *, label: str, default=None):
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{label} is required.")
    parsed = parse_enum(enum_cls, value)
    if parsed is None:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {label} {value!r}. Allowed: {allowed}.")
    return parsed


def _set_machine_status(machine_ids: Iterable[int], status: MachineStatus) -> int:
    ids = [mid for mid in machine_ids if mid is not None]
    if not ids:
        return 0
    result = db.session.execute(
        sa.update(Machine)
        .where(Machine.id.in_(ids))
        .values(status=status, updated_at=sa.func.now())
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


# ---------------------------------------------------------
# Field maps for plain edits: name -> coercer
# ---------------------------------------------------------
def _enum_field(enum_cls, label):
    return lambda v: _require_enum(enum_cls, v, label=label)


def _required_str(label):
    def coerce(v):
        s = clean_str(v)
        if s is None:
            raise ValidationError(f"{label} is required.")
        return s

    return coerce


def _bool_field(v):
    return bool(parse_bool(v))


def _apply_changes(obj, changes: dict, fields: dict[str, Callable[[Any], Any]]) -> list[str]:
    unknown = sorted(set(changes) - set(fields))
    if unknown:
        raise ValidationError(f"Unknown or read-only fields: {', '.join(unknown)}.")
    applied = []
    for name, value in changes.items():
        setattr(obj, name, fields[name](value))
        applied.append(name)
    return applied


# =========================================================
# Input DTOs
# =========================================================
@dataclass(frozen=True)
class ProformaDraft:
    customer_id: int | None
    bank_account_id: int | None
    machine_ids: tuple[int, ...]
    invoice_number: str | None = None
    delivery_terms: str | None = "FOB"
    loading_port: str | None = None
    destination_port: str | None = None
    payment_terms: str | None = "100%"
    deposit_percentage: Decimal = Decimal("0")
    profit_margin: Decimal = Decimal("0")
    issue_date: date | None = None
    validity_date: date | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "ProformaDraft":
        return cls(
            customer_id=parse_int(data.get("customer_id")),
            bank_account_id=parse_int(data.get("bank_account_id")),
            machine_ids=tuple(parse_id_list(data.get("machine_ids"))),
            invoice_number=clean_str(data.get("invoice_number")),
            delivery_terms=clean_str(data.get("delivery_terms")) or "FOB",
            loading_port=clean_str(data.get("loading_port")),
            destination_port=clean_str(data.get("destination_port")),
            payment_terms=clean_str(data.get("payment_terms")) or "100%",
            deposit_percentage=parse_decimal(data.get("deposit_percentage")) or Decimal("0"),
            profit_margin=parse_decimal(data.get("profit_margin")) or Decimal("0"),
            issue_date=parse_date(data.get("issue_date")),
            validity_date=parse_date(data.get("validity_date")),
            notes=clean_str(data.get("notes")),
        )


@dataclass(frozen=True)
class PaymentDraft:
    proforma_invoice_id: int | None
    amount: Decimal | None
    currency: Any = CurrencyType.USD
    payment_date: date | None = None
    payment_method: str | None = "bank_transfer"
    reference_number: str | None = None
    is_deposit: bool = False
    notes: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "PaymentDraft":
        return cls(
            proforma_invoice_id=parse_int(data.get("proforma_invoice_id")),
            amount=parse_decimal(data.get("amount")),
            currency=data.get("currency") or CurrencyType.USD,
            payment_date=parse_date(data.get("payment_date")),
            payment_method=clean_str(data.get("payment_method")) or "bank_transfer",
            reference_number=clean_str(data.get("reference_number")),
            is_deposit=bool(parse_bool(data.get("is_deposit"))),
            notes=clean_str(data.get("notes")),
        )


@dataclass(frozen=True)
class ShipmentDraft:
    proforma_invoice_id: int | None
    machine_id: int | None = None
    loading_port: str | None = None
    destination_port: str | None = None
    shipping_company: str | None = None
    container_number: str | None = None
    bill_of_lading: str | None = None
    loading_date: date | None = None
    departure_date: date | None = None
    estimated_arrival_date: date | None = None
    shipping_cost: Decimal = Decimal("0")
    shipping_currency: Any = CurrencyType.USD
    current_location: str | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "ShipmentDraft":
        return cls(
            proforma_invoice_id=parse_int(data.get("proforma_invoice_id")),
            machine_id=parse_int(data.get("machine_id")),
            loading_port=clean_str(data.get("loading_port")),
            destination_port=clean_str(data.get("destination_port")),
            shipping_company=clean_str(data.get("shipping_company")),
            container_number=clean_str(data.get("container_number")),
            bill_of_lading=clean_str(data.get("bill_of_lading")),
            loading_date=parse_date(data.get("loading_date")),
            departure_date=parse_date(data.get("departure_date")),
            estimated_arrival_date=parse_date(data.get("estimated_arrival_date")),
            shipping_cost=parse_decimal(data.get("shipping_cost")) or Decimal("0"),
            shipping_currency=data.get("shipping_currency") or CurrencyType.USD,
            current_location=clean_str(data.get("current_location")),
            notes=clean_str(data.get("notes")),
        )


@dataclass
class ReconcileResult:
    checked: int = 0
    stale: list[tuple[str, str, str]] = field(default_factory=list)  # (number, stored, computed)
    fixed: int = 0


# =========================================================
# Invoice numbering + defaults
# =========================================================
def suggest_invoice_number(today: date | None = None) -> str:
    """
    <year>001, or the latest invoice number + 1 when that number is
    numeric and already in the current year.
    Not concurrency-safe on its own; the unique constraint catches clashes.
    """
    year = str((today or date.today()).year)
    last = (
        ProformaInvoice.query.with_entities(ProformaInvoice.invoice_number)
        .order_by(ProformaInvoice.created_at.desc(), ProformaInvoice.id.desc())
        .first()
    )
    if last:
        number = (last[0] or "").strip()
        if number.startswith(year) and number.isdigit():
            return str(int(number) + 1)
    return f"{year}001"


def default_bank_account(accounts: Iterable[BankAccount]) -> BankAccount | None:
    for acc in accounts:
        if acc.is_active and DEFAULT_BANK_HINT in (acc.bank_name or "").lower():
            return acc
    return None


# =========================================================
# Invoice status recomputation
# =========================================================
def fresh_payments_sum(invoice_id: int) -> Decimal:
    total = db.session.execute(
        sa.select(sa.func.coalesce(sa.func.sum(Payment.amount), 0)).where(
            Payment.proforma_invoice_id == invoice_id
        )
    ).scalar_one()
    return ledger.to_decimal(total)


def refresh_invoice_status(invoice: ProformaInvoice) -> PaymentStatus:
    """Recompute the stored status from the payments currently in the session."""
    db.session.flush()
    invoice.status = ledger.compute_invoice_status(
        ledger.invoice_total(invoice), fresh_payments_sum(invoice.id)
    )
    return invoice.status


def _manually_sold(invoice: ProformaInvoice) -> bool:
    # mark-as-sold forces PAID regardless of payments; don't flag those
    if invoice.status != PaymentStatus.PAID:
        return False
    ids = invoice.machine_ids
    if not ids:
        return False
    machines = Machine.query.filter(Machine.id.in_(ids)).all()
    return bool(machines) and all(m.status == MachineStatus.SOLD for m in machines)


def find_stale_invoices() -> list[ProformaInvoice]:
    stale = []
    for inv in ProformaInvoice.query.order_by(ProformaInvoice.id).all():
        if inv.is_status_stale and not _manually_sold(inv):
            stale.append(inv)
    return stale


def reconcile_invoice_statuses(fix: bool = False) -> ReconcileResult:
    result = ReconcileResult(checked=ProformaInvoice.query.count())
    stale = find_stale_invoices()
    for inv in stale:
        computed = inv.computed_status
        result.stale.append((inv.invoice_number, inv.status.value, computed.value))
        current_app.logger.warning(
            "Invoice %s status drift: stored=%s computed=%s",
            inv.invoice_number, inv.status.value, computed.value,
        )

    if fix and stale:
        with _transaction("Reconcile invoice statuses"):
            for inv in stale:
                inv.status = inv.computed_status
                result.fixed += 1
    return result


# =========================================================
# Proforma invoices
# =========================================================
def create_invoice(draft: ProformaDraft) -> ProformaInvoice:
    if not draft.machine_ids:
        raise ValidationError("At least one machine must be selected.")
    if not draft.customer_id:
        raise ValidationError("A customer must be selected.")
    if not draft.bank_account_id:
        raise ValidationError("A bank account must be selected.")

    customer = _get_or_404(Company, draft.customer_id, label="Customer")
    if customer.type != CompanyType.CUSTOMER:
        raise ValidationError(f"Company {customer.name} is not a customer.")
    bank = _get_or_404(BankAccount, draft.bank_account_id, label="Bank account")

    machines_by_id = {
        m.id: m
        for m in Machine.query.filter(Machine.id.in_(draft.machine_ids)).with_for_update().all()
    }
    missing = [mid for mid in draft.machine_ids if mid not in machines_by_id]
    if missing:
        raise NotFoundError(f"Machines not found: {', '.join(map(str, missing))}.")
    machines = [machines_by_id[mid] for mid in draft.machine_ids]
    taken = [m for m in machines if m.status != MachineStatus.AVAILABLE]
    if taken:
        names = ", ".join(f"{m.chassis_number} ({m.status.value})" for m in taken)
        raise ValidationError(f"Machines are not available: {names}.")

    number = draft.invoice_number or suggest_invoice_number(draft.issue_date)
    if ProformaInvoice.query.filter_by(invoice_number=number).first():
        raise ValidationError(f"Invoice number {number} already exists.")

    unit_prices = [ledger.line_unit_price(m.purchase_price, draft.profit_margin) for m in machines]
    total = sum(unit_prices, ledger.ZERO)

    with _transaction("Create proforma invoice"):
        invoice = ProformaInvoice(
            invoice_number=number,
            customer=customer,
            bank_account=bank,
            unit_price=total,
            total_amount=total,
            currency=machines[0].purchase_currency or CurrencyType.USD,
            delivery_terms=draft.delivery_terms,
            loading_port=draft.loading_port,
            destination_port=draft.destination_port,
            payment_terms=draft.payment_terms,
            deposit_amount=ledger.deposit_amount(total, draft.deposit_percentage),
            deposit_paid=False,
            issue_date=draft.issue_date or date.today(),
            validity_date=draft.validity_date,
            status=PaymentStatus.PENDING,
            notes=draft.notes,
        )
        db.session.add(invoice)
        db.session.flush()

        for machine, price in zip(machines, unit_prices):
            db.session.add(
                ProformaInvoiceItem(
                    invoice=invoice,
                    machine_id=machine.id,
                    brand=machine.brand,
                    model=machine.model,
                    machine_type=machine.machine_type,
                    chassis_number=machine.chassis_number,
                    year=machine.year,
                    unit_price=price,
                    quantity=1,
                    total_price=price,
                )
            )
        db.session.flush()

        _set_machine_status([m.id for m in machines], MachineStatus.RESERVED)

    current_app.logger.info("Invoice %s created with %d machines", number, len(machines))
    return invoice


def update_invoice(invoice_id: int, changes: dict) -> ProformaInvoice:
    invoice = _get_or_404(ProformaInvoice, invoice_id, label="Invoice", for_update=True)

    def _customer(v):
        c = _get_or_404(Company, v, label="Customer")
        if c.type != CompanyType.CUSTOMER:
            raise ValidationError(f"Company {c.name} is not a customer.")
        return c.id

    def _bank(v):
        if v in (None, ""):
            return None
        return _get_or_404(BankAccount, v, label="Bank account").id

    fields = {
        "customer_id": _customer,
        "bank_account_id": _bank,
        "delivery_terms": clean_str,
        "loading_port": clean_str,
        "destination_port": clean_str,
        "payment_terms": clean_str,
        "deposit_amount": parse_decimal,
        "deposit_paid": _bool_field,
        "validity_date": parse_date,
        "notes": clean_str,
    }
    with _transaction("Update proforma invoice"):
        applied = _apply_changes(invoice, changes, fields)

    current_app.logger.info("Invoice %s updated (%s)", invoice.invoice_number, ", ".join(applied) or "no changes")
    return invoice


def delete_invoice(invoice_id: int) -> list[int]:
    """Deletes items + invoice and releases its machines. Returns the released machine ids."""
    invoice = _get_or_404(ProformaInvoice, invoice_id, label="Invoice", for_update=True)
    number = invoice.invoice_number
    machine_ids = invoice.machine_ids

    with _transaction("Delete proforma invoice"):
        for item in list(invoice.items):
            db.session.delete(item)
        db.session.flush()

        db.session.delete(invoice)
        db.session.flush()

        _set_machine_status(machine_ids, MachineStatus.AVAILABLE)

    current_app.logger.info("Invoice %s deleted; %d machines released", number, len(machine_ids))
    return machine_ids


def mark_invoice_as_sold(invoice_id: int) -> ProformaInvoice:
    invoice = _get_or_404(ProformaInvoice, invoice_id, label="Invoice", for_update=True)
    machine_ids = invoice.machine_ids

    with _transaction("Mark invoice as sold"):
        invoice.status = PaymentStatus.PAID
        db.session.flush()
        _set_machine_status(machine_ids, MachineStatus.SOLD)

    current_app.logger.info("Invoice %s marked as sold (%d machines)", invoice.invoice_number, len(machine_ids))
    return invoice


# =========================================================
# Payments
# =========================================================
def remaining_for_invoice(invoice_id: int) -> Decimal:
    """'Set remaining' helper: what is still owed, from a fresh payments read."""
    invoice = _get_or_404(ProformaInvoice, invoice_id, label="Invoice")
    return ledger.remaining_balance(invoice, fresh_payments_sum(invoice.id))


def create_payment(draft: PaymentDraft) -> Payment:
    if not draft.proforma_invoice_id:
        raise ValidationError("A proforma invoice must be selected.")
    if draft.amount is None or draft.amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")
    currency = _require_enum(CurrencyType, draft.currency, label="currency", default=CurrencyType.USD)

    invoice = _get_or_404(ProformaInvoice, draft.proforma_invoice_id, label="Invoice", for_update=True)

    with _transaction("Create payment"):
        payment = Payment(
            invoice=invoice,
            amount=ledger.quantize_money(draft.amount),
            currency=currency,
            payment_date=draft.payment_date or date.today(),
            payment_method=draft.payment_method,
            reference_number=draft.reference_number,
            is_deposit=draft.is_deposit,
            notes=draft.notes,
        )
        db.session.add(payment)
        db.session.flush()

        refresh_invoice_status(invoice)
        invoice.deposit_paid = ledger.compute_deposit_paid_flag(invoice.deposit_paid, payment.is_deposit)

    current_app.logger.info(
        "Payment %s %s recorded on invoice %s -> %s",
        payment.amount, currency.value, invoice.invoice_number, invoice.status.value,
    )
    return payment


def update_payment(payment_id: int, changes: dict) -> Payment:
    payment = _get_or_404(Payment, payment_id, label="Payment", for_update=True)
    invoice = payment.invoice

    def _amount(v):
        amount = parse_decimal(v)
        if amount is None or amount <= 0:
            raise ValidationError("Payment amount must be greater than zero.")
        return ledger.quantize_money(amount)

    def _payment_date(v):
        d = parse_date(v)
        if d is None:
            raise ValidationError("Payment date is required.")
        return d

    fields = {
        "amount": _amount,
        "currency": _enum_field(CurrencyType, "currency"),
        "payment_date": _payment_date,
        "payment_method": clean_str,
        "reference_number": clean_str,
        "is_deposit": _bool_field,
        "notes": clean_str,
    }
    with _transaction("Update payment"):
        _apply_changes(payment, changes, fields)
        db.session.flush()
        refresh_invoice_status(invoice)
        invoice.deposit_paid = ledger.compute_deposit_paid_flag(invoice.deposit_paid, payment.is_deposit)

    current_app.logger.info("Payment %s updated; invoice %s -> %s", payment.id, invoice.invoice_number, invoice.status.value)
    return payment


def delete_payment(payment_id: int) -> ProformaInvoice:
    payment = _get_or_404(Payment, payment_id, label="Payment", for_update=True)
    invoice = payment.invoice

    with _transaction("Delete payment"):
        db.session.delete(payment)
        db.session.flush()
        # deposit_paid is deliberately left as-is
        refresh_invoice_status(invoice)

    current_app.logger.info("Payment %s deleted; invoice %s -> %s", payment_id, invoice.invoice_number, invoice.status.value)
    return invoice


# =========================================================
# Shipments
# =========================================================
def _shipment_machine_id(draft: ShipmentDraft, invoice: ProformaInvoice) -> int | None:
    if draft.machine_id:
        _get_or_404(Machine, draft.machine_id, label="Machine")
        return draft.machine_id
    if invoice.machine_id:
        return invoice.machine_id
    ids = invoice.machine_ids
    return ids[0] if ids else None


def create_shipment(draft: ShipmentDraft) -> Shipment:
    if not draft.proforma_invoice_id:
        raise ValidationError("A proforma invoice must be selected.")
    currency = _require_enum(CurrencyType, draft.shipping_currency, label="currency", default=CurrencyType.USD)
    if draft.shipping_cost < 0:
        raise ValidationError("Shipping cost cannot be negative.")

    invoice = _get_or_404(ProformaInvoice, draft.proforma_invoice_id, label="Invoice")
    machine_id = _shipment_machine_id(draft, invoice)

    with _transaction("Create shipment"):
        shipment = Shipment(
            invoice=invoice,
            machine_id=machine_id,
            loading_port=draft.loading_port or invoice.loading_port or "",
            destination_port=draft.destination_port or invoice.destination_port or "",
            shipping_company=draft.shipping_company,
            container_number=draft.container_number,
            bill_of_lading=draft.bill_of_lading,
            loading_date=draft.loading_date,
            departure_date=draft.departure_date,
            estimated_arrival_date=draft.estimated_arrival_date,
            shipping_cost=ledger.quantize_money(draft.shipping_cost),
            shipping_currency=currency,
            status=ShipmentStatus.PENDING,
            current_location=draft.current_location,
            notes=draft.notes,
        )
        db.session.add(shipment)
        db.session.flush()

        if draft.shipping_cost > 0:
            db.session.add(
                Expense(
                    invoice=invoice,
                    shipment_id=shipment.id,
                    machine_id=machine_id,
                    category=ExpenseCategory.TRANSPORT,
                    description=f"Nakliye ucreti - {draft.shipping_company or 'Deniz tasima'}",
                    amount=ledger.quantize_money(draft.shipping_cost),
                    currency=currency,
                    paid=False,
                )
            )
            db.session.flush()

        _set_machine_status([machine_id], MachineStatus.IN_TRANSIT)

    current_app.logger.info("Shipment %s created for invoice %s", shipment.id, invoice.invoice_number)
    return shipment


def update_shipment(shipment_id: int, changes: dict) -> Shipment:
    shipment = _get_or_404(Shipment, shipment_id, label="Shipment", for_update=True)

    def _money(v):
        amount = parse_decimal(v)
        return ledger.quantize_money(amount) if amount is not None else None

    fields = {
        "loading_port": lambda v: clean_str(v) or "",
        "destination_port": lambda v: clean_str(v) or "",
        "shipping_company": clean_str,
        "container_number": clean_str,
        "bill_of_lading": clean_str,
        "loading_date": parse_date,
        "departure_date": parse_date,
        "estimated_arrival_date": parse_date,
        "actual_arrival_date": parse_date,
        "delivery_date": parse_date,
        "status": _enum_field(ShipmentStatus, "shipment status"),
        "current_location": clean_str,
        "shipping_cost": _money,
        "shipping_currency": _enum_field(CurrencyType, "currency"),
        "notes": clean_str,
    }
    previous_status = shipment.status
    with _transaction("Update shipment"):
        _apply_changes(shipment, changes, fields)
        db.session.flush()
        # Only the move into delivered sells the machine
        if shipment.status == ShipmentStatus.DELIVERED and previous_status != ShipmentStatus.DELIVERED:
            _set_machine_status([shipment.machine_id], MachineStatus.SOLD)

    current_app.logger.info("Shipment %s updated -> %s", shipment.id, shipment.status.value)
    return shipment


def delete_shipment(shipment_id: int) -> int | None:
    """Deletes the shipment and puts its machine back to reserved. Returns that machine id."""
    shipment = _get_or_404(Shipment, shipment_id, label="Shipment", for_update=True)
    machine_id = shipment.machine_id

    with _transaction("Delete shipment"):
        db.session.delete(shipment)
        db.session.flush()
        _set_machine_status([machine_id], MachineStatus.RESERVED)

    current_app.logger.info("Shipment %s deleted", shipment_id)
    return machine_id


# =========================================================
# Plain CRUD: companies, bank accounts, machines, expenses
# =========================================================
_COMPANY_FIELDS = {
    "name": _required_str("Company name"),
    "type": _enum_field(CompanyType, "company type"),
    "country": clean_str,
    "address": clean_str,
    "contact_person": clean_str,
    "phone": clean_str,
    "email": clean_str,
    "tax_number": clean_str,
    "notes": clean_str,
}

_BANK_FIELDS = {
    "bank_name": _required_str("Bank name"),
    "account_holder": _required_str("Account holder"),
    "account_number": _required_str("Account number"),
    "iban": clean_str,
    "swift_code": clean_str,
    "currency": _enum_field(CurrencyType, "currency"),
    "is_active": _bool_field,
}


def _machine_fields() -> dict[str, Callable[[Any], Any]]:
    def _supplier(v):
        if v in (None, ""):
            return None
        return _get_or_404(Company, v, label="Supplier").id

    return {
        "brand": _required_str("Brand"),
        "model": _required_str("Model"),
        "machine_type": _required_str("Machine type"),
        "chassis_number": _required_str("Chassis number"),
        "year": parse_int,
        "hours_used": parse_int,
        "status": _enum_field(MachineStatus, "machine status"),
        "purchase_price": parse_decimal,
        "purchase_currency": _enum_field(CurrencyType, "currency"),
        "purchase_date": parse_date,
        "supplier_id": _supplier,
        "location": clean_str,
        "notes": clean_str,
    }


def _expense_fields() -> dict[str, Callable[[Any], Any]]:
    def _invoice(v):
        if v in (None, ""):
            return None
        return _get_or_404(ProformaInvoice, v, label="Invoice").id

    def _machine(v):
        if v in (None, ""):
            return None
        return _get_or_404(Machine, v, label="Machine").id

    def _amount(v):
        amount = parse_decimal(v)
        if amount is None:
            raise ValidationError("Expense amount is required.")
        return ledger.quantize_money(amount)

    return {
        "proforma_invoice_id": _invoice,
        "machine_id": _machine,
        "category": _enum_field(ExpenseCategory, "expense category"),
        "description": _required_str("Description"),
        "amount": _amount,
        "currency": _enum_field(CurrencyType, "currency"),
        "invoice_number": clean_str,
        "invoice_date": parse_date,
        "paid": _bool_field,
        "payment_date": parse_date,
        "notes": clean_str,
    }


def _create(model, data: dict, fields: dict, *, required: Iterable[str], action: str, defaults: dict | None = None):
    payload = {**(defaults or {}), **{k: v for k, v in data.items() if v is not None}}
    for name in required:
        payload.setdefault(name, None)
    obj = model()
    _apply_changes(obj, payload, fields)
    with _transaction(action):
        db.session.add(obj)
    return obj


def _update(model, obj_id: int, changes: dict, fields: dict, *, label: str, action: str):
    obj = _get_or_404(model, obj_id, label=label, for_update=True)
    with _transaction(action):
        _apply_changes(obj, changes, fields)
    return obj


def _delete(model, obj_id: int, *, label: str, action: str) -> None:
    obj = _get_or_404(model, obj_id, label=label)
    with _transaction(action):
        db.session.delete(obj)


def create_company(data: dict) -> Company:
    company = _create(
        Company, data, _COMPANY_FIELDS,
        required=("name", "type"), action="Create company",
    )
    current_app.logger.info("Company %s created (%s)", company.name, company.type.value)
    return company


def update_company(company_id: int, changes: dict) -> Company:
    return _update(Company, company_id, changes, _COMPANY_FIELDS, label="Company", action="Update company")


def delete_company(company_id: int) -> None:
    _delete(Company, company_id, label="Company", action="Delete company")


def create_bank_account(data: dict) -> BankAccount:
    return _create(
        BankAccount, data, _BANK_FIELDS,
        required=("bank_name", "account_holder", "account_number"),
        defaults={"currency": CurrencyType.USD, "is_active": True},
        action="Create bank account",
    )


def update_bank_account(account_id: int, changes: dict) -> BankAccount:
    return _update(BankAccount, account_id, changes, _BANK_FIELDS, label="Bank account", action="Update bank account")


def delete_bank_account(account_id: int) -> None:
    _delete(BankAccount, account_id, label="Bank account", action="Delete bank account")


def create_machine(data: dict) -> Machine:
    machine = _create(
        Machine, data, _machine_fields(),
        required=("brand", "model", "machine_type", "chassis_number"),
        defaults={"status": MachineStatus.AVAILABLE, "purchase_currency": CurrencyType.USD},
        action="Create machine",
    )
    current_app.logger.info("Machine %s %s (%s) created", machine.brand, machine.model, machine.chassis_number)
    return machine


def update_machine(machine_id: int, changes: dict) -> Machine:
    return _update(Machine, machine_id, changes, _machine_fields(), label="Machine", action="Update machine")


def delete_machine(machine_id: int) -> None:
    """Unconditional: a reserved or sold machine can still be removed."""
    _delete(Machine, machine_id, label="Machine", action="Delete machine")
    current_app.logger.info("Machine %s deleted", machine_id)


def create_expense(data: dict) -> Expense:
    return _create(
        Expense, data, _expense_fields(),
        required=("description", "amount"),
        defaults={"category": ExpenseCategory.TRANSPORT, "currency": CurrencyType.USD, "paid": False},
        action="Create expense",
    )


def update_expense(expense_id: int, changes: dict) -> Expense:
    return _update(Expense, expense_id, changes, _expense_fields(), label="Expense", action="Update expense")


def delete_expense(expense_id: int) -> None:
    _delete(Expense, expense_id, label="Expense", action="Delete expense")


# =========================================================
# Machine documents / gallery
# =========================================================
def _file_list_name(kind: str) -> str:
    if kind not in MACHINE_FILE_BUCKETS:
        raise ValidationError(f"Unknown file kind {kind!r}. Allowed: documents, images.")
    return kind


def attach_machine_file(machine_id: int, kind: str, filename: str, data: bytes) -> str:
    attr = _file_list_name(kind)
    machine = _get_or_404(Machine, machine_id, label="Machine", for_update=True)
    if not data:
        raise ValidationError("Uploaded file is empty.")

    try:
        stored = storage.store_blob(MACHINE_FILE_BUCKETS[attr], machine.id, filename, data)
    except OSError as exc:
        current_app.logger.exception("Storing %s for machine %s failed", filename, machine.id)
        raise DependencyWriteError(f"File upload failed: {exc}") from exc

    try:
        with _transaction("Attach machine file"):
            setattr(machine, attr, [*(getattr(machine, attr) or []), stored.url])
    except DependencyWriteError:
        storage.delete_blob(stored.storage_key)
        raise

    current_app.logger.info("Machine %s: %s added to %s", machine.id, stored.storage_key, attr)
    return stored.url


def detach_machine_file(machine_id: int, kind: str, url: str) -> list[str]:
    attr = _file_list_name(kind)
    machine = _get_or_404(Machine, machine_id, label="Machine", for_update=True)
    current = list(getattr(machine, attr) or [])
    if url not in current:
        raise NotFoundError(f"File not attached to machine {machine.id}.")

    with _transaction("Detach machine file"):
        setattr(machine, attr, [u for u in current if u != url])

    key = storage.key_for_url(url)
    if key:
        try:
            storage.delete_blob(key)
        except (OSError, ValueError):
            current_app.logger.warning("Could not remove stored file %s", key)
    return list(getattr(machine, attr))
