# azza_erp/models.py
from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Enum as SAEnum

from .extensions import db


# Naive UTC everywhere: the columns are "timestamp without time zone".
def utcnow_naive() -> datetime:
    return datetime.utcnow()


def _enum_column(enum_cls, name: str, default):
    return db.Column(
        SAEnum(
            enum_cls,
            name=name,
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default=default,
    )


def _num(value) -> float | None:
    if value is None:
        return None
    return float(value)


def _iso(value) -> str | None:
    if value is None:
        return None
    return value.isoformat()


MONEY = db.Numeric(14, 2)


# =========================================================
# Enums
# =========================================================
class CompanyType(enum.Enum):
    CUSTOMER = "customer"
    SUPPLIER = "supplier"


class CurrencyType(enum.Enum):
    USD = "USD"
    EUR = "EUR"
    TRY = "TRY"


class MachineStatus(enum.Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    IN_TRANSIT = "in_transit"
    SOLD = "sold"


class PaymentStatus(enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class ShipmentStatus(enum.Enum):
    PENDING = "pending"
    LOADING = "loading"
    IN_TRANSIT = "in_transit"
    ARRIVED = "arrived"
    DELIVERED = "delivered"


# Shipments still on the move (dashboard "active shipments")
ACTIVE_SHIPMENT_STATUSES = (
    ShipmentStatus.PENDING,
    ShipmentStatus.LOADING,
    ShipmentStatus.IN_TRANSIT,
)


class ExpenseCategory(enum.Enum):
    TRANSPORT = "transport"
    CUSTOMS = "customs"
    PORT_FEES = "port_fees"
    INSURANCE = "insurance"
    INSPECTION = "inspection"
    STORAGE = "storage"
    OTHER = "other"


# =========================================================
# Company (customers + suppliers)
# =========================================================
class Company(db.Model):
    __tablename__ = "company"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    type = _enum_column(CompanyType, "company_type", CompanyType.CUSTOMER)

    country = db.Column(db.String(100), nullable=True)
    address = db.Column(db.Text, nullable=True)
    contact_person = db.Column(db.String(160), nullable=True)
    phone = db.Column(db.String(40), nullable=True)
    email = db.Column(db.String(160), nullable=True)
    tax_number = db.Column(db.String(60), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "country": self.country,
            "address": self.address,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "tax_number": self.tax_number,
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return f"<Company {self.id} {self.name} {self.type.value}>"


# =========================================================
# BankAccount
# =========================================================
class BankAccount(db.Model):
    __tablename__ = "bank_account"

    id = db.Column(db.Integer, primary_key=True)
    bank_name = db.Column(db.String(160), nullable=False)
    account_holder = db.Column(db.String(200), nullable=False)
    account_number = db.Column(db.String(60), nullable=False)
    iban = db.Column(db.String(60), nullable=True)
    swift_code = db.Column(db.String(20), nullable=True)
    currency = _enum_column(CurrencyType, "currency_type", CurrencyType.USD)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bank_name": self.bank_name,
            "account_holder": self.account_holder,
            "account_number": self.account_number,
            "iban": self.iban,
            "swift_code": self.swift_code,
            "currency": self.currency.value,
            "is_active": self.is_active,
        }


# =========================================================
# Machine (inventory unit)
# =========================================================
class Machine(db.Model):
    __tablename__ = "machine"

    id = db.Column(db.Integer, primary_key=True)

    brand = db.Column(db.String(120), nullable=False)
    model = db.Column(db.String(120), nullable=False)
    machine_type = db.Column(db.String(120), nullable=False)
    # Business key, not unique in practice (re-imports happen)
    chassis_number = db.Column(db.String(120), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=True)
    hours_used = db.Column(db.Integer, nullable=True)

    status = _enum_column(MachineStatus, "machine_status", MachineStatus.AVAILABLE)

    purchase_price = db.Column(MONEY, nullable=True)
    purchase_currency = _enum_column(CurrencyType, "currency_type", CurrencyType.USD)
    purchase_date = db.Column(db.Date, nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("company.id", ondelete="SET NULL"), nullable=True)
    supplier = db.relationship("Company", foreign_keys=[supplier_id], lazy="joined")

    location = db.Column(db.String(160), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # URLs handed back by object storage
    images = db.Column(db.JSON, nullable=False, default=list)
    documents = db.Column(db.JSON, nullable=False, default=list)

    expenses = db.relationship("Expense", back_populates="machine", lazy="select", passive_deletes=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "brand": self.brand,
            "model": self.model,
            "machine_type": self.machine_type,
            "chassis_number": self.chassis_number,
            "year": self.year,
            "hours_used": self.hours_used,
            "status": self.status.value,
            "purchase_price": _num(self.purchase_price),
            "purchase_currency": self.purchase_currency.value,
            "purchase_date": _iso(self.purchase_date),
            "supplier_id": self.supplier_id,
            "supplier": self.supplier.name if self.supplier else None,
            "location": self.location,
            "notes": self.notes,
            "images": list(self.images or []),
            "documents": list(self.documents or []),
        }

    def __repr__(self) -> str:
        return f"<Machine {self.id} {self.brand} {self.model} {self.status.value}>"


# =========================================================
# ProformaInvoice
# =========================================================
class ProformaInvoice(db.Model):
    __tablename__ = "proforma_invoice"

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(40), unique=True, nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("company.id"), nullable=False, index=True)
    customer = db.relationship("Company", foreign_keys=[customer_id], lazy="joined")

    bank_account_id = db.Column(db.Integer, db.ForeignKey("bank_account.id", ondelete="SET NULL"), nullable=True)
    bank_account = db.relationship("BankAccount", foreign_keys=[bank_account_id], lazy="joined")

    # Legacy single-machine columns (pre line-items). Read, never written by new code.
    machine_id = db.Column(db.Integer, db.ForeignKey("machine.id", ondelete="SET NULL"), nullable=True)
    machine = db.relationship("Machine", foreign_keys=[machine_id], lazy="select")
    brand = db.Column(db.String(120), nullable=True)
    model = db.Column(db.String(120), nullable=True)
    machine_type = db.Column(db.String(120), nullable=True)
    chassis_number = db.Column(db.String(120), nullable=True)

    # Pricing
    unit_price = db.Column(MONEY, nullable=False, default=Decimal("0"))
    currency = _enum_column(CurrencyType, "currency_type", CurrencyType.USD)
    total_amount = db.Column(MONEY, nullable=True)

    # Delivery terms
    delivery_terms = db.Column(db.String(40), nullable=True)
    loading_port = db.Column(db.String(160), nullable=True)
    destination_port = db.Column(db.String(160), nullable=True)

    # Payment terms
    payment_terms = db.Column(db.Text, nullable=True)
    deposit_amount = db.Column(MONEY, nullable=True)
    deposit_paid = db.Column(db.Boolean, default=False, nullable=False)
    deposit_date = db.Column(db.Date, nullable=True)

    issue_date = db.Column(db.Date, default=date.today, nullable=False)
    validity_date = db.Column(db.Date, nullable=True)

    # Stored for list/report queries; recomputed on every payment change.
    status = _enum_column(PaymentStatus, "payment_status", PaymentStatus.PENDING)
    notes = db.Column(db.Text, nullable=True)

    items = db.relationship(
        "ProformaInvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="ProformaInvoiceItem.id",
        lazy="select",
    )
    payments = db.relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Payment.payment_date",
        lazy="select",
    )
    shipments = db.relationship("Shipment", back_populates="invoice", passive_deletes=True, lazy="select")
    expenses = db.relationship("Expense", back_populates="invoice", passive_deletes=True, lazy="select")

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    # -----------------------------
    # Derived on read
    # -----------------------------
    @property
    def total(self) -> Decimal:
        from .services.ledger import invoice_total

        return invoice_total(self)

    @property
    def paid_amount(self) -> Decimal:
        from .services.ledger import payments_sum

        return payments_sum(self.payments)

    @property
    def balance_due(self) -> Decimal:
        from .services.ledger import remaining_balance

        return remaining_balance(self, self.paid_amount)

    @property
    def computed_status(self) -> PaymentStatus:
        from .services.ledger import compute_invoice_status

        return compute_invoice_status(self.total, self.paid_amount)

    @property
    def is_status_stale(self) -> bool:
        return self.status != self.computed_status

    @property
    def machine_ids(self) -> list[int]:
        """Machines on this invoice: line items first, legacy column as fallback."""
        ids = [it.machine_id for it in self.items if it.machine_id is not None]
        if ids:
            return ids
        return [self.machine_id] if self.machine_id is not None else []

    def to_dict(self, with_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer": self.customer.name if self.customer else None,
            "bank_account_id": self.bank_account_id,
            "machine_id": self.machine_id,
            "unit_price": _num(self.unit_price),
            "total_amount": _num(self.total_amount),
            "currency": self.currency.value,
            "delivery_terms": self.delivery_terms,
            "loading_port": self.loading_port,
            "destination_port": self.destination_port,
            "payment_terms": self.payment_terms,
            "deposit_amount": _num(self.deposit_amount),
            "deposit_paid": self.deposit_paid,
            "deposit_date": _iso(self.deposit_date),
            "issue_date": _iso(self.issue_date),
            "validity_date": _iso(self.validity_date),
            "status": self.status.value,
            "paid_amount": _num(self.paid_amount),
            "balance_due": _num(self.balance_due),
            "notes": self.notes,
        }
        if with_items:
            data["items"] = [it.to_dict() for it in self.items]
        return data

    def __repr__(self) -> str:
        return f"<ProformaInvoice {self.id} {self.invoice_number} {self.status.value}>"


# =========================================================
# ProformaInvoiceItem (machine snapshot at invoice time)
# =========================================================
class ProformaInvoiceItem(db.Model):
    __tablename__ = "proforma_invoice_item"

    id = db.Column(db.Integer, primary_key=True)
    proforma_invoice_id = db.Column(
        db.Integer, db.ForeignKey("proforma_invoice.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice = db.relationship("ProformaInvoice", back_populates="items")

    machine_id = db.Column(db.Integer, db.ForeignKey("machine.id", ondelete="SET NULL"), nullable=True)
    machine = db.relationship("Machine", foreign_keys=[machine_id], lazy="select")

    brand = db.Column(db.String(120), nullable=False)
    model = db.Column(db.String(120), nullable=False)
    machine_type = db.Column(db.String(120), nullable=False)
    chassis_number = db.Column(db.String(120), nullable=False)
    year = db.Column(db.Integer, nullable=True)

    unit_price = db.Column(MONEY, nullable=False, default=Decimal("0"))
    quantity = db.Column(db.Integer, nullable=False, default=1)
    total_price = db.Column(MONEY, nullable=False, default=Decimal("0"))

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "machine_id": self.machine_id,
            "brand": self.brand,
            "model": self.model,
            "machine_type": self.machine_type,
            "chassis_number": self.chassis_number,
            "year": self.year,
            "unit_price": _num(self.unit_price),
            "quantity": self.quantity,
            "total_price": _num(self.total_price),
        }


# =========================================================
# Shipment
# =========================================================
class Shipment(db.Model):
    __tablename__ = "shipment"

    id = db.Column(db.Integer, primary_key=True)

    proforma_invoice_id = db.Column(
        db.Integer, db.ForeignKey("proforma_invoice.id", ondelete="SET NULL"), nullable=True, index=True
    )
    invoice = db.relationship("ProformaInvoice", back_populates="shipments")

    machine_id = db.Column(db.Integer, db.ForeignKey("machine.id", ondelete="SET NULL"), nullable=True)
    machine = db.relationship("Machine", foreign_keys=[machine_id], lazy="select")

    # Shipping details
    loading_port = db.Column(db.String(160), nullable=False, default="")
    destination_port = db.Column(db.String(160), nullable=False, default="")
    shipping_company = db.Column(db.String(160), nullable=True)
    container_number = db.Column(db.String(60), nullable=True)
    bill_of_lading = db.Column(db.String(60), nullable=True)

    # Dates
    loading_date = db.Column(db.Date, nullable=True)
    departure_date = db.Column(db.Date, nullable=True)
    estimated_arrival_date = db.Column(db.Date, nullable=True)
    actual_arrival_date = db.Column(db.Date, nullable=True)
    delivery_date = db.Column(db.Date, nullable=True)

    status = _enum_column(ShipmentStatus, "shipment_status", ShipmentStatus.PENDING)
    current_location = db.Column(db.String(160), nullable=True)

    shipping_cost = db.Column(MONEY, nullable=True)
    shipping_currency = _enum_column(CurrencyType, "currency_type", CurrencyType.USD)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "proforma_invoice_id": self.proforma_invoice_id,
            "machine_id": self.machine_id,
            "loading_port": self.loading_port,
            "destination_port": self.destination_port,
            "shipping_company": self.shipping_company,
            "container_number": self.container_number,
            "bill_of_lading": self.bill_of_lading,
            "loading_date": _iso(self.loading_date),
            "departure_date": _iso(self.departure_date),
            "estimated_arrival_date": _iso(self.estimated_arrival_date),
            "actual_arrival_date": _iso(self.actual_arrival_date),
            "delivery_date": _iso(self.delivery_date),
            "status": self.status.value,
            "current_location": self.current_location,
            "shipping_cost": _num(self.shipping_cost),
            "shipping_currency": self.shipping_currency.value,
            "notes": self.notes,
        }


# =========================================================
# Expense
# =========================================================
class Expense(db.Model):
    __tablename__ = "expense"

    id = db.Column(db.Integer, primary_key=True)

    proforma_invoice_id = db.Column(
        db.Integer, db.ForeignKey("proforma_invoice.id", ondelete="SET NULL"), nullable=True, index=True
    )
    invoice = db.relationship("ProformaInvoice", back_populates="expenses")

    shipment_id = db.Column(db.Integer, db.ForeignKey("shipment.id", ondelete="SET NULL"), nullable=True)
    machine_id = db.Column(db.Integer, db.ForeignKey("machine.id", ondelete="SET NULL"), nullable=True, index=True)
    machine = db.relationship("Machine", back_populates="expenses")

    category = _enum_column(ExpenseCategory, "expense_category", ExpenseCategory.OTHER)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(MONEY, nullable=False)
    currency = _enum_column(CurrencyType, "currency_type", CurrencyType.USD)

    # Supplier's own invoice reference, if any
    invoice_number = db.Column(db.String(60), nullable=True)
    invoice_date = db.Column(db.Date, nullable=True)

    paid = db.Column(db.Boolean, default=False, nullable=False)
    payment_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    @property
    def business_date(self) -> date:
        """Date the cost belongs to: supplier invoice date, else entry date."""
        if self.invoice_date:
            return self.invoice_date
        return (self.created_at or utcnow_naive()).date()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "proforma_invoice_id": self.proforma_invoice_id,
            "shipment_id": self.shipment_id,
            "machine_id": self.machine_id,
            "category": self.category.value,
            "description": self.description,
            "amount": _num(self.amount),
            "currency": self.currency.value,
            "invoice_number": self.invoice_number,
            "invoice_date": _iso(self.invoice_date),
            "paid": self.paid,
            "payment_date": _iso(self.payment_date),
            "notes": self.notes,
        }


# =========================================================
# Payment (receipt against one proforma)
# =========================================================
class Payment(db.Model):
    __tablename__ = "payment"

    id = db.Column(db.Integer, primary_key=True)

    proforma_invoice_id = db.Column(
        db.Integer, db.ForeignKey("proforma_invoice.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice = db.relationship("ProformaInvoice", back_populates="payments")

    amount = db.Column(MONEY, nullable=False)
    currency = _enum_column(CurrencyType, "currency_type", CurrencyType.USD)

    payment_date = db.Column(db.Date, default=date.today, nullable=False)
    payment_method = db.Column(db.String(60), nullable=True)
    reference_number = db.Column(db.String(120), nullable=True)

    is_deposit = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "proforma_invoice_id": self.proforma_invoice_id,
            "amount": _num(self.amount),
            "currency": self.currency.value,
            "payment_date": _iso(self.payment_date),
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "is_deposit": self.is_deposit,
            "notes": self.notes,
        }
