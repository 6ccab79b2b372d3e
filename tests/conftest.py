"""Shared pytest fixtures and model factories for AZZA ERP tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable, Iterator

import pytest
from flask import Flask
from flask.testing import FlaskClient

from azza_erp import create_app
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
)
from azza_erp.services import lifecycle
from azza_erp.settings import TestConfig


@pytest.fixture()
def app(tmp_path) -> Iterator[Flask]:
    """Fresh app and in-memory schema per test; uploads go to tmp_path."""

    class _Config(TestConfig):
        STORAGE_DIR = str(tmp_path / "storage")

    app = create_app(_Config)
    with app.app_context():
        with db.engine.connect() as conn:
            # Single shared in-memory connection: the pragma sticks for the test
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        db.create_all()
        try:
            yield app
        finally:
            db.session.remove()
            db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    return app.test_client()


# =========================================================
# Factories
# =========================================================
@pytest.fixture()
def make_customer(app: Flask) -> Callable[..., Company]:
    def _make(name: str = "Al Noor Trading", **kwargs) -> Company:
        company = Company(name=name, type=kwargs.pop("type", CompanyType.CUSTOMER), **kwargs)
        db.session.add(company)
        db.session.commit()
        return company

    return _make


@pytest.fixture()
def make_bank(app: Flask) -> Callable[..., BankAccount]:
    def _make(bank_name: str = "Albaraka Turk", **kwargs) -> BankAccount:
        fields = {
            "account_holder": "AZZA IS MAKINELERI",
            "account_number": "0001234",
            "iban": "TR00 0020 3000 0000 0000 0000 01",
            "swift_code": "BTFHTRIS",
            "currency": CurrencyType.USD,
            "is_active": True,
        }
        fields.update(kwargs)
        account = BankAccount(bank_name=bank_name, **fields)
        db.session.add(account)
        db.session.commit()
        return account

    return _make


@pytest.fixture()
def make_machine(app: Flask) -> Callable[..., Machine]:
    counter = {"n": 0}

    def _make(purchase_price="1000", **kwargs) -> Machine:
        counter["n"] += 1
        fields = {
            "brand": "Caterpillar",
            "model": "320D",
            "machine_type": "excavator",
            "chassis_number": f"CAT0320D{counter['n']:04d}",
            "year": 2015,
            "status": MachineStatus.AVAILABLE,
            "purchase_currency": CurrencyType.USD,
        }
        fields.update(kwargs)
        machine = Machine(
            purchase_price=None if purchase_price is None else Decimal(str(purchase_price)),
            **fields,
        )
        db.session.add(machine)
        db.session.commit()
        return machine

    return _make


@pytest.fixture()
def make_invoice(make_customer, make_bank, make_machine) -> Callable[..., object]:
    """Creates an invoice through the lifecycle action, as the UI would."""

    def _make(prices=("10000",), *, margin="0", deposit="0", customer=None, bank=None, **kwargs):
        customer = customer or make_customer()
        bank = bank or make_bank()
        machines = [make_machine(purchase_price=p) for p in prices]
        draft = lifecycle.ProformaDraft(
            customer_id=customer.id,
            bank_account_id=bank.id,
            machine_ids=tuple(m.id for m in machines),
            profit_margin=Decimal(margin),
            deposit_percentage=Decimal(deposit),
            **kwargs,
        )
        return lifecycle.create_invoice(draft)

    return _make


@pytest.fixture()
def make_expense(app: Flask) -> Callable[..., Expense]:
    def _make(amount="100", *, invoice_date: date | None = None, **kwargs) -> Expense:
        fields = {
            "category": ExpenseCategory.CUSTOMS,
            "description": "Gumruk masrafi",
            "currency": CurrencyType.USD,
            "paid": False,
        }
        fields.update(kwargs)
        expense = Expense(amount=Decimal(str(amount)), invoice_date=invoice_date, **fields)
        db.session.add(expense)
        db.session.commit()
        return expense

    return _make
