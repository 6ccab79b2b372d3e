"""initial_schema

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-19 10:12:44.318202

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c3e5f70001'
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, native_enum=False)


CURRENCY = ("USD", "EUR", "TRY")
MONEY = sa.Numeric(14, 2)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade():
    # =========================
    # company (customers + suppliers)
    # =========================
    op.create_table(
        "company",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("type", _enum("company_type", "customer", "supplier"), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("contact_person", sa.String(length=160), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("email", sa.String(length=160), nullable=True),
        sa.Column("tax_number", sa.String(length=60), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    # =========================
    # bank_account
    # =========================
    op.create_table(
        "bank_account",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bank_name", sa.String(length=160), nullable=False),
        sa.Column("account_holder", sa.String(length=200), nullable=False),
        sa.Column("account_number", sa.String(length=60), nullable=False),
        sa.Column("iban", sa.String(length=60), nullable=True),
        sa.Column("swift_code", sa.String(length=20), nullable=True),
        sa.Column("currency", _enum("currency_type", *CURRENCY), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # =========================
    # machine
    # =========================
    op.create_table(
        "machine",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("brand", sa.String(length=120), nullable=False),
        sa.Column("model", sa.String(length=120), nullable=False),
        sa.Column("machine_type", sa.String(length=120), nullable=False),
        sa.Column("chassis_number", sa.String(length=120), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("hours_used", sa.Integer(), nullable=True),
        sa.Column("status", _enum("machine_status", "available", "reserved", "in_transit", "sold"), nullable=False),
        sa.Column("purchase_price", MONEY, nullable=True),
        sa.Column("purchase_currency", _enum("currency_type", *CURRENCY), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("supplier_id", sa.Integer(), nullable=True),
        sa.Column("location", sa.String(length=160), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("documents", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["supplier_id"], ["company.id"], name="fk_machine_supplier", ondelete="SET NULL"),
    )
    op.create_index("ix_machine_chassis_number", "machine", ["chassis_number"])

    # =========================
    # proforma_invoice
    # =========================
    op.create_table(
        "proforma_invoice",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_number", sa.String(length=40), nullable=False, unique=True),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("bank_account_id", sa.Integer(), nullable=True),
        sa.Column("machine_id", sa.Integer(), nullable=True),
        sa.Column("brand", sa.String(length=120), nullable=True),
        sa.Column("model", sa.String(length=120), nullable=True),
        sa.Column("machine_type", sa.String(length=120), nullable=True),
        sa.Column("chassis_number", sa.String(length=120), nullable=True),
        sa.Column("unit_price", MONEY, nullable=False, server_default="0"),
        sa.Column("currency", _enum("currency_type", *CURRENCY), nullable=False),
        sa.Column("total_amount", MONEY, nullable=True),
        sa.Column("delivery_terms", sa.String(length=40), nullable=True),
        sa.Column("loading_port", sa.String(length=160), nullable=True),
        sa.Column("destination_port", sa.String(length=160), nullable=True),
        sa.Column("payment_terms", sa.Text(), nullable=True),
        sa.Column("deposit_amount", MONEY, nullable=True),
        sa.Column("deposit_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deposit_date", sa.Date(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("validity_date", sa.Date(), nullable=True),
        sa.Column("status", _enum("payment_status", "pending", "partial", "paid"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["company.id"], name="fk_proforma_invoice_customer"),
        sa.ForeignKeyConstraint(
            ["bank_account_id"], ["bank_account.id"], name="fk_proforma_invoice_bank_account", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["machine_id"], ["machine.id"], name="fk_proforma_invoice_machine", ondelete="SET NULL"),
    )
    op.create_index("ix_proforma_invoice_customer_id", "proforma_invoice", ["customer_id"])

    # =========================
    # proforma_invoice_item
    # machine snapshot at invoice time
    # =========================
    op.create_table(
        "proforma_invoice_item",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("proforma_invoice_id", sa.Integer(), nullable=False),
        sa.Column("machine_id", sa.Integer(), nullable=True),
        sa.Column("brand", sa.String(length=120), nullable=False),
        sa.Column("model", sa.String(length=120), nullable=False),
        sa.Column("machine_type", sa.String(length=120), nullable=False),
        sa.Column("chassis_number", sa.String(length=120), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("unit_price", MONEY, nullable=False, server_default="0"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("total_price", MONEY, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["proforma_invoice_id"], ["proforma_invoice.id"], name="fk_invoice_item_invoice", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["machine_id"], ["machine.id"], name="fk_invoice_item_machine", ondelete="SET NULL"),
    )
    op.create_index("ix_proforma_invoice_item_proforma_invoice_id", "proforma_invoice_item", ["proforma_invoice_id"])

    # =========================
    # shipment
    # =========================
    op.create_table(
        "shipment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("proforma_invoice_id", sa.Integer(), nullable=True),
        sa.Column("machine_id", sa.Integer(), nullable=True),
        sa.Column("loading_port", sa.String(length=160), nullable=False, server_default=""),
        sa.Column("destination_port", sa.String(length=160), nullable=False, server_default=""),
        sa.Column("shipping_company", sa.String(length=160), nullable=True),
        sa.Column("container_number", sa.String(length=60), nullable=True),
        sa.Column("bill_of_lading", sa.String(length=60), nullable=True),
        sa.Column("loading_date", sa.Date(), nullable=True),
        sa.Column("departure_date", sa.Date(), nullable=True),
        sa.Column("estimated_arrival_date", sa.Date(), nullable=True),
        sa.Column("actual_arrival_date", sa.Date(), nullable=True),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            _enum("shipment_status", "pending", "loading", "in_transit", "arrived", "delivered"),
            nullable=False,
        ),
        sa.Column("current_location", sa.String(length=160), nullable=True),
        sa.Column("shipping_cost", MONEY, nullable=True),
        sa.Column("shipping_currency", _enum("currency_type", *CURRENCY), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["proforma_invoice_id"], ["proforma_invoice.id"], name="fk_shipment_invoice", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["machine_id"], ["machine.id"], name="fk_shipment_machine", ondelete="SET NULL"),
    )
    op.create_index("ix_shipment_proforma_invoice_id", "shipment", ["proforma_invoice_id"])

    # =========================
    # expense
    # =========================
    op.create_table(
        "expense",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("proforma_invoice_id", sa.Integer(), nullable=True),
        sa.Column("shipment_id", sa.Integer(), nullable=True),
        sa.Column("machine_id", sa.Integer(), nullable=True),
        sa.Column(
            "category",
            _enum(
                "expense_category",
                "transport", "customs", "port_fees", "insurance", "inspection", "storage", "other",
            ),
            nullable=False,
        ),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency", _enum("currency_type", *CURRENCY), nullable=False),
        sa.Column("invoice_number", sa.String(length=60), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["proforma_invoice_id"], ["proforma_invoice.id"], name="fk_expense_invoice", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["shipment_id"], ["shipment.id"], name="fk_expense_shipment", ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["machine_id"], ["machine.id"], name="fk_expense_machine", ondelete="SET NULL"),
    )
    op.create_index("ix_expense_proforma_invoice_id", "expense", ["proforma_invoice_id"])
    op.create_index("ix_expense_machine_id", "expense", ["machine_id"])

    # =========================
    # payment
    # =========================
    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("proforma_invoice_id", sa.Integer(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency", _enum("currency_type", *CURRENCY), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(length=60), nullable=True),
        sa.Column("reference_number", sa.String(length=120), nullable=True),
        sa.Column("is_deposit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["proforma_invoice_id"], ["proforma_invoice.id"], name="fk_payment_invoice", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_payment_proforma_invoice_id", "payment", ["proforma_invoice_id"])


def downgrade():
    op.drop_index("ix_payment_proforma_invoice_id", table_name="payment")
    op.drop_table("payment")
    op.drop_index("ix_expense_machine_id", table_name="expense")
    op.drop_index("ix_expense_proforma_invoice_id", table_name="expense")
    op.drop_table("expense")
    op.drop_index("ix_shipment_proforma_invoice_id", table_name="shipment")
    op.drop_table("shipment")
    op.drop_index("ix_proforma_invoice_item_proforma_invoice_id", table_name="proforma_invoice_item")
    op.drop_table("proforma_invoice_item")
    op.drop_index("ix_proforma_invoice_customer_id", table_name="proforma_invoice")
    op.drop_table("proforma_invoice")
    op.drop_index("ix_machine_chassis_number", table_name="machine")
    op.drop_table("machine")
    op.drop_table("bank_account")
    op.drop_table("company")
