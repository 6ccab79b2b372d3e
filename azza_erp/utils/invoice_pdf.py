# azza_erp/utils/invoice_pdf.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from azza_erp.config.company import (
    BANK_ADDRESS,
    BANK_BRANCH,
    COMPANY_ACTIVITY,
    COMPANY_ADDRESS_SHORT,
    COMPANY_LEGAL_NAME,
    COMPANY_LEGAL_SUFFIX,
    COMPANY_NAME,
    COMPANY_PHONE,
    DEFAULT_PAYMENT_TERMS,
    PROFORMA_VALIDITY_NOTICE,
)
from azza_erp.errors import MissingRelationError
from azza_erp.services.document_renderer import CellStyle, PageSurface, ReportLabSurface, TableSpec
from azza_erp.services.ledger import invoice_total, to_decimal
from azza_erp.utils.text import normalize_text

logger = logging.getLogger(__name__)

ITEM_COLUMNS = ["CHASIS NO", "DESCRIPTION", "QTY", "UNIT PRICE", "TOTAL PRICE"]
ITEM_COL_WIDTHS = [25, 93, 12, 25, 25]
BANK_COL_WIDTHS = [45, 135]

CONSIGNEE_TOP = 45
CONSIGNEE_HEIGHT = 35
ADDRESS_WRAP_WIDTH = 160
LINE_STEP = 4
ITEMS_TOP = 90


def _fmt_date(d) -> str:
    if not d:
        return "-"
    if isinstance(d, (datetime, date)):
        return d.strftime("%d/%m/%Y")
    return str(d)


def _whole(v) -> str:
    """Amount rounded to whole units, no grouping (matches the printed proforma)."""
    return str(to_decimal(v).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _safe_enum_value(v):
    try:
        return v.value
    except AttributeError:
        return v


@dataclass(frozen=True)
class _Line:
    chassis_number: str
    machine_type: str
    brand: str
    model: str
    year: int | None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


def invoice_lines(invoice) -> list[_Line]:
    """Line items in id order; invoices from before line items get one row from the legacy columns."""
    items = list(getattr(invoice, "items", None) or [])
    if items:
        return [
            _Line(
                chassis_number=it.chassis_number or "",
                machine_type=it.machine_type or "",
                brand=it.brand or "",
                model=it.model or "",
                year=it.year,
                quantity=it.quantity or 1,
                unit_price=to_decimal(it.unit_price),
                total_price=to_decimal(it.total_price),
            )
            for it in sorted(items, key=lambda it: it.id or 0)
        ]

    if any(getattr(invoice, f, None) for f in ("chassis_number", "brand", "model", "machine_type")):
        total = invoice_total(invoice)
        return [
            _Line(
                chassis_number=invoice.chassis_number or "",
                machine_type=invoice.machine_type or "",
                brand=invoice.brand or "",
                model=invoice.model or "",
                year=getattr(getattr(invoice, "machine", None), "year", None),
                quantity=1,
                unit_price=total,
                total_price=total,
            )
        ]
    return []


def _description(line: _Line, port_name: str, first: bool) -> str:
    parts = []
    if first and port_name:
        parts.append(port_name)
    parts.append(f"USED {normalize_text(line.machine_type).upper()}")
    parts.append(f"{normalize_text(line.brand)} {normalize_text(line.model)}")
    if line.year:
        parts.append(f"Manufacturing Year: {line.year}")
    return "\n".join(parts)


def items_table(invoice) -> TableSpec:
    currency = _safe_enum_value(getattr(invoice, "currency", None)) or "USD"
    destination = getattr(invoice, "destination_port", None)
    port_name = normalize_text(destination.split(",")[0].strip()) if destination else ""

    body = [
        [
            normalize_text(line.chassis_number),
            _description(line, port_name, first=(index == 0)),
            f"{line.quantity}\nUnits",
            f"{_whole(line.unit_price)}\n{currency}",
            f"{_whole(line.total_price)}\n{currency}",
        ]
        for index, line in enumerate(invoice_lines(invoice))
    ]

    return TableSpec(
        col_widths=ITEM_COL_WIDTHS,
        head=[list(ITEM_COLUMNS)],
        body=body,
        foot=[["", "GRAND TOTAL", "", "", f"{_whole(invoice_total(invoice))}\n{currency}"]],
        base=CellStyle(family="times", size=8),
        head_style={"fill": (220, 220, 220), "style": "bold", "align": "center", "valign": "middle"},
        foot_style={"fill": (240, 240, 240), "style": "bold", "size": 10, "align": "center"},
        column_styles={
            0: {"align": "center", "size": 7},
            1: {"align": "left", "style": "normal"},
            2: {"align": "center", "size": 8},
            3: {"align": "center", "style": "normal"},
            4: {"align": "center", "style": "bold"},
        },
        line_width=0.5,
        padding=2,
    )


def bank_table(bank) -> TableSpec:
    return TableSpec(
        col_widths=BANK_COL_WIDTHS,
        head=[["BANK DETAILS", ""]],
        body=[
            ["BANK NAME", normalize_text(bank.bank_name)],
            ["BANK ADRES", BANK_ADDRESS],
            ["ACCOUNT NAME", normalize_text(bank.account_holder)],
            ["IBAN", normalize_text(bank.iban) or "-"],
            ["BRANCH", BANK_BRANCH],
            ["SWIFT CODE", normalize_text(bank.swift_code) or "-"],
        ],
        base=CellStyle(family="times", size=8),
        head_style={"fill": (255, 255, 255), "style": "bold", "size": 10, "align": "left"},
        column_styles={
            0: {"style": "bold", "fill": (245, 245, 245)},
            1: {"style": "normal"},
        },
        line_width=0.5,
        padding=2,
    )


def _consignee(surface: PageSurface, customer) -> None:
    m = surface.margin
    y = CONSIGNEE_TOP

    surface.text(m, y, "Consignee", style="bold", size=10)
    surface.rect(m, y + 2, surface.page_width - 2 * m, CONSIGNEE_HEIGHT, line_width=0.5)
    surface.text(m + 3, y + 8, normalize_text(customer.name), style="bold", size=10)

    line_y = y + 13
    address = getattr(customer, "address", None)
    if address:
        lines = surface.split_text(normalize_text(address), ADDRESS_WRAP_WIDTH, size=9)
        for i, line in enumerate(lines):
            surface.text(m + 3, line_y + i * LINE_STEP, line, size=9)
        line_y += len(lines) * LINE_STEP

    optional = [
        ("country", "{}"),
        ("tax_number", "TAX ID: {}"),
        ("contact_person", "{}"),
        ("email", "Email: {}"),
        ("phone", "Phone/Whatsapp: {}"),
    ]
    for attr, template in optional:
        value = getattr(customer, attr, None)
        if value:
            surface.text(m + 3, line_y, template.format(normalize_text(value)), size=9)
            line_y += LINE_STEP


def layout_proforma_invoice(
    surface: PageSurface,
    invoice,
    *,
    logo_path: str | None = None,
    signature_path: str | None = None,
) -> None:
    """
    Lay out a proforma invoice on surface (NO DB writes).
    Raises MissingRelationError before drawing anything if the customer or
    bank account is missing.
    """
    number = getattr(invoice, "invoice_number", None) or f"#{getattr(invoice, 'id', '')}"
    customer = getattr(invoice, "customer", None)
    bank = getattr(invoice, "bank_account", None)
    if customer is None:
        raise MissingRelationError(f"Invoice {number} has no customer; the proforma cannot be generated.")
    if bank is None:
        raise MissingRelationError(f"Invoice {number} has no bank account; the proforma cannot be generated.")

    width, height, m = surface.page_width, surface.page_height, surface.margin
    currency = _safe_enum_value(getattr(invoice, "currency", None)) or "USD"

    # --- Letterhead ---
    if not surface.image(logo_path, m, 8, 30, 30):
        logger.info("Logo not available, letterhead drawn without it")

    surface.text(50, 15, COMPANY_NAME, style="bold", size=14)
    surface.text(50, 21, COMPANY_LEGAL_SUFFIX, style="bold", size=14)
    surface.text(50, 26, f"Adres: {COMPANY_ADDRESS_SHORT}", size=9)
    surface.text(50, 31, f"Cell: {COMPANY_PHONE}", size=9)

    # --- Invoice meta (top right) ---
    surface.text(width - m, 15, f"Date: {_fmt_date(getattr(invoice, 'issue_date', None))}", size=10, align="right")
    surface.text(width - m, 22, f"Invoice No: {normalize_text(number)}", size=10, align="right")

    # --- Consignee ---
    _consignee(surface, customer)

    # --- Machines ---
    y = surface.table(items_table(invoice), x=m, y=ITEMS_TOP) + 10

    # --- Terms ---
    surface.text(m, y, "Terms of Payment:", style="bold", size=10)
    terms = normalize_text(getattr(invoice, "payment_terms", None) or DEFAULT_PAYMENT_TERMS)
    surface.text(m + 40, y, terms, size=9)

    deposit = to_decimal(getattr(invoice, "deposit_amount", None))
    if deposit:
        y += 6
        surface.text(m + 40, y, f"Deposit Amount: {_whole(deposit)} {currency}", style="bold", size=9)

    y += 10

    # --- Bank details ---
    y = surface.table(bank_table(bank), x=m, y=y) + 15

    if not surface.image(signature_path, width - 70, y, 50, 16):
        logger.info("Signature not available, proforma %s left unsigned", number)

    # --- Footer ---
    surface.line(m, height - 20, width - m, height - 20, line_width=0.5)
    surface.text(width / 2, height - 14, PROFORMA_VALIDITY_NOTICE, style="italic", size=8, align="center", color=(80, 80, 80))
    surface.text(width / 2, height - 9, COMPANY_LEGAL_NAME, style="bold", size=9, align="center")
    surface.text(width / 2, height - 5, COMPANY_ACTIVITY, size=7, align="center")


def render_proforma_invoice_pdf(invoice, *, logo_path: str | None = None, signature_path: str | None = None) -> bytes:
    """Render the proforma PDF. Returns PDF bytes."""
    surface = ReportLabSurface(title=f"Proforma {normalize_text(getattr(invoice, 'invoice_number', ''))}")
    layout_proforma_invoice(surface, invoice, logo_path=logo_path, signature_path=signature_path)
    return surface.finish()


def proforma_filename(invoice) -> str:
    return f"Proforma_{normalize_text(getattr(invoice, 'invoice_number', None) or getattr(invoice, 'id', ''))}.pdf"
