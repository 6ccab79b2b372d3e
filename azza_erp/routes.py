# azza_erp/routes.py
from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, make_response, request

from azza_erp.config.company import company_context
from azza_erp.errors import NotFoundError, ValidationError
from azza_erp.extensions import db, limiter
from azza_erp.models import BankAccount, Company, CompanyType, Expense, Machine, MachineStatus, Payment, ProformaInvoice, Shipment
from azza_erp.services import lifecycle, reports, storage
from azza_erp.services.ledger import to_decimal
from azza_erp.utils.invoice_pdf import proforma_filename, render_proforma_invoice_pdf
from azza_erp.utils.parsing import parse_enum, parse_int
from azza_erp.utils.statement_pdf import render_monthly_statement_pdf, statement_filename

main = Blueprint("main", __name__)


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def _get_or_404(model, obj_id: int, label: str):
    obj = db.session.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label} {obj_id} not found.")
    return obj


def _pdf_response(pdf_bytes: bytes, filename: str):
    resp = make_response(pdf_bytes)
    resp.headers["Content-Type"] = "application/pdf"
    resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp


def _pdf_limit() -> str:
    return current_app.config.get("PDF_RATE_LIMIT", "30 per minute")


@main.route("/health")
def health():
    return jsonify({"ok": True, "company": company_context()["name"]})


# ======================
# Companies
# ======================
@main.route("/companies", methods=["GET"])
def companies_list():
    q = Company.query.order_by(Company.name)
    company_type = parse_enum(CompanyType, request.args.get("type"))
    if company_type is not None:
        q = q.filter(Company.type == company_type)
    return jsonify([c.to_dict() for c in q.all()])


@main.route("/companies", methods=["POST"])
def companies_create():
    return jsonify(lifecycle.create_company(_payload()).to_dict()), 201


@main.route("/companies/<int:company_id>", methods=["GET"])
def companies_detail(company_id: int):
    return jsonify(_get_or_404(Company, company_id, "Company").to_dict())


@main.route("/companies/<int:company_id>", methods=["PATCH", "PUT"])
def companies_update(company_id: int):
    return jsonify(lifecycle.update_company(company_id, _payload()).to_dict())


@main.route("/companies/<int:company_id>", methods=["DELETE"])
def companies_delete(company_id: int):
    lifecycle.delete_company(company_id)
    return "", 204


# ======================
# Bank accounts
# ======================
@main.route("/bank-accounts", methods=["GET"])
def bank_accounts_list():
    accounts = BankAccount.query.order_by(BankAccount.id).all()
    default = lifecycle.default_bank_account(accounts)
    return jsonify({
        "accounts": [a.to_dict() for a in accounts],
        "default_id": default.id if default else None,
    })


@main.route("/bank-accounts", methods=["POST"])
def bank_accounts_create():
    return jsonify(lifecycle.create_bank_account(_payload()).to_dict()), 201


@main.route("/bank-accounts/<int:account_id>", methods=["PATCH", "PUT"])
def bank_accounts_update(account_id: int):
    return jsonify(lifecycle.update_bank_account(account_id, _payload()).to_dict())


@main.route("/bank-accounts/<int:account_id>", methods=["DELETE"])
def bank_accounts_delete(account_id: int):
    lifecycle.delete_bank_account(account_id)
    return "", 204


# ======================
# Machines
# ======================
@main.route("/machines", methods=["GET"])
def machines_list():
    q = Machine.query.order_by(Machine.created_at.desc(), Machine.id.desc())
    status = parse_enum(MachineStatus, request.args.get("status"))
    if status is not None:
        q = q.filter(Machine.status == status)
    return jsonify([m.to_dict() for m in q.all()])


@main.route("/machines", methods=["POST"])
def machines_create():
    return jsonify(lifecycle.create_machine(_payload()).to_dict()), 201


@main.route("/machines/<int:machine_id>", methods=["GET"])
def machines_detail(machine_id: int):
    machine = _get_or_404(Machine, machine_id, "Machine")
    data = machine.to_dict()
    data["expenses"] = [e.to_dict() for e in machine.expenses]
    data["financials"] = reports.machine_financials(machine).to_dict()
    return jsonify(data)


@main.route("/machines/<int:machine_id>", methods=["PATCH", "PUT"])
def machines_update(machine_id: int):
    return jsonify(lifecycle.update_machine(machine_id, _payload()).to_dict())


@main.route("/machines/<int:machine_id>", methods=["DELETE"])
def machines_delete(machine_id: int):
    lifecycle.delete_machine(machine_id)
    return "", 204


@main.route("/machines/<int:machine_id>/<kind>", methods=["POST"])
def machines_upload(machine_id: int, kind: str):
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded.")
    url = lifecycle.attach_machine_file(machine_id, kind, upload.filename, upload.read())
    return jsonify({"url": url}), 201


@main.route("/machines/<int:machine_id>/<kind>", methods=["DELETE"])
def machines_remove_file(machine_id: int, kind: str):
    url = (_payload().get("url") or "").strip()
    if not url:
        raise ValidationError("url is required.")
    remaining = lifecycle.detach_machine_file(machine_id, kind, url)
    return jsonify({kind: remaining})


@main.route("/files/<path:storage_key>", methods=["GET"])
def files_get(storage_key: str):
    try:
        data = storage.load_blob(storage_key)
    except (OSError, ValueError):
        abort(404)
    resp = make_response(data)
    resp.headers["Content-Type"] = "application/octet-stream"
    return resp


# ======================
# Invoices
# ======================
@main.route("/invoices", methods=["GET"])
def invoices_list():
    invoices = ProformaInvoice.query.order_by(ProformaInvoice.created_at.desc(), ProformaInvoice.id.desc()).all()
    return jsonify([inv.to_dict(with_items=False) for inv in invoices])


@main.route("/invoices/next-number", methods=["GET"])
def invoices_next_number():
    return jsonify({"invoice_number": lifecycle.suggest_invoice_number()})


@main.route("/invoices", methods=["POST"])
def invoices_create():
    draft = lifecycle.ProformaDraft.from_payload(_payload())
    return jsonify(lifecycle.create_invoice(draft).to_dict()), 201


@main.route("/invoices/<int:invoice_id>", methods=["GET"])
def invoices_detail(invoice_id: int):
    invoice = _get_or_404(ProformaInvoice, invoice_id, "Invoice")
    data = invoice.to_dict()
    data["payments"] = [p.to_dict() for p in invoice.payments]
    data["shipments"] = [s.to_dict() for s in invoice.shipments]
    data["status_stale"] = invoice.is_status_stale
    return jsonify(data)


@main.route("/invoices/<int:invoice_id>", methods=["PATCH", "PUT"])
def invoices_update(invoice_id: int):
    return jsonify(lifecycle.update_invoice(invoice_id, _payload()).to_dict())


@main.route("/invoices/<int:invoice_id>", methods=["DELETE"])
def invoices_delete(invoice_id: int):
    released = lifecycle.delete_invoice(invoice_id)
    return jsonify({"deleted": invoice_id, "released_machine_ids": released})


@main.route("/invoices/<int:invoice_id>/mark-sold", methods=["POST"])
def invoices_mark_sold(invoice_id: int):
    return jsonify(lifecycle.mark_invoice_as_sold(invoice_id).to_dict())


@main.route("/invoices/<int:invoice_id>/remaining", methods=["GET"])
def invoices_remaining(invoice_id: int):
    remaining = lifecycle.remaining_for_invoice(invoice_id)
    return jsonify({"invoice_id": invoice_id, "remaining": float(to_decimal(remaining))})


@main.route("/invoices/<int:invoice_id>/pdf", methods=["GET"])
@limiter.limit(_pdf_limit)
def invoices_pdf(invoice_id: int):
    invoice = _get_or_404(ProformaInvoice, invoice_id, "Invoice")
    pdf_bytes = render_proforma_invoice_pdf(
        invoice,
        logo_path=current_app.config.get("COMPANY_LOGO_PATH"),
        signature_path=current_app.config.get("COMPANY_SIGNATURE_PATH"),
    )
    return _pdf_response(pdf_bytes, proforma_filename(invoice))


# ======================
# Payments
# ======================
@main.route("/payments", methods=["GET"])
def payments_list():
    q = Payment.query.order_by(Payment.payment_date.desc(), Payment.id.desc())
    invoice_id = parse_int(request.args.get("invoice_id"))
    if invoice_id is not None:
        q = q.filter(Payment.proforma_invoice_id == invoice_id)
    return jsonify([p.to_dict() for p in q.all()])


@main.route("/payments", methods=["POST"])
def payments_create():
    draft = lifecycle.PaymentDraft.from_payload(_payload())
    return jsonify(lifecycle.create_payment(draft).to_dict()), 201


@main.route("/payments/<int:payment_id>", methods=["PATCH", "PUT"])
def payments_update(payment_id: int):
    return jsonify(lifecycle.update_payment(payment_id, _payload()).to_dict())


@main.route("/payments/<int:payment_id>", methods=["DELETE"])
def payments_delete(payment_id: int):
    invoice = lifecycle.delete_payment(payment_id)
    return jsonify(invoice.to_dict(with_items=False))


# ======================
# Shipments
# ======================
@main.route("/shipments", methods=["GET"])
def shipments_list():
    shipments = Shipment.query.order_by(Shipment.created_at.desc(), Shipment.id.desc()).all()
    return jsonify([s.to_dict() for s in shipments])


@main.route("/shipments", methods=["POST"])
def shipments_create():
    draft = lifecycle.ShipmentDraft.from_payload(_payload())
    return jsonify(lifecycle.create_shipment(draft).to_dict()), 201


@main.route("/shipments/<int:shipment_id>", methods=["PATCH", "PUT"])
def shipments_update(shipment_id: int):
    return jsonify(lifecycle.update_shipment(shipment_id, _payload()).to_dict())


@main.route("/shipments/<int:shipment_id>", methods=["DELETE"])
def shipments_delete(shipment_id: int):
    machine_id = lifecycle.delete_shipment(shipment_id)
    return jsonify({"deleted": shipment_id, "machine_id": machine_id})


# ======================
# Expenses
# ======================
@main.route("/expenses", methods=["GET"])
def expenses_list():
    expenses = Expense.query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()
    return jsonify([e.to_dict() for e in expenses])


@main.route("/expenses", methods=["POST"])
def expenses_create():
    return jsonify(lifecycle.create_expense(_payload()).to_dict()), 201


@main.route("/expenses/<int:expense_id>", methods=["PATCH", "PUT"])
def expenses_update(expense_id: int):
    return jsonify(lifecycle.update_expense(expense_id, _payload()).to_dict())


@main.route("/expenses/<int:expense_id>", methods=["DELETE"])
def expenses_delete(expense_id: int):
    lifecycle.delete_expense(expense_id)
    return "", 204


# ======================
# Reports
# ======================
@main.route("/reports/monthly", methods=["GET"])
def reports_monthly():
    limit = parse_int(request.args.get("limit")) or reports.DEFAULT_MONTH_LIMIT
    return jsonify([r.to_dict() for r in reports.monthly_reports(limit=limit)])


@main.route("/reports/monthly/<int:year>/<int:month>", methods=["GET"])
def reports_monthly_detail(year: int, month: int):
    return jsonify(reports.monthly_report(year, month).to_dict(with_rows=True))


@main.route("/reports/monthly/<int:year>/<int:month>/pdf", methods=["GET"])
@limiter.limit(_pdf_limit)
def reports_monthly_pdf(year: int, month: int):
    report = reports.monthly_report(year, month)
    return _pdf_response(render_monthly_statement_pdf(report), statement_filename(report))


@main.route("/reports/summary", methods=["GET"])
def reports_summary():
    return jsonify(reports.accounting_summary().to_dict())


@main.route("/dashboard", methods=["GET"])
def dashboard():
    return jsonify(reports.dashboard_stats())
