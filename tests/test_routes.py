"""HTTP-level tests for the JSON API and PDF downloads."""

from __future__ import annotations

import io
from datetime import date

import pytest


@pytest.fixture()
def sale(client, make_customer, make_bank, make_machine):
    """Customer, bank and two available machines, invoiced through the API."""
    customer = make_customer()
    bank = make_bank()
    machines = [make_machine(purchase_price="1000"), make_machine(purchase_price="2000")]
    resp = client.post("/invoices", json={
        "customer_id": customer.id,
        "bank_account_id": bank.id,
        "machine_ids": [m.id for m in machines],
        "invoice_number": "2026001",
        "profit_margin": "30",
        "deposit_percentage": "20",
        "destination_port": "Mombasa, Kenya",
        "issue_date": "2026-02-05",
    })
    assert resp.status_code == 201
    return resp.get_json()


def test_health(client) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "company": "AZZA IS MAKINELERI"}


def test_company_crud(client) -> None:
    resp = client.post("/companies", json={"name": "Öz Makina", "type": "supplier", "country": "Turkey"})
    assert resp.status_code == 201
    company_id = resp.get_json()["id"]

    assert [c["name"] for c in client.get("/companies?type=supplier").get_json()] == ["Öz Makina"]
    assert client.get("/companies?type=customer").get_json() == []

    resp = client.patch(f"/companies/{company_id}", json={"phone": "+90 212 000 00 00"})
    assert resp.get_json()["phone"] == "+90 212 000 00 00"

    assert client.delete(f"/companies/{company_id}").status_code == 204
    assert client.get(f"/companies/{company_id}").status_code == 404


def test_validation_error_shape(client) -> None:
    resp = client.post("/companies", json={"name": "Partner Ltd", "type": "partner"})

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "validation_error"
    assert "partner" in body["message"]


def test_non_object_body_rejected(client) -> None:
    resp = client.post("/companies", json=["not", "an", "object"])
    assert resp.status_code == 400


def test_not_found_shapes(client) -> None:
    resp = client.get("/invoices/999")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "not_found", "message": "Invoice 999 not found."}

    resp = client.get("/no-such-page")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"


def test_bank_accounts_expose_default(client, make_bank) -> None:
    make_bank("Ziraat Bankasi")
    albaraka = make_bank("Albaraka Turk")

    data = client.get("/bank-accounts").get_json()
    assert len(data["accounts"]) == 2
    assert data["default_id"] == albaraka.id


def test_create_invoice(client, sale) -> None:
    assert sale["total_amount"] == 3900.0
    assert sale["deposit_amount"] == 780.0
    assert sale["status"] == "pending"
    assert [it["unit_price"] for it in sale["items"]] == [1300.0, 2600.0]

    reserved = client.get("/machines?status=reserved").get_json()
    assert len(reserved) == 2


def test_create_invoice_needs_machines(client, make_customer, make_bank) -> None:
    resp = client.post("/invoices", json={
        "customer_id": make_customer().id,
        "bank_account_id": make_bank().id,
        "machine_ids": [],
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


def test_next_number(client, sale) -> None:
    year = date.today().year
    expected = "2026002" if year == 2026 else f"{year}001"
    assert client.get("/invoices/next-number").get_json() == {"invoice_number": expected}


def test_payments_and_remaining(client, sale) -> None:
    invoice_id = sale["id"]

    resp = client.post("/payments", json={
        "proforma_invoice_id": invoice_id,
        "amount": "900",
        "payment_date": "2026-02-10",
        "is_deposit": True,
    })
    assert resp.status_code == 201
    payment_id = resp.get_json()["id"]

    assert client.get(f"/invoices/{invoice_id}/remaining").get_json() == {
        "invoice_id": invoice_id,
        "remaining": 3000.0,
    }

    detail = client.get(f"/invoices/{invoice_id}").get_json()
    assert detail["status"] == "partial"
    assert detail["deposit_paid"] is True
    assert detail["status_stale"] is False
    assert [p["amount"] for p in detail["payments"]] == [900.0]

    resp = client.delete(f"/payments/{payment_id}")
    assert resp.get_json()["status"] == "pending"
    assert resp.get_json()["deposit_paid"] is True


def test_payment_must_be_positive(client, sale) -> None:
    resp = client.post("/payments", json={"proforma_invoice_id": sale["id"], "amount": "0"})
    assert resp.status_code == 400


@pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_payment_amount_rejected(client, sale, amount) -> None:
    resp = client.post("/payments", json={"proforma_invoice_id": sale["id"], "amount": amount})

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"
    assert client.get("/payments").get_json() == []


@pytest.mark.parametrize("amount", ["NaN", "Infinity"])
def test_non_finite_expense_amount_rejected(client, amount) -> None:
    resp = client.post("/expenses", json={"description": "Liman", "amount": amount})
    assert resp.status_code == 400


def test_non_finite_shipping_cost_treated_as_free(client, sale) -> None:
    resp = client.post("/shipments", json={"proforma_invoice_id": sale["id"], "shipping_cost": "Infinity"})

    assert resp.status_code == 201
    assert resp.get_json()["shipping_cost"] == 0.0
    assert client.get("/expenses").get_json() == []


def test_shipment_flow(client, sale) -> None:
    resp = client.post("/shipments", json={
        "proforma_invoice_id": sale["id"],
        "shipping_company": "MSC",
        "shipping_cost": "1200",
    })
    assert resp.status_code == 201
    shipment = resp.get_json()
    assert shipment["destination_port"] == "Mombasa, Kenya"

    expenses = client.get("/expenses").get_json()
    assert [e["description"] for e in expenses] == ["Nakliye ucreti - MSC"]

    resp = client.patch(f"/shipments/{shipment['id']}", json={"status": "delivered"})
    assert resp.get_json()["status"] == "delivered"
    machine = client.get(f"/machines/{shipment['machine_id']}").get_json()
    assert machine["status"] == "sold"


def test_delete_invoice_releases_machines(client, sale) -> None:
    resp = client.delete(f"/invoices/{sale['id']}")

    assert resp.status_code == 200
    assert sorted(resp.get_json()["released_machine_ids"]) == sorted(it["machine_id"] for it in sale["items"])
    assert len(client.get("/machines?status=available").get_json()) == 2


def test_invoice_pdf_download(client, sale) -> None:
    resp = client.get(f"/invoices/{sale['id']}/pdf")

    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "application/pdf"
    assert resp.headers["Content-Disposition"] == 'attachment; filename="Proforma_2026001.pdf"'
    assert resp.data.startswith(b"%PDF")


def test_invoice_pdf_without_bank_is_422(client, sale) -> None:
    assert client.delete(f"/bank-accounts/{sale['bank_account_id']}").status_code == 204

    resp = client.get(f"/invoices/{sale['id']}/pdf")
    assert resp.status_code == 422
    assert resp.get_json()["error"] == "missing_relation"


def test_monthly_report_endpoints(client, sale, make_expense) -> None:
    make_expense("400", invoice_date=date(2026, 2, 7))

    months = client.get("/reports/monthly").get_json()
    assert [m["key"] for m in months] == ["2026-02"]
    assert months[0]["profit"] == 3500.0

    detail = client.get("/reports/monthly/2026/2").get_json()
    assert detail["label"] == "Şubat 2026"
    assert len(detail["expenses"]) == 1

    resp = client.get("/reports/monthly/2026/2/pdf")
    assert resp.status_code == 200
    assert resp.headers["Content-Disposition"] == 'attachment; filename="AZZA_Ekstre_Subat_2026.pdf"'

    assert client.get("/reports/monthly/2026/5").status_code == 404


def test_summary_and_dashboard(client, sale) -> None:
    summary = client.get("/reports/summary").get_json()
    assert summary["total_revenue"] == 3900.0
    assert summary["pending_collections"] == 3900.0

    dashboard = client.get("/dashboard").get_json()
    assert dashboard["total_invoices"] == 1
    assert dashboard["total_machines"] == 2
    assert dashboard["active_shipments"] == 0


def test_machine_file_upload_and_download(client, make_machine) -> None:
    machine = make_machine()

    resp = client.post(
        f"/machines/{machine.id}/images",
        data={"file": (io.BytesIO(b"jpeg bytes"), "front.jpg")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    url = resp.get_json()["url"]
    assert url.startswith(f"/files/gallery/{machine.id}/")

    assert client.get(url).data == b"jpeg bytes"
    assert client.get(f"/machines/{machine.id}").get_json()["images"] == [url]

    resp = client.delete(f"/machines/{machine.id}/images", json={"url": url})
    assert resp.get_json() == {"images": []}
    assert client.get(url).status_code == 404


def test_oversized_upload_rejected(app, client, make_machine) -> None:
    machine = make_machine()
    app.config["MAX_CONTENT_LENGTH"] = 1024

    resp = client.post(
        f"/machines/{machine.id}/documents",
        data={"file": (io.BytesIO(b"x" * 4096), "big.pdf")},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 413
    assert resp.get_json()["error"] == "too_large"
    assert client.get(f"/machines/{machine.id}").get_json()["documents"] == []


def test_upload_without_file(client, make_machine) -> None:
    resp = client.post(f"/machines/{make_machine().id}/documents", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
