"""
HTTP surface, exercised through FastAPI's TestClient against a temporary
database file.
"""

import pytest
from fastapi.testclient import TestClient

from billing import printing, whatsapp
from billing.config import Settings, get_settings
from billing.main import app, get_store

from tests.factories import FakeResponse, Recorder

ORDER_BODY = {
    "customerName": "Asha Rao",
    "customerPhone": "9845000001",
    "customerAddress": "12 MG Road",
    "customerCity": "Mysuru",
    "items": [
        {"name": "Rice", "quantity": 2, "price": 50},
        {"name": "Blender", "quantity": 1, "price": 300},
    ],
    "deliveryPartnerName": "Express Delivery",
    "deliveryPartnerCharges": 80,
    "serviceFee": 200,
    "paymentMethod": "UPI",
}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        whatsapp_access_token="TOKEN",
        whatsapp_phone_number_id="12345",
        public_base_url="https://billing.example.com",
    )


@pytest.fixture
def client(store, settings, frozen_now):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def place(client, **overrides) -> dict:
    resp = client.post("/api/v1/orders", json={**ORDER_BODY, **overrides})
    assert resp.status_code == 200, resp.text
    return resp.json()["order"]


def invoice_for(client, order_id) -> dict:
    resp = client.post("/api/v1/invoices", json={"orderId": order_id})
    assert resp.status_code == 200, resp.text
    return resp.json()["invoice"]


class TestCustomersApi:
    def test_create_list_get_patch(self, client):
        resp = client.post("/api/v1/customers", json={
            "name": "Ravi", "phone": "1", "address": "x", "city": "Pune",
        })
        assert resp.status_code == 200
        customer = resp.json()["customer"]
        assert customer["createdAt"] == "2026-03-15T10:30:00"

        assert [c["id"] for c in client.get("/api/v1/customers").json()["customers"]] == [customer["id"]]
        assert client.get(f"/api/v1/customers/{customer['id']}").json()["customer"]["name"] == "Ravi"

        patched = client.patch(f"/api/v1/customers/{customer['id']}", json={"city": "Goa"}).json()
        assert patched["customer"]["city"] == "Goa"

    def test_missing_field_rejected(self, client, store):
        resp = client.post("/api/v1/customers", json={"name": "Ravi", "phone": "1", "address": "x"})
        assert resp.status_code == 422
        assert not store.exists()

    def test_unknown_customer_404(self, client):
        assert client.get("/api/v1/customers/cust_0").status_code == 404
        assert client.patch("/api/v1/customers/cust_0", json={"city": "Goa"}).status_code == 404

    def test_patch_null_field_is_ignored(self, client):
        customer = client.post("/api/v1/customers", json={
            "name": "Ravi", "phone": "1", "address": "x", "city": "Pune",
        }).json()["customer"]

        resp = client.patch(f"/api/v1/customers/{customer['id']}", json={"name": None, "city": "Goa"})
        assert resp.status_code == 200
        assert resp.json()["customer"]["name"] == "Ravi"
        assert resp.json()["customer"]["city"] == "Goa"


class TestOrdersApi:
    def test_place_order(self, client):
        order = place(client)
        assert order["id"] == "ORD-QBX-20260315-01"
        assert order["totalAmount"] == 680
        assert order["customer"]["phone"] == "9845000001"
        assert order["deliveryPartner"]["charges"] == 80
        assert order["status"] == "received"

    def test_list_and_get(self, client):
        order = place(client)
        assert [o["id"] for o in client.get("/api/v1/orders").json()["orders"]] == [order["id"]]
        assert client.get(f"/api/v1/orders/{order['id']}").json()["order"]["totalAmount"] == 680

    def test_delivery_partners_listed(self, client):
        partners = client.get("/api/v1/delivery-partners").json()["deliveryPartners"]
        assert [p["name"] for p in partners] == ["Express Delivery", "Speedy Shipping", "Fast Freight"]

    def test_unknown_partner_is_bad_request(self, client):
        body = {**ORDER_BODY, "deliveryPartnerId": "dp9"}
        del body["deliveryPartnerName"], body["deliveryPartnerCharges"]
        assert client.post("/api/v1/orders", json=body).status_code == 400
        assert client.get("/api/v1/customers").json()["customers"] == []

    def test_empty_items_rejected(self, client):
        assert client.post("/api/v1/orders", json={**ORDER_BODY, "items": []}).status_code == 422

    def test_patch_with_and_without_recalculation(self, client):
        order = place(client)
        items = [{"id": "i1", "name": "Rice", "quantity": 1, "price": 50}]

        kept = client.patch(f"/api/v1/orders/{order['id']}", json={"items": items}).json()["order"]
        assert kept["totalAmount"] == 680

        rebuilt = client.patch(
            f"/api/v1/orders/{order['id']}?recalculate=true", json={"items": items},
        ).json()["order"]
        assert rebuilt["totalAmount"] == 50 + 80 + 200

    def test_patch_null_field_is_ignored(self, client):
        order = place(client)
        resp = client.patch(f"/api/v1/orders/{order['id']}", json={"serviceFee": None})
        assert resp.status_code == 200
        assert resp.json()["order"]["serviceFee"] == 200
        assert resp.json()["order"]["totalAmount"] == 680

    def test_delete(self, client):
        order = place(client)
        assert client.delete(f"/api/v1/orders/{order['id']}").status_code == 200
        assert client.get(f"/api/v1/orders/{order['id']}").status_code == 404
        assert client.delete(f"/api/v1/orders/{order['id']}").status_code == 404


class TestInvoicesApi:
    def test_generate_and_fetch(self, client):
        order = place(client)
        invoice = invoice_for(client, order["id"])

        assert invoice["invoiceNumber"] == "INV-QBX-20260315"
        assert invoice["issuedDate"] == "2026-03-15T10:30:00"
        assert invoice["dueDate"] == "2026-03-22T10:30:00"
        assert invoice["pdfUrl"] == f"/api/v1/invoices/{invoice['id']}/download"
        assert invoice["isSent"] is False
        assert invoice["status"] == "pending"

        fetched = client.get(f"/api/v1/invoices/{invoice['id']}").json()["invoice"]
        assert fetched["order"]["id"] == order["id"]

    def test_unknown_order_404(self, client):
        assert client.post("/api/v1/invoices", json={"orderId": "nope"}).status_code == 404

    def test_status_update(self, client):
        invoice = invoice_for(client, place(client)["id"])
        resp = client.put(f"/api/v1/invoices/{invoice['id']}/status", json={"status": "completed"})
        assert resp.json()["invoice"]["status"] == "completed"

        bad = client.put(f"/api/v1/invoices/{invoice['id']}/status", json={"status": "lost"})
        assert bad.status_code == 422

    def test_delete_then_not_found(self, client):
        invoice = invoice_for(client, place(client)["id"])
        assert client.delete(f"/api/v1/invoices/{invoice['id']}").status_code == 200
        assert client.get("/api/v1/invoices").json()["invoices"] == []
        assert client.get(f"/api/v1/invoices/{invoice['id']}").status_code == 404

    def test_download_pdf(self, client):
        invoice = invoice_for(client, place(client)["id"])
        resp = client.get(invoice["pdfUrl"])

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert 'filename="INV-QBX-20260315.pdf"' in resp.headers["content-disposition"]
        assert resp.content.startswith(b"%PDF")


class TestDeliveryApi:
    def test_whatsapp_marks_invoice_sent(self, client, monkeypatch):
        post = Recorder()
        monkeypatch.setattr(whatsapp.requests, "post", post)
        invoice = invoice_for(client, place(client)["id"])

        resp = client.post(f"/api/v1/invoices/{invoice['id']}/whatsapp")

        assert resp.status_code == 200
        message = post.calls[0][1]["json"]["text"]["body"]
        assert f"https://billing.example.com/api/v1/invoices/{invoice['id']}/download" in message
        assert post.calls[0][1]["json"]["to"] == "9845000001"
        sent = client.get(f"/api/v1/invoices/{invoice['id']}").json()["invoice"]
        assert sent["isSent"] is True
        assert client.get("/api/v1/analytics").json()["analytics"]["pendingInvoices"] == 0

    def test_whatsapp_failure_is_bad_gateway(self, client, monkeypatch):
        monkeypatch.setattr(whatsapp.requests, "post", Recorder(FakeResponse(500)))
        invoice = invoice_for(client, place(client)["id"])

        resp = client.post(f"/api/v1/invoices/{invoice['id']}/whatsapp", json={"phoneNumber": "911"})
        assert resp.status_code == 502
        assert client.get(f"/api/v1/invoices/{invoice['id']}").json()["invoice"]["isSent"] is False

    def test_whatsapp_requires_credentials(self, client, settings):
        settings.whatsapp_access_token = None
        invoice = invoice_for(client, place(client)["id"])
        assert client.post(f"/api/v1/invoices/{invoice['id']}/whatsapp").status_code == 400

    def test_print_via_local_agent(self, client, monkeypatch):
        monkeypatch.setattr(printing.requests, "post", Recorder(FakeResponse(200, {"jobId": "job_9"})))
        invoice = invoice_for(client, place(client)["id"])

        resp = client.post(f"/api/v1/invoices/{invoice['id']}/print", json={
            "id": "p1", "name": "Counter", "type": "network", "ipAddress": "10.0.0.5",
        })
        assert resp.status_code == 200
        assert resp.json()["print"]["jobId"] == "job_9"

    def test_print_bluetooth_rejected(self, client):
        invoice = invoice_for(client, place(client)["id"])
        resp = client.post(f"/api/v1/invoices/{invoice['id']}/print", json={
            "id": "p1", "name": "Pocket", "type": "bluetooth",
        })
        assert resp.status_code == 400


class TestPaymentsAndAnalyticsApi:
    def test_payments_and_breakdown(self, client):
        order = place(client)
        for method in ("UPI", "UPI", "Cash", "Online"):
            resp = client.post("/api/v1/payments", json={"orderId": order["id"], "amount": 170, "method": method})
            assert resp.status_code == 200

        assert len(client.get(f"/api/v1/orders/{order['id']}/payments").json()["payments"]) == 4
        analytics = client.get("/api/v1/analytics").json()["analytics"]
        assert analytics["paymentBreakdown"] == {"UPI": 50, "Cash": 25, "Online": 25}
        assert analytics["revenue"] == {"today": 680, "week": 680, "month": 680}
        assert analytics["serviceFeeCollection"] == 200
        assert analytics["cityWiseOrders"] == [{"city": "Mysuru", "count": 1}]
        assert analytics["topCustomers"][0]["orderCount"] == 1
        assert analytics["topCustomers"][0]["totalSpent"] == 680

    def test_empty_analytics(self, client):
        analytics = client.get("/api/v1/analytics").json()["analytics"]
        assert analytics["paymentBreakdown"] == {"UPI": 0, "Cash": 0, "Online": 0}
        assert analytics["pendingInvoices"] == 0


class TestAdminApi:
    def test_reset(self, client):
        place(client)
        resp = client.post("/api/v1/admin/reset")
        assert resp.json() == {"status": "reset", "deliveryPartners": 3}
        assert client.get("/api/v1/orders").json()["orders"] == []
