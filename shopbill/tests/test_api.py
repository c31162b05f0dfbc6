"""HTTP-level tests for the bill, order and report endpoints."""
from __future__ import annotations

import uuid
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from shopbill.app.core.security import create_access_token
from shopbill.app.models.bill import Bill
from shopbill.app.models.catalog import Product, Service
from shopbill.app.models.order import Order, OrderStatus
from shopbill.app.services.checkout import ShopContext
from shopbill.tests.conftest import auth, shop_headers


def _create(
    client: TestClient,
    token: str,
    context: ShopContext,
    body: dict,
):
    return client.post("/api/v1/bills", json=body, headers=shop_headers(token, context))


class TestAuth:
    def test_missing_token(self, client: TestClient) -> None:
        resp = client.get("/api/v1/bills")
        assert resp.status_code == 401

    def test_garbage_token(self, client: TestClient, context: ShopContext) -> None:
        resp = client.get("/api/v1/bills", headers=shop_headers("not-a-jwt", context))
        assert resp.status_code == 401

    def test_expired_token(self, client: TestClient, context: ShopContext) -> None:
        token = create_access_token(str(uuid.uuid4()), expires_delta=timedelta(minutes=-1))
        resp = client.get("/api/v1/bills", headers=shop_headers(token, context))
        assert resp.status_code == 401

    def test_subject_must_be_uuid(self, client: TestClient, context: ShopContext) -> None:
        token = create_access_token("cashier-1")
        resp = client.get("/api/v1/bills", headers=shop_headers(token, context))
        assert resp.status_code == 401


class TestBillEndpoints:
    def test_create_bill(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
        product_b: Product,
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [
                {"reference_id": str(product_a.id), "quantity": 2},
                {"reference_id": str(product_b.id)},
            ],
            "discount": "20",
            "payment_status": "partial",
            "paid_amount": "100",
            "customer": {"name": "Lakshmi", "phone": "9446000000"},
        })

        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["subtotal"] == "250.0000"
        assert data["total"] == "230.0000"
        assert data["payment_status"] == "PARTIAL"
        assert data["paid_amount"] == "100.0000"
        assert data["customer_name"] == "Lakshmi"
        assert len(data["transactions"]) == 1

    def test_create_with_service_and_tag(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
        service: Service,
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [
                {"reference_id": str(product_a.id), "tag": "free"},
                {"kind": "service", "reference_id": str(service.id), "unit_price": "35"},
            ],
            "payment_status": "PAID",
        })
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["total"] == "35.0000"
        assert data["items"][0]["display_name"] == "Basmati Rice 5kg (Free)"
        assert data["customer_name"] == "Walking Customer"

    def test_empty_cart(
        self, client: TestClient, operator_token: str, context: ShopContext
    ) -> None:
        resp = _create(client, operator_token, context, {"items": []})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cart is empty"

    def test_empty_cart_reported_before_bad_amounts(
        self, client: TestClient, operator_token: str, context: ShopContext
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [],
            "discount": "lots",
            "payment_status": "PARTIAL",
            "paid_amount": "abc",
        })
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cart is empty"

    def test_non_numeric_partial_amount(
        self,
        client: TestClient,
        db: Session,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
            "payment_status": "partial",
            "paid_amount": "abc",
        })
        assert resp.status_code == 400
        assert "valid partial amount" in resp.json()["detail"]
        assert db.query(Bill).count() == 0

    def test_non_numeric_discount(
        self,
        client: TestClient,
        db: Session,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
            "discount": "ten",
        })
        assert resp.status_code == 400
        assert "Discount" in resp.json()["detail"]
        assert db.query(Bill).count() == 0

    def test_unknown_payment_status(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
            "payment_status": "credit",
        })
        assert resp.status_code == 400
        assert "Unknown payment status" in resp.json()["detail"]

    def test_missing_shop_headers(
        self, client: TestClient, operator_token: str, product_a: Product
    ) -> None:
        resp = client.post(
            "/api/v1/bills",
            json={"items": [{"reference_id": str(product_a.id)}]},
            headers=auth(operator_token),
        )
        assert resp.status_code == 400
        assert "Select a business and shop" in resp.json()["detail"]

    def test_partial_over_total(
        self,
        client: TestClient,
        db: Session,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
            "payment_status": "PARTIAL",
            "paid_amount": "300",
        })
        assert resp.status_code == 400
        assert db.query(Bill).count() == 0

    def test_unknown_product(
        self, client: TestClient, operator_token: str, context: ShopContext
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [{"reference_id": str(uuid.uuid4())}],
        })
        assert resp.status_code == 404

    def test_zero_quantity_rejected_by_schema(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        resp = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id), "quantity": 0}],
        })
        assert resp.status_code == 422

    def test_edit_keeps_line_prices(
        self,
        client: TestClient,
        db: Session,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
        product_b: Product,
    ) -> None:
        created = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id), "quantity": 2}],
        }).json()

        # Catalog price moves after billing; the edited line keeps the billed price
        product_a.price = 140
        db.commit()

        resp = client.put(
            f"/api/v1/bills/{created['id']}",
            json={
                "items": [
                    {"reference_id": str(product_a.id), "quantity": 1},
                    {"reference_id": str(product_b.id), "quantity": 1},
                ],
                "payment_status": "PAID",
            },
            headers=shop_headers(operator_token, context),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert [i["unit_price"] for i in data["items"]] == ["100.0000", "50.0000"]
        assert data["total"] == "150.0000"
        assert data["payment_status"] == "PAID"
        assert data["issued_at"] == created["issued_at"]
        assert [t["note"] for t in data["transactions"]] == ["Adjusted on edit"]

    def test_edit_without_payment_fields_keeps_paid_status(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        created = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
            "payment_status": "PAID",
        }).json()

        resp = client.put(
            f"/api/v1/bills/{created['id']}",
            json={
                "items": [{"reference_id": str(product_a.id), "tag": "other"}],
                "customer": {"name": "Fathima"},
            },
            headers=shop_headers(operator_token, context),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["payment_status"] == "PAID"
        assert data["paid_amount"] == "100.0000"
        assert data["customer_name"] == "Fathima"
        assert [t["note"] for t in data["transactions"]] == ["Initial payment"]

    def test_edit_unknown_bill(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        resp = client.put(
            f"/api/v1/bills/{uuid.uuid4()}",
            json={"items": [{"reference_id": str(product_a.id)}]},
            headers=shop_headers(operator_token, context),
        )
        assert resp.status_code == 404

    def test_list_and_detail(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        created = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
            "payment_status": "PAID",
        }).json()
        headers = shop_headers(operator_token, context)

        listing = client.get("/api/v1/bills", headers=headers)
        assert listing.status_code == 200
        assert [b["id"] for b in listing.json()] == [created["id"]]

        filtered = client.get("/api/v1/bills?payment_status=unpaid", headers=headers)
        assert filtered.json() == []

        bad_filter = client.get("/api/v1/bills?payment_status=settled", headers=headers)
        assert bad_filter.status_code == 400

        detail = client.get(f"/api/v1/bills/{created['id']}", headers=headers)
        assert detail.status_code == 200
        assert detail.json()["ledger_total"] == "100.0000"

    def test_list_requires_shop(self, client: TestClient, operator_token: str) -> None:
        resp = client.get("/api/v1/bills", headers=auth(operator_token))
        assert resp.status_code == 400

    def test_detail_not_found(
        self, client: TestClient, operator_token: str, context: ShopContext
    ) -> None:
        resp = client.get(
            f"/api/v1/bills/{uuid.uuid4()}", headers=shop_headers(operator_token, context)
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Bill not found"


class TestPaymentEndpoints:
    def test_add_and_list_payments(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        headers = shop_headers(operator_token, context)
        created = _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
        }).json()

        resp = client.post(
            f"/api/v1/bills/{created['id']}/payments",
            json={"amount": "40", "payment_method": "card", "note": "Advance"},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["payment"]["amount"] == "40.0000"
        assert body["bill"]["payment_status"] == "PARTIAL"

        over = client.post(
            f"/api/v1/bills/{created['id']}/payments",
            json={"amount": "61"},
            headers=headers,
        )
        assert over.status_code == 400

        garbled = client.post(
            f"/api/v1/bills/{created['id']}/payments",
            json={"amount": "forty"},
            headers=headers,
        )
        assert garbled.status_code == 400
        assert garbled.json()["detail"] == "Please enter a valid amount"

        payments = client.get(f"/api/v1/bills/{created['id']}/payments", headers=headers)
        assert payments.status_code == 200
        assert [p["note"] for p in payments.json()] == ["Advance"]

    def test_payment_on_unknown_bill(
        self, client: TestClient, operator_token: str, context: ShopContext
    ) -> None:
        resp = client.post(
            f"/api/v1/bills/{uuid.uuid4()}/payments",
            json={"amount": "10"},
            headers=shop_headers(operator_token, context),
        )
        assert resp.status_code == 404


class TestOrderEndpoints:
    def test_draft_then_bill(
        self,
        client: TestClient,
        db: Session,
        operator_token: str,
        context: ShopContext,
        order: Order,
        product_a: Product,
    ) -> None:
        headers = shop_headers(operator_token, context)

        draft = client.get(f"/api/v1/orders/{order.id}/bill-draft", headers=headers)
        assert draft.status_code == 200
        assert draft.json()["subtotal"] == "230.0000"
        assert len(draft.json()["items"]) == 2

        resp = client.post(
            f"/api/v1/orders/{order.id}/bill",
            json={
                "items": [{"reference_id": str(product_a.id), "quantity": 2, "tag": "sample"}],
                "payment_status": "UNPAID",
            },
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["bill_number"].startswith("ORD-")
        assert data["total"] == "0.0000"
        assert data["source_order_id"] == str(order.id)

        db.refresh(order)
        assert order.status == OrderStatus.COMPLETED

        again = client.post(f"/api/v1/orders/{order.id}/bill", json={}, headers=headers)
        assert again.status_code == 400

    def test_bill_order_as_placed(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        order: Order,
    ) -> None:
        resp = client.post(
            f"/api/v1/orders/{order.id}/bill",
            json={},
            headers=shop_headers(operator_token, context),
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["total"] == "230.0000"

    def test_unknown_order(
        self, client: TestClient, operator_token: str, context: ShopContext
    ) -> None:
        resp = client.get(
            f"/api/v1/orders/{uuid.uuid4()}/bill-draft",
            headers=shop_headers(operator_token, context),
        )
        assert resp.status_code == 404


class TestReportEndpoints:
    def test_payment_status_report(
        self,
        client: TestClient,
        operator_token: str,
        context: ShopContext,
        product_a: Product,
    ) -> None:
        _create(client, operator_token, context, {
            "items": [{"reference_id": str(product_a.id)}],
            "payment_status": "PAID",
        })
        resp = client.get(
            "/api/v1/reports/payment-status",
            headers=shop_headers(operator_token, context),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["PAID"]["bill_count"] == 1
        assert data["PAID"]["total_collected"] == "100.0000"
        assert data["UNPAID"]["outstanding"] == "0.0000"
