"""Tests for the FastAPI HTTP surface."""

from storefront.models.catalog import Product
from storefront.services import payments


def _order_body(seed, *lines, **extra):
    body = {
        "userId": seed.user.id,
        "addressId": seed.address.id,
        "items": [{"productId": pid, "quantity": qty} for pid, qty in lines],
    }
    body.update(extra)
    return body


def _stock(db, product):
    db.expire_all()
    return db.get(Product, product.id).stock


class TestAuth:
    def test_login_sets_session(self, client, seed):
        response = client.post("/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["role"] == "customer"

        whoami = client.get("/auth/whoami").json()
        assert whoami["userId"] == seed.user.id

    def test_wrong_password(self, client, seed):
        response = client.post("/auth/login", json={"email": "ana@example.com", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_rate_limited_after_failures(self, client, seed):
        for _ in range(5):
            client.post("/auth/login", json={"email": "ana@example.com", "password": "nope"})
        response = client.post("/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        assert response.status_code == 401
        assert "Too many" in response.json()["message"]

    def test_orders_require_login(self, client, seed):
        response = client.post("/orders", json=_order_body(seed, (seed.product_x.id, 1)))
        assert response.status_code == 401

    def test_admin_routes_forbidden_for_customers(self, user_client, seed):
        assert user_client.get("/orders").status_code == 403
        assert user_client.patch("/orders/1", json={"status": "PAID"}).status_code == 403
        assert user_client.delete("/orders/1").status_code == 403


class TestOrdersApi:
    def test_create_order(self, user_client, db, seed):
        response = user_client.post("/orders", json=_order_body(seed, (seed.product_x.id, 2)))

        assert response.status_code == 201
        data = response.json()
        assert data["total"] == 200.0
        assert data["status"] == "PENDING"
        assert data["items"][0]["price"] == 100.0
        assert data["items"][0]["product"]["name"] == "Nevera"
        assert data["shippingCity"] == "Bogota"
        assert _stock(db, seed.product_x) == 3

    def test_insufficient_stock_is_conflict(self, user_client, db, seed):
        response = user_client.post("/orders", json=_order_body(seed, (seed.product_x.id, 6)))

        assert response.status_code == 409
        body = response.json()
        assert body["statusCode"] == 409
        assert body["error"] == "Conflict"
        assert "Nevera" in body["message"]
        assert body["path"] == "/orders"
        assert body["method"] == "POST"
        assert "timestamp" in body
        assert _stock(db, seed.product_x) == 5

    def test_empty_items_is_bad_request(self, user_client, seed):
        response = user_client.post("/orders", json=_order_body(seed))
        assert response.status_code == 400

    def test_zero_quantity_is_validation_error(self, user_client, seed):
        response = user_client.post("/orders", json=_order_body(seed, (seed.product_x.id, 0)))
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_foreign_address_is_not_found(self, user_client, seed):
        body = _order_body(seed, (seed.product_x.id, 1), addressId=seed.other_address.id)
        response = user_client.post("/orders", json=body)
        assert response.status_code == 404

    def test_customer_cannot_choose_status(self, user_client, db, seed):
        for status in ("PAID", "CANCELLED"):
            body = _order_body(seed, (seed.product_x.id, 2), status=status)
            response = user_client.post("/orders", json=body)
            assert response.status_code == 403

        assert user_client.get("/orders/mine").json() == []
        assert _stock(db, seed.product_x) == 5

    def test_customer_may_send_pending(self, user_client, seed):
        body = _order_body(seed, (seed.product_y.id, 1), status="PENDING")
        assert user_client.post("/orders", json=body).status_code == 201

    def test_admin_sets_initial_status(self, admin_client, seed):
        body = _order_body(seed, (seed.product_y.id, 1), status="PAID")
        response = admin_client.post("/orders", json=body)

        assert response.status_code == 201
        assert response.json()["status"] == "PAID"

    def test_admin_cannot_create_cancelled_order(self, admin_client, db, seed):
        body = _order_body(seed, (seed.product_x.id, 2), status="CANCELLED")
        response = admin_client.post("/orders", json=body)

        assert response.status_code == 400
        assert admin_client.get("/orders").json() == []
        assert _stock(db, seed.product_x) == 5

    def test_mine_and_detail(self, user_client, seed):
        created = user_client.post("/orders", json=_order_body(seed, (seed.product_y.id, 1))).json()

        mine = user_client.get("/orders/mine").json()
        assert [o["id"] for o in mine] == [created["id"]]
        assert user_client.get(f"/orders/{created['id']}").status_code == 200
        assert user_client.get("/orders/9999").status_code == 404

    def test_customer_cannot_see_foreign_order(self, user_client, admin_client, seed):
        body = _order_body(seed, (seed.product_y.id, 1), userId=seed.other.id,
                           addressId=seed.other_address.id)
        created = admin_client.post("/orders", json=body).json()

        assert user_client.get(f"/orders/{created['id']}").status_code == 404
        assert admin_client.get(f"/orders/{created['id']}").status_code == 200

    def test_admin_cancel_releases_stock(self, user_client, admin_client, db, seed):
        created = user_client.post("/orders", json=_order_body(seed, (seed.product_x.id, 2))).json()

        response = admin_client.patch(f"/orders/{created['id']}", json={"status": "CANCELLED"})

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert _stock(db, seed.product_x) == 5

    def test_admin_lists_and_removes(self, user_client, admin_client, seed):
        created = user_client.post("/orders", json=_order_body(seed, (seed.product_y.id, 1))).json()

        assert len(admin_client.get("/orders").json()) == 1
        assert len(admin_client.get(f"/orders/user/{seed.user.id}").json()) == 1
        assert admin_client.delete(f"/orders/{created['id']}").status_code == 200
        assert admin_client.get(f"/orders/{created['id']}").status_code == 404


class TestPaymentsApi:
    def _create_session(self, user_client, seed, qty=3):
        response = user_client.post("/payments/create-session", json=_order_body(seed, (seed.product_x.id, qty)))
        assert response.status_code == 201
        return response.json()

    def test_create_session(self, user_client, db, seed):
        data = self._create_session(user_client, seed)

        assert data["success"] is True
        assert data["epaycoData"]["p_extra1"] == str(data["orderId"])
        assert _stock(db, seed.product_x) == 2

    def test_inactive_product(self, user_client, seed):
        response = user_client.post("/payments/create-session", json=_order_body(seed, (seed.inactive.id, 1)))
        assert response.status_code == 400

    def test_webhook_is_public_and_form_encoded(self, user_client, client, db, seed):
        data = self._create_session(user_client, seed)
        client.get("/auth/logout")
        form = {
            "x_ref_payco": "REF-1",
            "x_transaction_id": "TX-9",
            "x_amount": "300.00",
            "x_currency_code": "COP",
            "x_cod_response": "4",
            "x_extra1": str(data["orderId"]),
            "x_something_new": "ignored",
        }
        form["x_signature"] = payments.compute_signature("REF-1", "TX-9", "300.00", "COP")

        response = client.post("/payments/epayco-confirmation", data=form)

        assert response.status_code == 200
        assert response.json()["received"] is True
        assert _stock(db, seed.product_x) == 5

        status = client.get(f"/payments/order-status/{data['orderId']}").json()
        assert status["status"] == "CANCELLED"
        assert status["paymentStatus"] == "FAILED"

    def test_webhook_json_replay(self, user_client, client, seed):
        data = self._create_session(user_client, seed)
        payload = {"x_cod_response": "1", "x_extra1": str(data["orderId"]), "x_ref_payco": "R"}

        first = client.post("/payments/epayco-confirmation", json=payload).json()
        second = client.post("/payments/epayco-confirmation", json=payload).json()

        assert first["message"].endswith("updated to PAID")
        assert second["message"] == "Order already processed"

    def test_webhook_non_ascii_signature(self, user_client, client, seed):
        data = self._create_session(user_client, seed)
        form = {"x_cod_response": "1", "x_extra1": str(data["orderId"]), "x_signature": "ñ"}

        response = client.post("/payments/epayco-confirmation", data=form)

        assert response.status_code == 200
        assert response.json()["received"] is True

    def test_webhook_without_reference(self, client, seed):
        response = client.post("/payments/epayco-confirmation", data={"x_cod_response": "1"})
        assert response.status_code == 400

    def test_order_status_unknown(self, client, seed):
        assert client.get("/payments/order-status/9999").status_code == 404


class TestNotificationsApi:
    def test_delivered_order_notifies_user(self, user_client, admin_client, seed):
        created = user_client.post("/orders", json=_order_body(seed, (seed.product_y.id, 1))).json()
        admin_client.patch(f"/orders/{created['id']}", json={"status": "DELIVERED"})

        items = user_client.get("/notifications").json()
        assert len(items) == 1
        assert items[0]["isRead"] is False

        user_client.patch(f"/notifications/{items[0]['id']}/read")
        assert user_client.get("/notifications").json()[0]["isRead"] is True

    def test_read_all(self, user_client, admin_client, seed):
        created = user_client.post("/orders", json=_order_body(seed, (seed.product_y.id, 1))).json()
        admin_client.patch(f"/orders/{created['id']}", json={"status": "DELIVERED"})

        assert user_client.patch("/notifications/read-all").json() == {"updated": 1}
