"""
API tests for order placement, history, status transitions and tracking
"""

from datetime import datetime, timedelta

import pytest


def standard_order(user_id="u1", **overrides):
    order = {
        "user_id": user_id,
        "items": [{"product_id": "1", "quantity": 2, "price": 599}],
        "total_amount": 1198,
    }
    order.update(overrides)
    return order


def prescription_checkout(pharmacy_id="pharma1", **overrides):
    checkout = {
        "user_id": "mockUserId_MVP",
        "pharmacy_id": pharmacy_id,
        "image": "data:image/png;base64,iVBORw0KGgo=",
        "description": "Urgent refill needed.",
    }
    checkout.update(overrides)
    return checkout


class TestOrderCreation:
    """Test cases for placing orders"""

    def test_create_order_success(self, client):
        """New orders start Pending with progress 10"""
        response = client.post("/api/v1/orders/", json=standard_order())
        assert response.status_code == 201

        data = response.json()
        assert data["id"].startswith("ORD_")
        assert data["user_id"] == "u1"
        assert data["status"] == "Pending"
        assert data["progress"] == 10
        assert data["kind"] == "standard"
        assert len(data["items"]) == 1
        assert data["items"][0] == {"product_id": "1", "quantity": 2, "price": 599}
        assert "idempotency_key" not in data

    def test_client_cannot_choose_initial_status(self, client):
        """Status and progress in the payload are ignored"""
        response = client.post(
            "/api/v1/orders/",
            json=standard_order(status="Delivered", progress=100, id="chosen-id"),
        )
        assert response.status_code == 201

        data = response.json()
        assert data["status"] == "Pending"
        assert data["progress"] == 10
        assert data["id"] != "chosen-id"

    def test_create_order_with_delivery_fee(self, client):
        response = client.post(
            "/api/v1/orders/",
            json=standard_order(
                items=[
                    {"product_id": "7", "quantity": 1, "price": 995},
                    {"product_id": "8", "quantity": 2, "price": 450},
                ],
                total_amount=2045,
                delivery_fee=150,
            ),
        )
        assert response.status_code == 201
        assert response.json()["delivery_fee"] == 150

    def test_empty_items_rejected(self, client):
        response = client.post("/api/v1/orders/", json=standard_order(items=[], total_amount=0))
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert "at least one item" in response.json()["error"]["message"]

    def test_total_must_match_items(self, client):
        response = client.post("/api/v1/orders/", json=standard_order(total_amount=150))
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert "does not match" in response.json()["error"]["message"]

    def test_prescription_item_rejected_on_standard_order(self, client):
        response = client.post(
            "/api/v1/orders/",
            json=standard_order(
                items=[{"product_id": "PRESCRIPTION_UPLOAD", "quantity": 1, "price": 0}],
                total_amount=0,
            ),
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_invalid_order_data_fails(self, client):
        """Malformed payloads are rejected before reaching the store"""
        invalid_orders = [
            # Missing user
            {"items": [{"product_id": "1", "quantity": 1, "price": 599}], "total_amount": 599},
            # Negative total
            standard_order(total_amount=-100.0),
            # Zero quantity
            standard_order(items=[{"product_id": "1", "quantity": 0, "price": 599}]),
            # Negative price
            standard_order(items=[{"product_id": "1", "quantity": 1, "price": -1}]),
            # Unknown kind
            standard_order(kind="subscription"),
        ]

        for invalid_order in invalid_orders:
            response = client.post("/api/v1/orders/", json=invalid_order)
            assert response.status_code == 422

    def test_idempotent_retry_returns_same_order(self, client):
        headers = {"Idempotency-Key": "checkout-42"}
        first = client.post("/api/v1/orders/", json=standard_order(), headers=headers)
        second = client.post("/api/v1/orders/", json=standard_order(), headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["id"] == second.json()["id"]

        history = client.get("/api/v1/orders/", params={"user_id": "u1"}).json()
        assert history["count"] == 1

    def test_idempotency_key_is_scoped_to_user(self, client):
        headers = {"Idempotency-Key": "same-key"}
        first = client.post("/api/v1/orders/", json=standard_order("u1"), headers=headers)
        second = client.post("/api/v1/orders/", json=standard_order("u2"), headers=headers)

        assert first.json()["id"] != second.json()["id"]


class TestPrescriptionCheckout:
    """Test cases for the prescription upload flow"""

    def test_prescription_order_priced_at_delivery_fee(self, client):
        response = client.post("/api/v1/orders/prescriptions", json=prescription_checkout("pharma3"))
        assert response.status_code == 201

        data = response.json()
        assert data["kind"] == "prescription"
        assert data["status"] == "Pending"
        assert data["progress"] == 10
        assert data["pharmacy_id"] == "pharma3"
        assert data["total_amount"] == 155
        assert data["delivery_fee"] == 155
        assert data["items"] == [{"product_id": "PRESCRIPTION_UPLOAD", "quantity": 1, "price": 0}]
        assert data["prescription_details"]["description"] == "Urgent refill needed."

    def test_blank_description_dropped(self, client):
        response = client.post("/api/v1/orders/prescriptions", json=prescription_checkout(description="   "))
        assert response.status_code == 201
        assert response.json()["prescription_details"]["description"] is None

    def test_unknown_pharmacy_rejected(self, client):
        response = client.post("/api/v1/orders/prescriptions", json=prescription_checkout("pharma99"))
        assert response.status_code == 422
        assert "Unknown pharmacy" in response.json()["error"]["message"]

    def test_missing_image_rejected(self, client):
        checkout = prescription_checkout()
        del checkout["image"]
        response = client.post("/api/v1/orders/prescriptions", json=checkout)
        assert response.status_code == 422

    def test_generic_prescription_order_requires_details(self, client):
        response = client.post(
            "/api/v1/orders/",
            json=standard_order(
                kind="prescription",
                items=[{"product_id": "PRESCRIPTION_UPLOAD", "quantity": 1, "price": 0}],
                total_amount=150,
                delivery_fee=150,
                pharmacy_id="pharma1",
            ),
        )
        assert response.status_code == 422
        assert "prescription_details" in response.json()["error"]["message"]


class TestOrderRetrieval:
    """Test cases for reading orders back"""

    def test_get_order_round_trip(self, client):
        created = client.post(
            "/api/v1/orders/prescriptions", json=prescription_checkout()
        ).json()

        response = client.get(f"/api/v1/orders/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    def test_get_nonexistent_order_fails(self, client):
        response = client.get("/api/v1/orders/nonexistent")
        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()

    def test_history_is_filtered_and_newest_first(self, client):
        first = client.post("/api/v1/orders/", json=standard_order("u1")).json()
        client.post("/api/v1/orders/", json=standard_order("someone-else"))
        second = client.post("/api/v1/orders/", json=standard_order("u1")).json()

        response = client.get("/api/v1/orders/", params={"user_id": "u1"})
        assert response.status_code == 200

        data = response.json()
        assert data["count"] == 2
        assert all(order["user_id"] == "u1" for order in data["orders"])
        assert {order["id"] for order in data["orders"]} == {first["id"], second["id"]}
        dates = [datetime.fromisoformat(order["order_date"].replace("Z", "+00:00")) for order in data["orders"]]
        assert dates == sorted(dates, reverse=True)

    def test_history_for_unknown_user_is_empty(self, client):
        response = client.get("/api/v1/orders/", params={"user_id": "nobody"})
        assert response.status_code == 200
        assert response.json() == {"orders": [], "count": 0}

    def test_history_requires_user_id(self, client):
        response = client.get("/api/v1/orders/")
        assert response.status_code == 422


class TestStatusTransitions:
    """Test cases for operator-driven status changes"""

    def _create(self, client):
        return client.post("/api/v1/orders/", json=standard_order()).json()["id"]

    def _move(self, client, order_id, status, headers):
        return client.patch(f"/api/v1/orders/{order_id}/status", json={"status": status}, headers=headers)

    def test_operator_key_required(self, client):
        order_id = self._create(client)
        response = client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "Processing"})
        assert response.status_code == 401

    def test_wrong_operator_key_forbidden(self, client):
        order_id = self._create(client)
        response = self._move(client, order_id, "Processing", {"X-Operator-Key": "guess"})
        assert response.status_code == 403

    def test_full_delivery_lifecycle(self, client, operator_headers):
        order_id = self._create(client)
        expected = [
            ("Processing", 30),
            ("Shipped", 50),
            ("Out for Delivery", 75),
            ("Delivered", 100),
        ]
        for status, progress in expected:
            response = self._move(client, order_id, status, operator_headers)
            assert response.status_code == 200
            assert response.json()["status"] == status
            assert response.json()["progress"] == progress

    def test_forward_skip_allowed(self, client, operator_headers):
        order_id = self._create(client)
        response = self._move(client, order_id, "Out for Delivery", operator_headers)
        assert response.status_code == 200

    def test_backwards_transition_rejected(self, client, operator_headers):
        order_id = self._create(client)
        self._move(client, order_id, "Shipped", operator_headers)

        response = self._move(client, order_id, "Processing", operator_headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

    def test_error_body_has_utc_timestamp_and_no_internals(self, client, operator_headers):
        order_id = self._create(client)
        self._move(client, order_id, "Cancelled", operator_headers)

        error = self._move(client, order_id, "Shipped", operator_headers).json()["error"]
        assert set(error) == {"code", "message", "request_id", "timestamp", "endpoint", "method"}
        assert datetime.fromisoformat(error["timestamp"]).utcoffset() == timedelta(0)

    def test_same_status_rejected(self, client, operator_headers):
        order_id = self._create(client)
        response = self._move(client, order_id, "Pending", operator_headers)
        assert response.status_code == 409

    @pytest.mark.parametrize("terminal", ["Delivered", "Cancelled"])
    def test_terminal_states_are_final(self, client, operator_headers, terminal):
        order_id = self._create(client)
        assert self._move(client, order_id, terminal, operator_headers).status_code == 200

        for status in ["Pending", "Processing", "Shipped", "Out for Delivery", "Delivered", "Cancelled"]:
            response = self._move(client, order_id, status, operator_headers)
            assert response.status_code == 409

    def test_cancel_from_shipped(self, client, operator_headers):
        order_id = self._create(client)
        self._move(client, order_id, "Shipped", operator_headers)

        response = self._move(client, order_id, "Cancelled", operator_headers)
        assert response.status_code == 200
        assert response.json()["progress"] == 0

    def test_unknown_status_value_rejected(self, client, operator_headers):
        order_id = self._create(client)
        response = self._move(client, order_id, "Lost", operator_headers)
        assert response.status_code == 422

    def test_transition_on_missing_order(self, client, operator_headers):
        response = self._move(client, "nonexistent", "Processing", operator_headers)
        assert response.status_code == 404

    def test_delivery_progress_caps_at_ninety(self, client, operator_headers):
        order_id = self._create(client)
        self._move(client, order_id, "Out for Delivery", operator_headers)

        progress = []
        for _ in range(5):
            response = client.post(f"/api/v1/orders/{order_id}/progress", headers=operator_headers)
            assert response.status_code == 200
            progress.append(response.json()["progress"])

        assert progress == [80, 85, 90, 90, 90]

    def test_delivery_progress_requires_out_for_delivery(self, client, operator_headers):
        order_id = self._create(client)
        response = client.post(f"/api/v1/orders/{order_id}/progress", headers=operator_headers)
        assert response.status_code == 409


class TestOrderTracking:
    """Test cases for the tracking view"""

    def test_tracking_for_new_order(self, client):
        order_id = client.post("/api/v1/orders/", json=standard_order()).json()["id"]

        response = client.get(f"/api/v1/orders/{order_id}/tracking")
        assert response.status_code == 200
        assert response.json() == {
            "order_id": order_id,
            "status": "Pending",
            "progress": 10,
            "estimated_arrival": "Pending Confirmation",
            "pharmacy_name": "Selected Pharmacy",
            "courier": {"name": "Finding Courier", "rating": None},
        }

    def test_tracking_out_for_delivery(self, client, operator_headers):
        order_id = client.post("/api/v1/orders/prescriptions", json=prescription_checkout("pharma2")).json()["id"]
        client.patch(
            f"/api/v1/orders/{order_id}/status",
            json={"status": "Out for Delivery"},
            headers=operator_headers,
        )
        client.post(f"/api/v1/orders/{order_id}/progress", headers=operator_headers)

        data = client.get(f"/api/v1/orders/{order_id}/tracking").json()
        assert data["status"] == "Out for Delivery"
        assert data["progress"] == 80
        assert data["estimated_arrival"] == "25-40 min"
        assert data["pharmacy_name"] == "MediMart"
        assert data["courier"] == {"name": "Tana Bravo", "rating": 4.8}

    def test_tracking_missing_order(self, client):
        response = client.get("/api/v1/orders/nonexistent/tracking")
        assert response.status_code == 404


class TestServiceEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "Pharmacy Ordering API"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert datetime.fromisoformat(response.json()["timestamp"]).utcoffset() == timedelta(0)


if __name__ == "__main__":
    pytest.main([__file__])
