"""Tests for the admin API."""

from fastapi.testclient import TestClient


class TestAdminAuth:
    """Tests for the admin key requirement."""

    def test_missing_key(self, client: TestClient) -> None:
        """Admin endpoints need the key."""
        response = client.get("/admin/shipping-rules")

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_wrong_key(self, client: TestClient) -> None:
        """A wrong key is rejected."""
        response = client.get("/admin/orders", headers={"X-Admin-Key": "guess"})

        assert response.status_code == 401

    def test_user_token_is_not_enough(self, client: TestClient, user_headers) -> None:
        """A customer bearer token does not open admin endpoints."""
        response = client.get("/admin/orders", headers=user_headers(1))

        assert response.status_code == 401


class TestShippingRules:
    """Tests for /admin/shipping-rules."""

    def test_create_and_get(self, client: TestClient, admin_headers) -> None:
        """Rules are created and read back."""
        created = client.post(
            "/admin/shipping-rules",
            json={"name": "Bengaluru", "pincodeFrom": 560000, "pincodeTo": 560099, "charge": 40},
            headers=admin_headers,
        )

        assert created.status_code == 201
        rule = created.json()["data"]
        assert rule["charge"] == "40.00"
        assert rule["isActive"] is True
        assert created.json()["overlapWith"] is None

        fetched = client.get(f"/admin/shipping-rules/{rule['id']}", headers=admin_headers)
        assert fetched.json()["data"]["name"] == "Bengaluru"

    def test_create_from_state(self, client: TestClient, admin_headers) -> None:
        """A state expands to its PIN zone."""
        response = client.post(
            "/admin/shipping-rules",
            json={"state": "MH", "charge": "60", "minOrderValue": "999"},
            headers=admin_headers,
        )

        rule = response.json()["data"]
        assert (rule["pincodeFrom"], rule["pincodeTo"]) == (400000, 459999)
        assert rule["minOrderValue"] == "999.00"

    def test_create_invalid(self, client: TestClient, admin_headers) -> None:
        """Inconsistent rules answer 400 INVALID_RULE."""
        response = client.post(
            "/admin/shipping-rules",
            json={"pincodeFrom": 560099, "pincodeTo": 560000, "charge": 40},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_RULE"

    def test_overlap_warning(self, client: TestClient, store, admin_headers) -> None:
        """Overlaps are accepted and reported."""
        existing = store.seed(lambda s: s.rule(pincode_from=560000, pincode_to=560099))

        response = client.post(
            "/admin/shipping-rules",
            json={"pincodeFrom": 560050, "pincodeTo": 560150, "charge": 10, "priority": 5},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["overlapWith"]["id"] == existing

    def test_update(self, client: TestClient, store, admin_headers) -> None:
        """PUT changes only the supplied fields."""
        rule_id = store.seed(lambda s: s.rule(charge="40.00", name="Old"))

        response = client.put(
            f"/admin/shipping-rules/{rule_id}",
            json={"charge": "55.00", "isActive": False},
            headers=admin_headers,
        )

        assert response.status_code == 200
        rule = response.json()["data"]
        assert rule["charge"] == "55.00"
        assert rule["isActive"] is False
        assert rule["name"] == "Old"

    def test_delete(self, client: TestClient, store, admin_headers) -> None:
        """DELETE answers 204 and the rule is gone."""
        rule_id = store.seed(lambda s: s.rule())

        deleted = client.delete(f"/admin/shipping-rules/{rule_id}", headers=admin_headers)
        missing = client.get(f"/admin/shipping-rules/{rule_id}", headers=admin_headers)

        assert deleted.status_code == 204
        assert missing.status_code == 404
        assert missing.json()["error_code"] == "RULE_NOT_FOUND"

    def test_list(self, client: TestClient, store, admin_headers) -> None:
        """Rules are listed with pagination metadata."""
        store.seed(lambda s: s.rule(priority=1, name="Low"))
        store.seed(lambda s: s.rule(priority=9, name="High"))

        response = client.get("/admin/shipping-rules", headers=admin_headers)

        data = response.json()
        assert [rule["name"] for rule in data["data"]] == ["High", "Low"]
        assert data["meta"]["total"] == 2


class TestAdminOrders:
    """Tests for /admin/orders."""

    def _place(self, client: TestClient, store, checkout_body) -> str:
        variant_id = store.seed(lambda s: s.variant(stock=None))
        session_id = client.post("/cart/items", json={"variantId": variant_id}).json()["sessionId"]
        return client.post("/checkout", json=checkout_body(session_id)).json()["orderNumber"]

    def test_list_with_filters(self, client: TestClient, store, checkout_body, admin_headers) -> None:
        """Orders filter by status."""
        number = self._place(client, store, checkout_body)

        pending = client.get("/admin/orders", params={"orderStatus": "pending"}, headers=admin_headers)
        placed = client.get("/admin/orders", params={"orderStatus": "placed"}, headers=admin_headers)

        assert [o["orderNumber"] for o in pending.json()["data"]] == [number]
        assert placed.json()["meta"]["total"] == 0

    def test_status_change(self, client: TestClient, store, checkout_body, admin_headers) -> None:
        """Valid transitions apply and appear in the history."""
        number = self._place(client, store, checkout_body)

        response = client.patch(
            f"/admin/orders/{number}/status",
            json={"status": "cancelled", "reason": "Out of region"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["orderStatus"] == "cancelled"
        assert data["statusHistory"][-1]["reason"] == "Out of region"

    def test_invalid_transition(self, client: TestClient, store, checkout_body, admin_headers) -> None:
        """Invalid transitions answer 409 with the allowed targets."""
        number = self._place(client, store, checkout_body)

        response = client.patch(
            f"/admin/orders/{number}/status",
            json={"status": "delivered"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "INVALID_TRANSITION"
        assert "cancelled" in data["details"]["allowed_transitions"]

    def test_unknown_status(self, client: TestClient, admin_headers) -> None:
        """Unknown status values are validation errors."""
        response = client.patch(
            "/admin/orders/ORD-1/status", json={"status": "teleported"}, headers=admin_headers
        )

        assert response.status_code == 422

    def test_unpaid_order_cannot_be_placed(
        self, client: TestClient, store, checkout_body, admin_headers
    ) -> None:
        """Fulfillment states need a paid order."""
        number = self._place(client, store, checkout_body)
        client.post("/payments/fake/create-order", json={"orderNumber": number})

        response = client.patch(
            f"/admin/orders/{number}/status", json={"status": "placed"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "PAYMENT_NOT_COMPLETED"

    def test_cancel_restocks(self, client: TestClient, store, checkout_body, admin_headers) -> None:
        """Cancelling puts the units back unless restock is false."""
        variant_id = store.seed(lambda s: s.variant(stock=4))
        numbers = []
        for _ in range(2):
            session_id = client.post(
                "/cart/items", json={"variantId": variant_id, "quantity": 2}
            ).json()["sessionId"]
            numbers.append(client.post("/checkout", json=checkout_body(session_id)).json()["orderNumber"])
        assert store.seed(lambda s: s.stock(variant_id)) == 0

        kept = client.patch(
            f"/admin/orders/{numbers[0]}/status",
            json={"status": "cancelled", "restock": False},
            headers=admin_headers,
        )
        returned = client.patch(
            f"/admin/orders/{numbers[1]}/status",
            json={"status": "cancelled"},
            headers=admin_headers,
        )

        assert kept.status_code == 200
        assert returned.status_code == 200
        assert store.seed(lambda s: s.stock(variant_id)) == 2
