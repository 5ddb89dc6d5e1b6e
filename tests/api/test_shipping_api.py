"""Tests for the public shipping API."""

from fastapi.testclient import TestClient


class TestCalculateShipping:
    """Tests for GET /shipping/calculate."""

    def test_charge(self, client: TestClient, store) -> None:
        """A covered pincode below the threshold is charged."""
        store.seed(lambda s: s.rule(charge="40.00", min_order_value="500.00", name="Bengaluru"))

        response = client.get("/shipping/calculate", params={"pincode": "560001", "subtotal": "200"})

        assert response.status_code == 200
        data = response.json()
        assert data["pincode"] == 560001
        assert data["shipping"] == "40.00"
        assert data["waived"] is False
        assert data["appliedRule"]["name"] == "Bengaluru"

    def test_waived(self, client: TestClient, store) -> None:
        """Meeting the threshold waives the charge."""
        store.seed(lambda s: s.rule(charge="40.00", min_order_value="150.00"))

        response = client.get("/shipping/calculate", params={"pincode": "560001", "subtotal": "200"})

        assert response.json()["shipping"] == "0.00"
        assert response.json()["waived"] is True

    def test_uncovered(self, client: TestClient) -> None:
        """No rule means free shipping and no applied rule."""
        response = client.get("/shipping/calculate", params={"pincode": "110001"})

        assert response.status_code == 200
        assert response.json()["shipping"] == "0.00"
        assert response.json()["appliedRule"] is None

    def test_invalid_pincode(self, client: TestClient) -> None:
        """Unusable pincodes answer 400."""
        response = client.get("/shipping/calculate", params={"pincode": "12"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_POSTAL_CODE"

    def test_negative_subtotal(self, client: TestClient) -> None:
        """Negative subtotals are a validation error."""
        response = client.get("/shipping/calculate", params={"pincode": "560001", "subtotal": "-1"})

        assert response.status_code == 422
