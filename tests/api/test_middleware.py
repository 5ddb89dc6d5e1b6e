"""Tests for API middleware and health endpoints."""

from fastapi.testclient import TestClient


class TestRequestIdMiddleware:
    """Tests for request ID correlation middleware."""

    def test_generates_request_id_if_not_provided(self, client: TestClient) -> None:
        """Should generate request ID if not in request headers."""
        response = client.get("/health")
        assert response.status_code == 200
        assert "X-Request-ID" in response.headers
        # UUID format
        assert len(response.headers["X-Request-ID"]) == 36

    def test_uses_provided_request_id(self, client: TestClient) -> None:
        """Should use request ID from request headers."""
        custom_id = "custom-request-id-12345"
        response = client.get("/health", headers={"X-Request-ID": custom_id})
        assert response.headers["X-Request-ID"] == custom_id

    def test_error_body_carries_request_id(self, client: TestClient) -> None:
        """Error responses echo the request ID."""
        response = client.get("/orders/ORD-NOPE", headers={"X-Request-ID": "req-1"})
        assert response.status_code == 404
        assert response.json()["request_id"] == "req-1"


class TestHealth:
    """Tests for health endpoints."""

    def test_health_check(self, client: TestClient) -> None:
        """Health endpoint returns healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "storefront-api",
            "version": "0.1.0",
        }

    def test_readiness_check(self, client: TestClient) -> None:
        """Readiness endpoint pings the database."""
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "database": "ok"}

    def test_public_endpoints_need_no_credentials(self, client: TestClient) -> None:
        """Storefront endpoints work without any key."""
        assert client.get("/shipping/calculate", params={"pincode": "560001"}).status_code == 200
