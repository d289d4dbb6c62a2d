"""Tests for API middleware and error mapping."""

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
        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == custom_id

    def test_error_body_carries_request_id(self, client: TestClient) -> None:
        """Error responses echo the request ID."""
        response = client.get("/categories/unknown", headers={"X-Request-ID": "req-42"})
        assert response.status_code == 404
        assert response.json()["request_id"] == "req-42"


class TestErrorFormat:
    """Every error uses the same body."""

    def test_not_found(self, client: TestClient) -> None:
        """Domain NotFoundError maps to 404."""
        response = client.get("/products/missing")
        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "NOT_FOUND"
        assert data["details"]["entity_type"] == "Product"
        assert set(data) == {"error_code", "message", "details", "request_id"}

    def test_request_validation(self, client: TestClient) -> None:
        """Malformed request input maps to 400 VALIDATION_ERROR."""
        response = client.get("/products/popular", params={"limit": "lots"})
        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert data["details"]["errors"][0]["field"] == "limit"

    def test_unknown_route(self, client: TestClient) -> None:
        """Unknown routes use the error body too."""
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json()["error_code"] == "ERROR"
