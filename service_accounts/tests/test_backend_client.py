"""
Unit tests for the backend API client.
"""

import time
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from shared.circuit_breaker import CircuitBreakerState
from shared.errors import ExternalServiceError, ServiceUnavailableError
from service_accounts.app.adapters.backend_client import BackendClient

from .conftest import list_response, make_account


class TestBackendClient:
    """Test cases for BackendClient."""

    @pytest.fixture
    def client(self):
        return BackendClient("http://backend:3001/", timeout=5.0)

    @pytest.fixture
    def no_sleep(self):
        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            yield mock_sleep

    @staticmethod
    def mock_request(mock_client, **kwargs):
        request = AsyncMock(**kwargs)
        mock_client.return_value.__aenter__.return_value.request = request
        return request

    @pytest.mark.asyncio
    async def test_list_accounts_success(self, client):
        """Test a successful listing call."""
        body = list_response([make_account(1)])["data"]
        params = {"status": "pending", "page": 1, "pageSize": 20}

        with patch("httpx.AsyncClient") as mock_client:
            request = self.mock_request(mock_client, return_value=httpx.Response(200, json=body))

            result = await client.list_accounts(params, "token-abc")

        assert result == {"success": True, "status": 200, "data": body}
        mock_client.assert_called_once_with(timeout=5.0)
        request.assert_awaited_once_with(
            "GET",
            "http://backend:3001/api/v1/accounts",
            params=params,
            json=None,
            headers={"Content-Type": "application/json", "Authorization": "Bearer token-abc"}
        )

    @pytest.mark.asyncio
    async def test_no_token_no_authorization_header(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            request = self.mock_request(mock_client, return_value=httpx.Response(200, json={}))

            await client.get_account(7)

        assert "Authorization" not in request.await_args.kwargs["headers"]

    @pytest.mark.parametrize("method_name,http_method,path", [
        ("get_account", "GET", "/api/v1/accounts/7"),
        ("approve_account", "PATCH", "/api/v1/accounts/7/approve"),
        ("delete_account", "DELETE", "/api/v1/accounts/7"),
        ("reactivate_account", "PATCH", "/api/v1/accounts/7/reactivate"),
        ("resend_invitation", "POST", "/api/v1/accounts/7/resend-invitation"),
    ])
    @pytest.mark.asyncio
    async def test_account_endpoints(self, client, method_name, http_method, path):
        with patch("httpx.AsyncClient") as mock_client:
            request = self.mock_request(mock_client, return_value=httpx.Response(200, json={"id": 7}))

            result = await getattr(client, method_name)(7, "token-abc")

        assert result["success"] is True
        method, url = request.await_args.args
        assert (method, url) == (http_method, f"http://backend:3001{path}")

    @pytest.mark.asyncio
    async def test_empty_success_body(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            self.mock_request(mock_client, return_value=httpx.Response(204))

            result = await client.delete_account(7)

        assert result == {"success": True, "status": 204, "data": None}

    @pytest.mark.asyncio
    async def test_error_response_with_errors(self, client):
        """Test that backend errors come back as a failure result."""
        body = {
            "errors": [{"errorCode": "ACCOUNT_NOT_FOUND", "message": "Account not found"}],
            "validationErrors": {"id": "invalid"},
        }
        with patch("httpx.AsyncClient") as mock_client:
            self.mock_request(mock_client, return_value=httpx.Response(404, json=body))

            result = await client.get_account(7)

        assert result == {
            "success": False,
            "status": 404,
            "errors": body["errors"],
            "validationErrors": {"id": "invalid"},
        }

    @pytest.mark.asyncio
    async def test_error_response_with_message(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            self.mock_request(
                mock_client,
                return_value=httpx.Response(403, json={"errorCode": "FORBIDDEN", "message": "Not allowed"})
            )

            result = await client.approve_account(7)

        assert result["errors"] == [{"errorCode": "FORBIDDEN", "message": "Not allowed"}]

    @pytest.mark.asyncio
    async def test_error_response_without_body(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            self.mock_request(mock_client, return_value=httpx.Response(503))

            result = await client.approve_account(7)

        assert result == {
            "success": False,
            "status": 503,
            "errors": [{"errorCode": None, "message": "HTTP 503"}],
        }

    @pytest.mark.asyncio
    async def test_error_response_with_html_body(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            self.mock_request(mock_client, return_value=httpx.Response(502, content=b"<html>bad gateway</html>"))

            result = await client.get_account(7)

        assert result["success"] is False
        assert result["errors"] == [{"errorCode": None, "message": "HTTP 502"}]

    @pytest.mark.asyncio
    async def test_invalid_json_on_success_raises(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            self.mock_request(mock_client, return_value=httpx.Response(200, content=b"<html>"))

            with pytest.raises(ExternalServiceError):
                await client.get_account(7)

    @pytest.mark.asyncio
    async def test_read_retried_on_transport_error(self, client, no_sleep):
        """Test that GETs retry through a transient connection failure."""
        with patch("httpx.AsyncClient") as mock_client:
            request = self.mock_request(
                mock_client,
                side_effect=[httpx.ConnectError("connection refused"), httpx.Response(200, json={"id": 7})]
            )

            result = await client.get_account(7)

        assert result["data"] == {"id": 7}
        assert request.await_count == 2
        no_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_read_raises_after_retries_exhausted(self, client, no_sleep):
        with patch("httpx.AsyncClient") as mock_client:
            request = self.mock_request(mock_client, side_effect=httpx.ConnectTimeout("timed out"))

            with pytest.raises(ExternalServiceError) as exc_info:
                await client.list_accounts({"status": "active", "page": 1, "pageSize": 20})

        assert request.await_count == 3
        assert exc_info.value.status_code == 502
        assert exc_info.value.service == "backend_api"

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self, client, no_sleep):
        with patch("httpx.AsyncClient") as mock_client:
            request = self.mock_request(mock_client, side_effect=httpx.ConnectError("connection refused"))

            with pytest.raises(ExternalServiceError):
                await client.approve_account(7)

        assert request.await_count == 1
        no_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_open_circuit_blocks_calls(self, client):
        client.circuit_breaker._state = CircuitBreakerState.OPEN
        client.circuit_breaker._last_failure_time = time.time()

        with patch("httpx.AsyncClient") as mock_client:
            with pytest.raises(ServiceUnavailableError) as exc_info:
                await client.get_account(7)

        mock_client.assert_not_called()
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_repeated_failures_open_circuit(self, client):
        with patch("httpx.AsyncClient") as mock_client:
            self.mock_request(mock_client, side_effect=httpx.ConnectError("connection refused"))

            for _ in range(client.circuit_breaker.failure_threshold):
                with pytest.raises(ExternalServiceError):
                    await client.delete_account(7)

        assert client.circuit_breaker.is_open()
