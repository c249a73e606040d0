"""
Backend API client for account data.
"""

from typing import Any, Dict, Optional

import httpx

from shared.logging import get_logger
from shared.errors import ExternalServiceError, ServiceUnavailableError
from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.retry import RetryConfig, RetryError, retry_on_exception

ACCOUNTS_PATH = "/api/v1/accounts"

READ_RETRY = RetryConfig(max_attempts=3, base_delay=0.5, max_delay=5.0)


class BackendClient:
    """Client for the accounts endpoints of the backend REST API.

    Every call returns a result dictionary:

    - ``{"success": True, "status": 200, "data": <body>}`` for 2xx responses
    - ``{"success": False, "status": 4xx/5xx, "errors": [...]}`` otherwise,
      with ``validationErrors`` passed through when the backend sent them

    Transport failures (connection errors, timeouts, an open circuit) raise
    :class:`ExternalServiceError`. Reads retry on transport errors; writes do
    not.
    """

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger("accounts.backend_client")
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=30.0,
            name="backend_api",
            failure_exceptions=(httpx.HTTPError, RetryError)
        )

    async def list_accounts(self, params: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        """GET the accounts list for ``status``/``page``/``pageSize`` and optional filters."""
        return await self.request("GET", ACCOUNTS_PATH, params=params, access_token=access_token)

    async def get_account(self, account_id: Any, access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("GET", f"{ACCOUNTS_PATH}/{account_id}", access_token=access_token)

    async def approve_account(self, account_id: Any, access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("PATCH", f"{ACCOUNTS_PATH}/{account_id}/approve", access_token=access_token)

    async def delete_account(self, account_id: Any, access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("DELETE", f"{ACCOUNTS_PATH}/{account_id}", access_token=access_token)

    async def reactivate_account(self, account_id: Any, access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("PATCH", f"{ACCOUNTS_PATH}/{account_id}/reactivate", access_token=access_token)

    async def resend_invitation(self, account_id: Any, access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.request(
            "POST", f"{ACCOUNTS_PATH}/{account_id}/resend-invitation", access_token=access_token
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Execute a backend call with circuit breaker + error handling."""
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        send = self._send_with_retry if method == "GET" else self._send

        try:
            response = await self.circuit_breaker.call(send, method, url, params, json, headers)
        except CircuitBreakerOpenException as exc:
            self.logger.error("Backend circuit open", method=method, path=path)
            raise ServiceUnavailableError(service="backend_api", message=str(exc), details={"path": path})
        except (httpx.HTTPError, RetryError) as exc:
            self.logger.error("Backend API request failed", method=method, path=path, error=str(exc))
            raise ExternalServiceError(
                service="backend_api",
                message=str(exc),
                details={"method": method, "path": path}
            )

        return self._to_result(response, method, path)

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, params=params, json=json, headers=headers)

    @retry_on_exception((httpx.TransportError,), config=READ_RETRY)
    async def _send_with_retry(self, *args) -> httpx.Response:
        return await self._send(*args)

    def _to_result(self, response: httpx.Response, method: str, path: str) -> Dict[str, Any]:
        """Normalize a response into the success/data or success/errors shape."""
        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
            if response.is_success:
                raise ExternalServiceError(
                    service="backend_api",
                    message="Response body is not valid JSON",
                    details={"method": method, "path": path, "status_code": response.status_code}
                )

        if response.is_success:
            self.logger.debug("Backend API request succeeded", method=method, path=path, status_code=response.status_code)
            return {"success": True, "status": response.status_code, "data": body}

        self.logger.warning(
            "Backend API returned an error",
            method=method,
            path=path,
            status_code=response.status_code
        )
        result: Dict[str, Any] = {
            "success": False,
            "status": response.status_code,
            "errors": self._extract_errors(body, response),
        }
        if isinstance(body, dict) and body.get("validationErrors"):
            result["validationErrors"] = body["validationErrors"]
        return result

    @staticmethod
    def _extract_errors(body: Any, response: httpx.Response) -> list:
        if isinstance(body, dict):
            errors = body.get("errors")
            if isinstance(errors, list):
                return errors
            if errors:
                return [errors]
            message = body.get("message") or body.get("error")
            if message:
                return [{"errorCode": body.get("errorCode"), "message": message}]
        return [{"errorCode": None, "message": f"HTTP {response.status_code}"}]
