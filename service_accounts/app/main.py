"""
Accounts access service: admin user listings over a cached backend API.
"""

import asyncio
from typing import Any, Dict, Optional

from fastapi import Header, Query
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ExternalServiceError, ValidationError
from .adapters.backend_client import BackendClient
from .caching.accounts_cache import AccountsCache, AccountsCacheProtocol, create_accounts_cache
from .domain.accounts_service import AccountsService
from .domain.invalidation import CacheInvalidator
from .domain.models import AccountStatus
from .domain.user_listing import TAB_URLS, build_users_view_model, get_empty_users_view_model

LISTING_STATUSES = (AccountStatus.PENDING, AccountStatus.ACTIVE)

ADMIN_ACTIONS = {
    "approve": "approve_account",
    "delete": "delete_account",
    "reactivate": "reactivate_account",
    "resend-invitation": "resend_invitation",
}


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Access token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AccountsAccessService(BaseService):
    """Admin accounts service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        backend: Optional[BackendClient] = None,
        cache: Optional[AccountsCacheProtocol] = None,
    ):
        super().__init__("accounts", 8020, config=config)
        self.backend = backend or BackendClient(
            self.config.backend_api_url,
            timeout=self.config.backend_api_timeout
        )
        self.cache = cache if cache is not None else create_accounts_cache(self.config, metrics=self.metrics)
        self.accounts_service = AccountsService(
            self.backend,
            default_page_size=self.config.default_page_size,
            metrics=self.metrics
        )
        self.invalidator = CacheInvalidator(self.cache, metrics=self.metrics)

        self._setup_accounts_routes()

    async def on_shutdown(self):
        if isinstance(self.cache, AccountsCache):
            await self.cache.store.close()

    async def _check_dependencies(self) -> Dict[str, str]:
        if not isinstance(self.cache, AccountsCache):
            return {"cache": "disabled"}
        try:
            await self.cache.store.ping()
            return {"cache": "ok"}
        except Exception as e:
            self.logger.warning("Cache health check failed", error=str(e))
            return {"cache": "unavailable"}

    async def list_users(
        self,
        status: str,
        page: int,
        search: str,
        area_id: str,
        access_token: Optional[str],
    ) -> Dict[str, Any]:
        """Listing view model for one tab, with both tab counts."""
        base_url = TAB_URLS[status]
        filters = {"search": search, "areaId": area_id}
        page_size = self.config.default_page_size

        try:
            accounts_result, pending_count, active_count = await asyncio.gather(
                self.accounts_service.get_accounts(
                    status,
                    search=search,
                    area_id=area_id,
                    page=page,
                    page_size=page_size,
                    access_token=access_token,
                    cache=self.cache
                ),
                self.accounts_service.get_pending_count(access_token, self.cache),
                self.accounts_service.get_active_count(access_token, self.cache),
            )
        except ExternalServiceError as e:
            self.logger.error(f"Error loading {status} users page", error=e.message)
            return get_empty_users_view_model(
                filters=filters, current_tab=status, base_url=base_url, default_page_size=page_size
            )

        if not accounts_result.get("success"):
            self.logger.error(f"Failed to fetch {status} accounts", errors=accounts_result.get("errors"))
            return get_empty_users_view_model(
                filters=filters, current_tab=status, base_url=base_url, default_page_size=page_size
            )

        data = accounts_result.get("data") or {}
        return build_users_view_model(
            users=data.get("data") or [],
            pagination=data.get("pagination") or {},
            pending_count=pending_count,
            active_count=active_count,
            filters=filters,
            current_tab=status,
            base_url=base_url,
            default_page_size=page_size,
        )

    def _setup_accounts_routes(self):
        """Set up accounts routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": "accounts",
                "message": "Accounts Access Layer - Admin Accounts",
                "cache_enabled": self.cache.enabled,
            }

        @self.app.get("/admin/users/{status}")
        async def get_users(
            status: str,
            page: int = Query(default=1),
            search: str = Query(default=""),
            area_id: str = Query(default="", alias="areaId"),
            authorization: Optional[str] = Header(default=None),
        ):
            """Pending or active users listing view model."""
            if status not in LISTING_STATUSES:
                raise ValidationError(
                    f"Unknown listing status: {status}",
                    details={"allowed": list(LISTING_STATUSES)}
                )
            return await self.list_users(status, page, search, area_id, bearer_token(authorization))

        @self.app.get("/admin/users/account/{account_id}")
        async def get_account(account_id: str, authorization: Optional[str] = Header(default=None)):
            result = await self.accounts_service.get_account_by_id(
                account_id, bearer_token(authorization), self.cache
            )
            if not result.get("success"):
                self.logger.warning("Failed to fetch account details", account_id=account_id)
                return JSONResponse(status_code=result.get("status") or 502, content=result)
            return result

        @self.app.post("/admin/users/account/{account_id}/{action}")
        async def run_admin_action(account_id: str, action: str, authorization: Optional[str] = Header(default=None)):
            """Approve, delete, reactivate or resend the invitation for an account."""
            method_name = ADMIN_ACTIONS.get(action)
            if method_name is None:
                raise ValidationError(
                    f"Unknown account action: {action}",
                    details={"allowed": sorted(ADMIN_ACTIONS)}
                )

            handler = getattr(self.accounts_service, method_name)
            result = await handler(account_id, bearer_token(authorization), self.cache)
            if not result.get("success"):
                return JSONResponse(status_code=result.get("status") or 502, content=result)
            return result

        @self.app.post("/internal/auth-events/{context}")
        async def auth_event(context: str):
            """Flush listing caches after a login or password change."""
            invalidated = await self.invalidator.invalidate_on_auth(context)
            return {"context": context, "invalidated": invalidated}


def create_app():
    """Create FastAPI application."""
    service = AccountsAccessService()
    return service.app


if __name__ == "__main__":
    service = AccountsAccessService()
    service.run()
