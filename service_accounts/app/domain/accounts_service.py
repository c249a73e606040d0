"""
Accounts service: cache-aside reads and cache-invalidating admin actions.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from shared.logging import get_logger
from ..adapters.backend_client import BackendClient
from ..caching.accounts_cache import AccountsCacheProtocol
from ..caching.keys import count_key
from .invalidation import CacheInvalidator
from .models import AccountId, AccountStatus, DEFAULT_PAGE, ListQuery

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class AccountsService:
    """Reads and mutates accounts through the backend API.

    Every read accepts an optional ``cache``. Without one the service is a
    plain pass-through to the backend. With one, list reads follow
    cache-aside:

    1. look up the list snapshot (member IDs + pagination) for the
       normalized query
    2. resolve every member through the per-account cache; the snapshot is
       only served if *all* members resolve
    3. otherwise fetch from the backend and, for a non-empty success, cache
       the accounts and then the snapshot

    Backend results, failures included, are returned to the caller exactly
    as the backend client produced them. Cache failures are logged and
    treated as misses.
    """

    def __init__(
        self,
        backend: BackendClient,
        default_page_size: int = 20,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.backend = backend
        self.default_page_size = default_page_size
        self.metrics = metrics
        self.logger = get_logger("accounts.service")

    async def _safe_cache_call(self, operation: str, func: Callable[..., Awaitable[Any]], *args) -> Any:
        try:
            return await func(*args)
        except Exception as exc:
            self.logger.warning("Cache operation failed, falling back to backend", operation=operation, error=str(exc))
            if self.metrics:
                self.metrics.increment_counter("cache_errors_total", operation=operation)
            return None

    def normalize_query(
        self,
        status: str,
        search: Optional[str] = None,
        area_id: Optional[AccountId] = None,
        page: Optional[int] = DEFAULT_PAGE,
        page_size: Optional[int] = None,
    ) -> ListQuery:
        return ListQuery.normalize(
            status, search, area_id, page, page_size, default_page_size=self.default_page_size
        )

    async def get_accounts(
        self,
        status: str,
        search: Optional[str] = None,
        area_id: Optional[AccountId] = None,
        page: Optional[int] = DEFAULT_PAGE,
        page_size: Optional[int] = None,
        access_token: Optional[str] = None,
        cache: Optional[AccountsCacheProtocol] = None,
    ) -> Dict[str, Any]:
        """Fetch one page of accounts, serving it from cache when fully cached."""
        query = self.normalize_query(status, search, area_id, page, page_size)

        if cache is not None:
            cached = await self._read_cached_list(query, cache)
            if cached is not None:
                return cached

        result = await self.backend.list_accounts(query.to_request_params(), access_token)

        if cache is not None and result.get("success"):
            await self._populate_list(query, result, cache)

        return result

    async def _read_cached_list(self, query: ListQuery, cache: AccountsCacheProtocol) -> Optional[Dict[str, Any]]:
        metadata = await self._safe_cache_call("get_list_metadata", cache.get_list_metadata, query)
        if metadata is None or not metadata.account_ids:
            return None

        account_ids = list(metadata.account_ids)
        accounts = await self._safe_cache_call("get_accounts_by_ids", cache.get_accounts_by_ids, account_ids)
        if not accounts or len(accounts) != len(account_ids):
            return None

        missing = [i for i, account in zip(account_ids, accounts) if account is None]
        if missing:
            # Never serve a partially hydrated page
            self.logger.debug(
                "List snapshot partially resolved, refetching",
                status=query.status,
                page=query.page,
                missing_ids=missing
            )
            return None

        self.logger.debug("Serving accounts list from cache", status=query.status, page=query.page)
        return {"success": True, "data": {"data": accounts, "pagination": metadata.pagination}}

    async def _populate_list(self, query: ListQuery, result: Dict[str, Any], cache: AccountsCacheProtocol):
        accounts, pagination = self._extract_page(result.get("data"))
        if not accounts:
            return

        account_ids = [account.get("id") for account in accounts]
        if any(account_id is None for account_id in account_ids):
            self.logger.warning("Backend returned accounts without IDs, not caching list", status=query.status)
            return

        # Accounts first, so a reader that finds the snapshot can resolve it
        await self._safe_cache_call("set_accounts", cache.set_accounts, accounts)
        await self._safe_cache_call(
            "set_list_metadata", cache.set_list_metadata, query, account_ids, pagination
        )
        self.logger.debug(
            "Cached accounts list",
            status=query.status,
            page=query.page,
            accounts_count=len(accounts)
        )

    @staticmethod
    def _extract_page(payload: Any) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """Pull ``(accounts, pagination)`` out of a list response body."""
        if isinstance(payload, list):
            return [a for a in payload if isinstance(a, dict)], {}
        if not isinstance(payload, dict):
            return [], {}
        accounts = payload.get("data") or []
        if not isinstance(accounts, list):
            return [], {}
        pagination = payload.get("pagination") or {}
        return [a for a in accounts if isinstance(a, dict)], pagination

    async def get_account_by_id(
        self,
        account_id: AccountId,
        access_token: Optional[str] = None,
        cache: Optional[AccountsCacheProtocol] = None,
    ) -> Dict[str, Any]:
        """Fetch one account, read-through the per-account cache."""
        if cache is not None:
            cached = await self._safe_cache_call("get_account", cache.get_account, account_id)
            if cached is not None:
                return {"success": True, "data": cached}

        result = await self.backend.get_account(account_id, access_token)

        if cache is not None and result.get("success") and result.get("data"):
            await self._safe_cache_call("set_account", cache.set_account, account_id, result["data"])

        return result

    async def get_count(
        self,
        status: str,
        access_token: Optional[str] = None,
        cache: Optional[AccountsCacheProtocol] = None,
    ) -> int:
        """Number of accounts in ``status``, from the smallest list call that reports a total."""
        key = count_key(status)

        if cache is not None:
            cached = await self._safe_cache_call("get_count", cache.get_by_key, key)
            if cached is not None and (isinstance(cached, bool) or not isinstance(cached, int) or cached < 0):
                self.logger.warning("Discarding malformed cached count", status=status, value=repr(cached))
                cached = None
            if self.metrics:
                self.metrics.record_cache_access("count", cached is not None)
            if cached is not None:
                return cached

        # Bypasses the list cache so no one-item page is ever snapshotted
        query = self.normalize_query(status, page=1, page_size=1)
        result = await self.backend.list_accounts(query.to_request_params(), access_token)

        count = 0
        if result.get("success"):
            data = result.get("data")
            pagination = data.get("pagination") if isinstance(data, dict) else None
            count = int((pagination or {}).get("total") or 0)

        if cache is not None:
            await self._safe_cache_call("set_count", cache.set_by_key, key, count)

        return count

    async def get_pending_count(
        self, access_token: Optional[str] = None, cache: Optional[AccountsCacheProtocol] = None
    ) -> int:
        return await self.get_count(AccountStatus.PENDING, access_token, cache)

    async def get_active_count(
        self, access_token: Optional[str] = None, cache: Optional[AccountsCacheProtocol] = None
    ) -> int:
        return await self.get_count(AccountStatus.ACTIVE, access_token, cache)

    async def approve_account(
        self, account_id: AccountId, access_token: Optional[str] = None, cache: Optional[AccountsCacheProtocol] = None
    ) -> Dict[str, Any]:
        return await self._run_admin_action(
            "approval", self.backend.approve_account, account_id, access_token, cache
        )

    async def delete_account(
        self, account_id: AccountId, access_token: Optional[str] = None, cache: Optional[AccountsCacheProtocol] = None
    ) -> Dict[str, Any]:
        return await self._run_admin_action(
            "deletion", self.backend.delete_account, account_id, access_token, cache
        )

    async def reactivate_account(
        self, account_id: AccountId, access_token: Optional[str] = None, cache: Optional[AccountsCacheProtocol] = None
    ) -> Dict[str, Any]:
        return await self._run_admin_action(
            "reactivation", self.backend.reactivate_account, account_id, access_token, cache
        )

    async def resend_invitation(
        self, account_id: AccountId, access_token: Optional[str] = None, cache: Optional[AccountsCacheProtocol] = None
    ) -> Dict[str, Any]:
        return await self._run_admin_action(
            "resend-invitation", self.backend.resend_invitation, account_id, access_token, cache
        )

    async def _run_admin_action(self, action_label, call, account_id, access_token, cache) -> Dict[str, Any]:
        self.logger.info("Admin action requested", action=action_label, account_id=account_id)

        result = await call(account_id, access_token)

        if not result.get("success"):
            self.logger.error(
                "Admin action failed",
                action=action_label,
                account_id=account_id,
                errors=result.get("errors")
            )
            return result

        self.logger.info("Admin action succeeded", action=action_label, account_id=account_id)

        if cache is not None:
            await CacheInvalidator(cache, metrics=self.metrics).invalidate(account_id, action_label)

        return result
