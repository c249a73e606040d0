"""
Accounts cache: list snapshots, individual accounts and status counts.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from shared.config import BaseConfig
from shared.logging import get_logger
from . import keys
from .cache_store import RedisCacheStore
from ..domain.models import AccountId, ListMetadata, ListQuery

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class AccountsCacheProtocol(Protocol):
    """Operations the accounts service needs from a cache."""

    enabled: bool

    def generate_account_key(self, account_id: AccountId) -> str: ...

    async def get_list_metadata(self, query: ListQuery) -> Optional[ListMetadata]: ...

    async def set_list_metadata(
        self, query: ListQuery, account_ids: Sequence[AccountId], pagination: Dict[str, Any]
    ) -> None: ...

    async def get_accounts_by_ids(self, account_ids: Sequence[AccountId]) -> List[Optional[Dict[str, Any]]]: ...

    async def set_accounts(self, accounts: Sequence[Dict[str, Any]]) -> None: ...

    async def get_account(self, account_id: AccountId) -> Optional[Dict[str, Any]]: ...

    async def set_account(self, account_id: AccountId, account: Dict[str, Any]) -> None: ...

    async def get_by_key(self, key: str) -> Optional[Any]: ...

    async def set_by_key(self, key: str, value: Any) -> None: ...

    async def drop_by_key(self, key: str) -> bool: ...

    async def invalidate_all(self) -> bool: ...


class AccountsCache:
    """Accounts cache over a Redis store.

    Accounts are cached one key per ID, so two list snapshots that share a
    member share one cached copy of it. A list snapshot only stores the
    member IDs and the pagination facts (see :class:`ListMetadata`).
    """

    enabled = True

    def __init__(self, store: RedisCacheStore, metrics: Optional["MetricsCollector"] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("accounts.cache")

    def _record_access(self, cache_type: str, hit: bool, **context):
        self.logger.debug("Cache hit" if hit else "Cache miss", cache_type=cache_type, **context)
        if self.metrics:
            self.metrics.record_cache_access(cache_type, hit)

    def generate_account_key(self, account_id: AccountId) -> str:
        return keys.account_key(account_id)

    async def get_by_key(self, key: str) -> Optional[Any]:
        return await self.store.get(key)

    async def set_by_key(self, key: str, value: Any) -> None:
        await self.store.set(key, value)

    async def drop_by_key(self, key: str) -> bool:
        """Delete one key; False when the store could not."""
        return await self.store.drop(key)

    async def get_list_metadata(self, query: ListQuery) -> Optional[ListMetadata]:
        key = query.cache_key()
        cached = await self.store.get(key)
        if cached is None:
            self._record_access("list", False, key=key)
            return None

        try:
            metadata = ListMetadata.model_validate(cached)
        except PydanticValidationError:
            self.logger.warning("Discarding malformed list snapshot", key=key)
            await self.store.drop(key)
            self._record_access("list", False, key=key)
            return None

        self._record_access("list", True, key=key)
        return metadata

    async def set_list_metadata(
        self, query: ListQuery, account_ids: Sequence[AccountId], pagination: Dict[str, Any]
    ) -> None:
        metadata = ListMetadata(account_ids=list(account_ids), pagination=dict(pagination))
        await self.store.set(query.cache_key(), metadata.model_dump(by_alias=True))

    async def get_account(self, account_id: AccountId) -> Optional[Dict[str, Any]]:
        account = await self.store.get(self.generate_account_key(account_id))
        self._record_access("account", account is not None, account_id=account_id)
        return account

    async def set_account(self, account_id: AccountId, account: Dict[str, Any]) -> None:
        await self.store.set(self.generate_account_key(account_id), account)

    async def get_accounts_by_ids(self, account_ids: Sequence[AccountId]) -> List[Optional[Dict[str, Any]]]:
        accounts = await self.store.get_many([self.generate_account_key(i) for i in account_ids])
        missing = sum(1 for account in accounts if account is None)
        self._record_access("account", missing == 0, requested=len(account_ids), missing=missing)
        return accounts

    async def set_accounts(self, accounts: Sequence[Dict[str, Any]]) -> None:
        items = {
            self.generate_account_key(account["id"]): account
            for account in accounts
            if account.get("id") is not None
        }
        await self.store.set_many(items)

    async def invalidate_all(self) -> bool:
        """Flush all list snapshots and counts. Account records are kept."""
        if not await self.store.drop_namespaces(keys.FLUSHABLE_NAMESPACES):
            return False
        self.logger.info("Invalidated list and count caches", segment=self.store.segment)
        return True


class NullAccountsCache:
    """Cache used when caching is disabled: every read misses, writes are dropped."""

    enabled = False

    def generate_account_key(self, account_id: AccountId) -> str:
        return keys.account_key(account_id)

    async def get_by_key(self, key: str) -> Optional[Any]:
        return None

    async def set_by_key(self, key: str, value: Any) -> None:
        return None

    async def drop_by_key(self, key: str) -> bool:
        return True

    async def get_list_metadata(self, query: ListQuery) -> Optional[ListMetadata]:
        return None

    async def set_list_metadata(
        self, query: ListQuery, account_ids: Sequence[AccountId], pagination: Dict[str, Any]
    ) -> None:
        return None

    async def get_account(self, account_id: AccountId) -> Optional[Dict[str, Any]]:
        return None

    async def set_account(self, account_id: AccountId, account: Dict[str, Any]) -> None:
        return None

    async def get_accounts_by_ids(self, account_ids: Sequence[AccountId]) -> List[Optional[Dict[str, Any]]]:
        return [None] * len(account_ids)

    async def set_accounts(self, accounts: Sequence[Dict[str, Any]]) -> None:
        return None

    async def invalidate_all(self) -> bool:
        return True


def create_accounts_cache(
    config: BaseConfig,
    metrics: Optional["MetricsCollector"] = None,
    store: Optional[RedisCacheStore] = None,
) -> AccountsCacheProtocol:
    """Build the accounts cache for ``config``; a null cache unless Redis is configured."""
    if not config.cache_enabled:
        get_logger("accounts.cache").info("Accounts cache disabled", engine=config.cache_engine)
        return NullAccountsCache()

    if store is None:
        store = RedisCacheStore(
            config.redis_url,
            segment=config.cache_segment,
            ttl_seconds=config.cache_ttl_seconds,
            metrics=metrics,
        )
    return AccountsCache(store, metrics=metrics)
