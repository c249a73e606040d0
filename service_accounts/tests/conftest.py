"""
Shared fixtures for Accounts Service tests.
"""

import fnmatch
import json
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock

import pytest

from service_accounts.app.adapters.backend_client import BackendClient
from service_accounts.app.caching.accounts_cache import AccountsCache


class InMemoryCacheStore:
    """Dictionary-backed stand-in for RedisCacheStore.

    Values are JSON round-tripped like the Redis store does, so tests see
    exactly what a real cache would hand back.
    """

    def __init__(self, segment: str = "accounts"):
        self.segment = segment
        self.data: Dict[str, str] = {}
        self.dropped: List[str] = []
        self.flushed: List[Sequence[str]] = []

    def _make_key(self, key: str) -> str:
        return f"{self.segment}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = self.data.get(self._make_key(key))
        return None if raw is None else json.loads(raw)

    async def get_many(self, keys: Sequence[str]) -> List[Optional[Any]]:
        return [await self.get(key) for key in keys]

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self.data[self._make_key(key)] = json.dumps(value)
        return True

    async def set_many(self, items: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        for key, value in items.items():
            await self.set(key, value, ttl)
        return True

    async def drop(self, key: str) -> bool:
        self.dropped.append(key)
        self.data.pop(self._make_key(key), None)
        return True

    async def drop_namespaces(self, namespaces: Sequence[str]) -> bool:
        self.flushed.append(tuple(namespaces))
        for namespace in namespaces:
            pattern = self._make_key(f"{namespace}:*")
            for full_key in [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]:
                del self.data[full_key]
        return True

    async def ping(self) -> bool:
        return True

    async def close(self):
        self.data.clear()

    def keys(self) -> List[str]:
        return sorted(self.data)


def make_account(account_id: int, status: str = "pending", **overrides) -> Dict[str, Any]:
    account = {
        "id": account_id,
        "firstName": f"First{account_id}",
        "lastName": f"Last{account_id}",
        "email": f"user{account_id}@example.com",
        "status": status,
        "admin": False,
        "areas": [{"id": 5, "name": "Thames", "primary": True}],
        "createdAt": "2025-01-01T10:00:00Z",
    }
    account.update(overrides)
    return account


def list_response(accounts: List[Dict[str, Any]], page: int = 1, total: Optional[int] = None,
                  page_size: int = 20, total_pages: Optional[int] = None) -> Dict[str, Any]:
    total = len(accounts) if total is None else total
    if total_pages is None:
        total_pages = (total + page_size - 1) // page_size
    return {
        "success": True,
        "status": 200,
        "data": {
            "data": accounts,
            "pagination": {"page": page, "totalPages": total_pages, "total": total, "pageSize": page_size},
        },
    }


@pytest.fixture
def cache_store():
    """In-memory cache store."""
    return InMemoryCacheStore()


@pytest.fixture
def accounts_cache(cache_store):
    """Accounts cache over the in-memory store."""
    return AccountsCache(cache_store)


@pytest.fixture
def backend():
    """Backend client double with async methods."""
    return AsyncMock(spec=BackendClient)


@pytest.fixture
def pending_accounts():
    return [make_account(i) for i in (101, 102, 103)]
