"""
Cache invalidation after admin actions and authentication events.
"""

from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

from shared.logging import get_logger
from ..caching.accounts_cache import AccountsCacheProtocol
from .models import AccountId

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class CacheInvalidator:
    """Drops cached account state after a successful mutation.

    Invalidation is coarse: the mutated account's own key is dropped, then
    every list snapshot and count in the segment is flushed, whatever
    filters they were built from. Failures are logged and never raised.
    """

    def __init__(self, cache: AccountsCacheProtocol, metrics: Optional["MetricsCollector"] = None):
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("accounts.cache_invalidator")

    async def _attempt(self, failure_message: str, func: Callable[..., Awaitable[Any]], *args, **context) -> bool:
        """Run one cache step; a raised error or a False result both count as failure."""
        try:
            result = await func(*args)
        except Exception as exc:
            self.logger.warning(failure_message, error=str(exc), **context)
            return False

        if result is False:
            self.logger.warning(failure_message, error="cache store unavailable", **context)
            return False
        return True

    async def invalidate(self, account_id: AccountId, action_label: str) -> bool:
        """Drop ``account_id`` and flush all lists and counts.

        Returns False when either step failed. Both steps are always attempted.
        """
        context = {"account_id": account_id, "action": action_label}

        account_key = self.cache.generate_account_key(account_id)
        self.logger.info("Dropping individual account cache", account_key=account_key, **context)
        dropped = await self._attempt("Failed to drop account cache", self.cache.drop_by_key, account_key, **context)

        self.logger.info("Dropping common list and count caches", **context)
        flushed = await self._attempt("Failed to invalidate accounts cache", self.cache.invalidate_all, **context)

        if not (dropped and flushed):
            return False

        self.logger.info(f"Successfully invalidated account cache after {action_label}", account_id=account_id)
        if self.metrics:
            self.metrics.increment_counter("cache_invalidations_total", action=action_label)
        return True

    async def invalidate_on_auth(self, context: str = "auth") -> bool:
        """Flush lists and counts after a login or password change."""
        flushed = await self._attempt(
            f"Failed to invalidate accounts cache during {context}",
            self.cache.invalidate_all,
            context=context
        )
        if not flushed:
            return False

        if self.metrics:
            self.metrics.increment_counter("cache_invalidations_total", action=context)
        return True
