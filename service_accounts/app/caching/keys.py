"""
Cache key builders for the accounts cache segment.

Every key written by the accounts cache is produced here so that writers and
invalidators always agree on the exact string. List keys carry a version tag;
bump ``KEY_VERSION`` whenever the shape of a normalized list query changes so
old snapshots are never read back under the new shape.
"""

from typing import Union
from urllib.parse import quote

KEY_VERSION = "v1"

ACCOUNT_NAMESPACE = "account"
LIST_NAMESPACE = "list"
COUNT_NAMESPACE = "count"

# Namespaces cleared by a coarse flush. Individual accounts are dropped by key.
FLUSHABLE_NAMESPACES = (LIST_NAMESPACE, COUNT_NAMESPACE)


def _part(value: Union[str, int, None]) -> str:
    # ":" separates components, so it must never appear unescaped inside one
    return quote("" if value is None else str(value), safe="")


def account_key(account_id: Union[str, int]) -> str:
    """Key for a single account record: ``account:<id>``."""
    return f"{ACCOUNT_NAMESPACE}:{_part(account_id)}"


def list_key(status: str, search: str, area_id: str, page: int, page_size: int) -> str:
    """Key for the list snapshot answering one normalized query."""
    parts = [status, search, area_id, page, page_size]
    return ":".join([LIST_NAMESPACE, KEY_VERSION] + [_part(p) for p in parts])


def count_key(status: str) -> str:
    """Key for the cached total of accounts in ``status``."""
    return f"{COUNT_NAMESPACE}:{status}"
