"""
Accounts caching package.

Accounts, list snapshots and status counts live in one Redis segment. Reads
are cache-aside and every mutation invalidates coarsely; see
``domain.accounts_service`` and ``domain.invalidation``.
"""
