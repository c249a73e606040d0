"""
Accounts domain: listing queries, the cache-aside accounts service, cache
invalidation and the listing view models (pagination included).
"""
