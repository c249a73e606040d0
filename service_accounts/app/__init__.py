"""
Accounts Service package for the Accounts Access Layer.

The service backs the admin user listings, enforcing:
- Cache-aside reads: list snapshots, per-account records and status counts
- Coarse invalidation: every admin action flushes lists and counts
- Circuit-breaking and retries for resilient backend calls

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: HTTP client for the backend REST API.
- app.caching: Key builders, Redis store and the accounts cache.
- app.domain: Listing queries, accounts service, invalidation, view models.
"""
