"""
Adapters package for the Accounts Service.

Contains the HTTP client wrapper for the backend REST API. The adapter
encapsulates:

- Base URL and request shapes
- Retry policy and circuit breaker
- Normalizing responses into success/data or success/errors results

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .backend_client import BackendClient

__all__ = [
    "BackendClient",
]
