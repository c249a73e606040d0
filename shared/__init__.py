"""
Shared utilities for the Accounts Access Layer.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for idempotent calls
- circuit_breaker: Resilient external call protection
- base_service: FastAPI application skeleton

Do not import from service packages into shared/.
"""
