"""
Shared utilities for the Newsletter Gateway.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for transient upstream failures
- base_service: FastAPI app skeleton with health, metrics and error handlers

Do not import from service_* packages into shared/.
"""
