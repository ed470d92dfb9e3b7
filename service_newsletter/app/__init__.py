"""
Newsletter Gateway service package.

The gateway fronts the Mailchimp Marketing API, enforcing:
- Response caching: process-local TTL cache with manual invalidation
- Inbound rate limiting: fixed window per client, stored in Redis
- Payload shaping: typed upstream payloads mapped to a stable public form

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP client for the upstream API.
- app.caching: CacheStore and the cache-or-fetch policy.
- app.domain: Upstream payload models and shaping functions.
- app.ratelimit: Fixed-window limiter and request helper.
"""
