"""
Rate limiting package for the Newsletter Gateway.

Holds the fixed-window limiter guarding the /api/ routes and the helper
that derives a client identity from the request.
"""

from .fixed_window import FixedWindowRateLimiter, RateLimitMiddleware

__all__ = ["FixedWindowRateLimiter", "RateLimitMiddleware"]
