"""
Shared fixtures for Newsletter Gateway tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from service_newsletter.app.adapters.mailchimp_client import MailchimpClient
from service_newsletter.app.caching.cache_store import CacheStore
from service_newsletter.app.main import NewsletterGatewayService
from service_newsletter.app.ratelimit.fixed_window import FixedWindowRateLimiter
from shared.config import ServiceConfig


def make_config(**overrides) -> ServiceConfig:
    values = {
        "service_name": "newsletter",
        "mailchimp_api_key": "secret-us21",
        "mailchimp_server_prefix": "us21",
        "mailchimp_audience_id": "aud123",
        "environment": "test",
        "rate_limit_enabled": False,
        "expose_error_details": False,
        "cache_ttl_seconds": 600,
        "_env_file": None,
    }
    values.update(overrides)
    return ServiceConfig(**values)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def mock_mailchimp():
    """Mailchimp client double with awaitable upstream calls."""
    client = MagicMock(spec=MailchimpClient)
    client.list_campaigns = AsyncMock()
    client.get_campaign = AsyncMock()
    client.get_campaign_content = AsyncMock()
    client.list_audiences = AsyncMock()
    client.add_subscriber = AsyncMock(return_value={"id": "m1", "status": "pending"})
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_rate_limiter():
    limiter = MagicMock(spec=FixedWindowRateLimiter)
    limiter.window_seconds = 900
    limiter.check_rate_limit = AsyncMock(return_value={
        "allowed": True,
        "current_count": 1,
        "limit": 100,
        "remaining": 99,
        "reset_in_seconds": 900,
    })
    limiter.close = AsyncMock()
    return limiter


@pytest.fixture
def cache_store():
    return CacheStore(default_ttl=600)


@pytest.fixture
def service(config, mock_mailchimp, cache_store, mock_rate_limiter):
    return NewsletterGatewayService(
        config,
        mailchimp_client=mock_mailchimp,
        cache_store=cache_store,
        rate_limiter=mock_rate_limiter,
    )


@pytest.fixture
def client(service):
    return TestClient(service.app)
