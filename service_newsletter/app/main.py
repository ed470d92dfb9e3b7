"""
Newsletter Gateway service.

Re-exposes a subset of the Mailchimp Marketing API under simplified routes,
caching reads in process memory so callers do not burn upstream quota.
"""

from typing import Any, Dict, Optional

from fastapi import Query, Request, Response
from pydantic import BaseModel

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import (
    ConfigError,
    GatewayException,
    RateLimitError,
    ResourceNotFoundError,
    ServiceError,
    UpstreamError,
    UpstreamNotFound,
    ValidationError,
)
from shared.metrics import MetricsCollector

from .adapters.mailchimp_client import MailchimpClient, MEMBER_EXISTS_TITLE
from .caching.cache_store import CacheStore
from .caching.proxy_cache import (
    AUDIENCE_STATS_KEY,
    CAMPAIGNS_LIST_KEY,
    CacheResult,
    ProxyCache,
    campaign_content_key,
    campaign_key,
)
from .domain.campaigns import (
    extract_content_html,
    shape_audience_stats,
    shape_campaign,
    shape_campaign_list,
)
from .ratelimit.fixed_window import FixedWindowRateLimiter, RateLimitMiddleware


class SubscribeRequest(BaseModel):
    email: Optional[str] = None


class CacheClearRequest(BaseModel):
    key: Optional[str] = None


class NewsletterGatewayService(BaseService):
    """Newsletter gateway service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        mailchimp_client: Optional[MailchimpClient] = None,
        cache_store: Optional[CacheStore] = None,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        super().__init__("newsletter", config, metrics)

        self.mailchimp_client = mailchimp_client or MailchimpClient(
            self.config.mailchimp_api_key,
            self.config.mailchimp_server_prefix,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.cache_store = cache_store or CacheStore(default_ttl=self.config.cache_ttl_seconds)
        self.proxy_cache = ProxyCache(self.cache_store, metrics=self.metrics)
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            self.config.redis_url,
            limit=self.config.rate_limit_max_requests,
            window_seconds=self.config.rate_limit_window_seconds,
        )
        self.rate_limit_middleware = RateLimitMiddleware(self.rate_limiter)

        self._setup_campaign_routes()
        self._setup_audience_routes()
        self._setup_cache_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.newsletter_service = self

    async def on_startup(self) -> None:
        self.logger.info(
            "Newsletter gateway started",
            port=self.config.port,
            environment=self.config.environment,
            mailchimp_configured=self.config.mailchimp_configured,
            cache_ttl_seconds=self.cache_store.default_ttl,
        )

    async def on_shutdown(self) -> None:
        self.logger.info("Shutting down newsletter gateway")
        await self.mailchimp_client.close()
        await self.rate_limiter.close()

    async def _check_request_limits(self, request: Request) -> Optional[Response]:
        """Reject /api/ requests over the inbound budget."""
        if not self.config.rate_limit_enabled or not self.rate_limit_middleware.applies_to(request):
            return None

        result = await self.rate_limit_middleware.check_request(request)
        request.state.rate_limit = result
        if result.get("allowed", True):
            return None

        self.metrics.increment_counter("rate_limit_hits_total", endpoint=self.route_label(request))
        response = self._error_response(RateLimitError())
        response.headers["Retry-After"] = str(result.get("retry_after", self.rate_limiter.window_seconds))
        self._set_rate_limit_headers(response, result)
        return response

    def _after_request(self, request: Request, response: Response) -> None:
        rate_result = getattr(request.state, "rate_limit", None)
        if rate_result:
            self._set_rate_limit_headers(response, rate_result)

    def _set_rate_limit_headers(self, response: Response, rate_result: Dict[str, Any]) -> None:
        """Propagate rate limiting metadata via standard headers."""
        limit = rate_result.get("limit")
        remaining = rate_result.get("remaining")
        reset = rate_result.get("reset_in_seconds")

        if limit is not None:
            response.headers["X-RateLimit-Limit"] = str(limit)
        if remaining is not None:
            response.headers["X-RateLimit-Remaining"] = str(remaining)
        if reset is not None:
            response.headers["X-RateLimit-Reset"] = str(reset)

    def _ensure_mailchimp_config(self) -> None:
        if not self.config.mailchimp_configured:
            raise ConfigError(
                "Incomplete Mailchimp configuration",
                details={"detail": "MAILCHIMP_API_KEY and MAILCHIMP_SERVER_PREFIX are required"},
            )

    def _upstream_failure(
        self,
        exc: UpstreamError,
        message: str,
        not_found_message: Optional[str] = None,
    ) -> GatewayException:
        """Translate an upstream error into the route's public error."""
        details = {
            "detail": exc.details.get("detail") or exc.message,
            "upstream_status": exc.status,
        }
        if not_found_message and isinstance(exc, UpstreamNotFound):
            return ResourceNotFoundError(not_found_message, details=details)
        return ServiceError(message, details=details)

    @staticmethod
    def _cached_response(response: Response, result: CacheResult) -> Dict[str, Any]:
        response.headers["X-Cache"] = "HIT" if result.cached else "MISS"
        return {"success": True, "data": result.value, "cached": result.cached}

    def _setup_campaign_routes(self):
        """Campaign listing, detail and content routes."""

        @self.app.get("/api/campaigns")
        async def list_campaigns(
            response: Response,
            count: int = Query(5, ge=1, le=1000),
            status: str = Query("sent", min_length=1),
            sort_field: str = Query("send_time", alias="sortField", min_length=1),
            sort_dir: str = Query("DESC", alias="sortDir", pattern="^(ASC|DESC)$"),
        ):
            """Recent campaigns. Query parameters only shape the fetch that fills the cache."""
            self._ensure_mailchimp_config()

            async def fetch():
                return await self.mailchimp_client.list_campaigns(
                    count=count,
                    status=status,
                    sort_field=sort_field,
                    sort_dir=sort_dir,
                )

            try:
                result = await self.proxy_cache.get_or_fetch(
                    CAMPAIGNS_LIST_KEY, fetch, shape_campaign_list, cache_type="campaigns_list"
                )
            except UpstreamError as exc:
                raise self._upstream_failure(exc, "Failed to fetch campaigns") from exc

            return self._cached_response(response, result)

        @self.app.get("/api/campaigns/{campaign_id}")
        async def get_campaign(campaign_id: str, response: Response):
            """Single campaign, reshaped."""
            self._ensure_mailchimp_config()

            try:
                result = await self.proxy_cache.get_or_fetch(
                    campaign_key(campaign_id),
                    lambda: self.mailchimp_client.get_campaign(campaign_id),
                    shape_campaign,
                    cache_type="campaign",
                )
            except UpstreamError as exc:
                raise self._upstream_failure(exc, "Internal server error", "Campaign not found") from exc

            return self._cached_response(response, result)

        @self.app.get("/api/campaigns/{campaign_id}/content")
        async def get_campaign_content(campaign_id: str, response: Response):
            """Rendered HTML of a campaign."""
            self._ensure_mailchimp_config()
            if not campaign_id.strip():
                raise ValidationError("Missing campaignId parameter")

            try:
                result = await self.proxy_cache.get_or_fetch(
                    campaign_content_key(campaign_id),
                    lambda: self.mailchimp_client.get_campaign_content(campaign_id),
                    extract_content_html,
                    cache_type="campaign_content",
                )
            except UpstreamError as exc:
                raise self._upstream_failure(exc, "Error getting campaign content", "Campaign not found") from exc

            return self._cached_response(response, result)

    def _setup_audience_routes(self):
        """Audience statistics and newsletter subscription."""

        @self.app.get("/api/audience/stats")
        async def audience_stats(response: Response):
            self._ensure_mailchimp_config()

            try:
                result = await self.proxy_cache.get_or_fetch(
                    AUDIENCE_STATS_KEY,
                    self.mailchimp_client.list_audiences,
                    shape_audience_stats,
                    cache_type="audience_stats",
                )
            except UpstreamError as exc:
                raise self._upstream_failure(exc, "Error getting statistics") from exc

            return self._cached_response(response, result)

        @self.app.post("/api/newsletter/subscribe")
        async def subscribe(payload: Optional[SubscribeRequest] = None):
            """Add an address to the configured audience (double opt-in). Never cached."""
            self._ensure_mailchimp_config()

            email = (payload.email or "").strip() if payload else ""
            if not email:
                raise ValidationError("Email address is required")

            if not self.config.audience_configured:
                raise ConfigError("Newsletter audience ID not configured")
            audience_id = self.config.mailchimp_audience_id

            try:
                await self.mailchimp_client.add_subscriber(audience_id, email, status="pending")
            except UpstreamError as exc:
                if exc.status == 400 and exc.title == MEMBER_EXISTS_TITLE:
                    self.logger.info("Subscription for existing member", audience_id=audience_id)
                    raise GatewayException(
                        "MEMBER_EXISTS",
                        "Email already subscribed.",
                        details={"detail": exc.details.get("detail") or exc.message},
                        status_code=500,
                    ) from exc
                raise self._upstream_failure(exc, "An error occurred while processing your request.") from exc

            self.logger.info("Subscriber added", audience_id=audience_id)
            return {
                "success": True,
                "message": "Form submitted successfully! Please confirm your email",
            }

    def _setup_cache_routes(self):
        """Manual invalidation and introspection."""

        @self.app.post("/api/cache/clear")
        async def clear_cache(payload: Optional[CacheClearRequest] = None):
            key = payload.key if payload else None
            message = self.proxy_cache.clear(key)
            return {"success": True, "message": message}

        @self.app.get("/api/cache/info")
        async def cache_info():
            return {"success": True, "data": self.proxy_cache.info()}


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = NewsletterGatewayService(config, **kwargs)
    return service.app


def run():
    """Console entry point."""
    NewsletterGatewayService().run()


if __name__ == "__main__":
    run()
