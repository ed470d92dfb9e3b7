"""
Mailchimp Marketing API client for the Newsletter Gateway.
"""

import time
from urllib.parse import quote
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from shared.errors import UpstreamError, UpstreamNotFound, UpstreamOther
from shared.retry import retry_on_exception, RetryConfig

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CAMPAIGN_LIST_FIELDS = [
    "campaigns.settings.subject_line",
    "campaigns.send_time",
    "campaigns.id",
    "campaigns.variate_settings.combinations",
    "campaigns.variate_settings.subject_lines",
]

MEMBER_EXISTS_TITLE = "Member Exists"

_TRANSIENT = (httpx.TransportError,)
_READ_RETRY = RetryConfig(max_attempts=3, base_delay=0.5, max_delay=5.0)


def _segment(value: str) -> str:
    """Encode ``value`` as a single path segment, dot segments included."""
    encoded = quote(value, safe="")
    if encoded in (".", ".."):
        return encoded.replace(".", "%2E")
    return encoded


class MailchimpClient:
    """Thin async client for the Mailchimp Marketing API (v3.0).

    Non-2xx responses become ``UpstreamNotFound`` (404) or ``UpstreamOther``
    carrying the upstream status and problem ``title``. Reads are retried on
    transport errors; writes are not.
    """

    def __init__(
        self,
        api_key: Optional[str],
        server_prefix: Optional[str],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.api_key = api_key
        self.server_prefix = server_prefix
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("newsletter.mailchimp_client")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return f"https://{self.server_prefix}.api.mailchimp.com/3.0"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                auth=("anystring", self.api_key or ""),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def list_campaigns(
        self,
        count: int = 5,
        status: str = "sent",
        sort_field: str = "send_time",
        sort_dir: str = "DESC",
    ) -> Dict[str, Any]:
        params = {
            "fields": ",".join(CAMPAIGN_LIST_FIELDS),
            "count": count,
            "status": status,
            "sort_field": sort_field,
            "sort_dir": sort_dir,
        }
        return await self._read("list_campaigns", "/campaigns", params)

    async def get_campaign(self, campaign_id: str) -> Dict[str, Any]:
        return await self._read("get_campaign", f"/campaigns/{_segment(campaign_id)}")

    async def get_campaign_content(self, campaign_id: str) -> Dict[str, Any]:
        return await self._read("get_campaign_content", f"/campaigns/{_segment(campaign_id)}/content")

    async def list_audiences(self) -> Dict[str, Any]:
        return await self._read("list_audiences", "/lists")

    async def add_subscriber(self, audience_id: str, email: str, status: str = "pending") -> Dict[str, Any]:
        """Add ``email`` to the audience; double opt-in by default."""
        body = {"email_address": email, "status": status}
        return await self._request("add_subscriber", "POST", f"/lists/{_segment(audience_id)}/members", json=body)

    async def _read(self, operation: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request_with_retry(operation, "GET", path, params=params)

    @retry_on_exception(_TRANSIENT, config=_READ_RETRY)
    async def _send_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        return await client.request(method, path, **kwargs)

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        return await client.request(method, path, **kwargs)

    async def _request_with_retry(self, operation: str, method: str, path: str, **kwargs) -> Dict[str, Any]:
        return await self._execute(operation, self._send_with_retry, method, path, **kwargs)

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> Dict[str, Any]:
        return await self._execute(operation, self._send, method, path, **kwargs)

    async def _execute(self, operation: str, send, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send the request and translate the outcome into data or a typed error."""
        start = time.perf_counter()
        outcome = "error"
        try:
            try:
                response = await send(method, path, **kwargs)
            except httpx.HTTPError as exc:
                self.logger.error("Mailchimp request failed", operation=operation, path=path, error=str(exc))
                raise UpstreamOther(
                    f"Mailchimp request failed: {exc}",
                    details={"detail": str(exc), "operation": operation},
                ) from exc

            if response.is_success:
                data = self._decode(response, operation)
                outcome = "success"
                return data

            error = self._error_from_response(response, operation)
            outcome = "not_found" if isinstance(error, UpstreamNotFound) else "error"
            raise error
        finally:
            self._record(operation, outcome, time.perf_counter() - start)

    def _decode(self, response: httpx.Response, operation: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamOther(
                "Invalid response from Mailchimp - body is not JSON",
                status=response.status_code,
                details={"detail": str(exc), "operation": operation},
            ) from exc
        self.logger.debug("Mailchimp response received", operation=operation, status_code=response.status_code)
        return data

    def _error_from_response(self, response: httpx.Response, operation: str) -> UpstreamError:
        """Build a typed error from a Mailchimp problem-detail response."""
        title = None
        detail = response.text
        try:
            problem = response.json()
        except ValueError:
            problem = None
        if isinstance(problem, dict):
            title = problem.get("title")
            detail = problem.get("detail") or detail

        self.logger.warning(
            "Mailchimp returned an error",
            operation=operation,
            status_code=response.status_code,
            title=title,
        )
        details = {"detail": detail, "operation": operation}
        message = f"Mailchimp {operation} failed with status {response.status_code}"
        if response.status_code == 404:
            return UpstreamNotFound(message, title=title, details=details)
        return UpstreamOther(message, status=response.status_code, title=title, details=details)

    def _record(self, operation: str, outcome: str, duration: float) -> None:
        if self.metrics:
            self.metrics.record_upstream_request(operation, outcome, duration)
