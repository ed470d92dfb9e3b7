"""
Test helper functions and factory methods for the Newsletter Gateway.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx


@dataclass
class TestCampaign:
    """Test campaign data."""
    campaign_id: str
    subject: str
    send_time: str
    emails_sent: int = 0
    status: str = "sent"
    html: str = "<html><body>Hello</body></html>"


@dataclass
class TestAudience:
    """Test audience data."""
    audience_id: str
    name: str
    member_count: int
    member_count_since_send: int
    unsubscribe_count: int
    date_created: str = "2023-01-15T09:00:00+00:00"


class MailchimpPayloadFactory:
    """Factory for Mailchimp-shaped response bodies."""

    @staticmethod
    def create_test_campaigns(count: int = 3) -> List[TestCampaign]:
        start = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        return [
            TestCampaign(
                campaign_id=f"camp{i}",
                subject=f"Issue #{i}",
                send_time=(start - timedelta(weeks=i)).isoformat(),
                emails_sent=100 * (i + 1),
            )
            for i in range(count)
        ]

    @staticmethod
    def campaign_body(campaign: TestCampaign) -> Dict[str, Any]:
        return {
            "id": campaign.campaign_id,
            "type": "regular",
            "status": campaign.status,
            "emails_sent": campaign.emails_sent,
            "send_time": campaign.send_time,
            "create_time": campaign.send_time,
            "settings": {
                "subject_line": campaign.subject,
                "from_name": "Newsletter",
                "reply_to": "news@example.com",
                "title": campaign.subject,
            },
        }

    @classmethod
    def campaign_list_body(cls, campaigns: List[TestCampaign]) -> Dict[str, Any]:
        return {
            "campaigns": [
                {
                    "id": c.campaign_id,
                    "send_time": c.send_time,
                    "settings": {"subject_line": c.subject},
                }
                for c in campaigns
            ],
            "total_items": len(campaigns),
        }

    @staticmethod
    def content_body(campaign: TestCampaign) -> Dict[str, Any]:
        return {"html": campaign.html, "plain_text": "Hello"}

    @staticmethod
    def audience_list_body(audiences: List[TestAudience]) -> Dict[str, Any]:
        return {
            "lists": [
                {
                    "id": a.audience_id,
                    "name": a.name,
                    "date_created": a.date_created,
                    "stats": {
                        "member_count": a.member_count,
                        "member_count_since_send": a.member_count_since_send,
                        "unsubscribe_count": a.unsubscribe_count,
                    },
                }
                for a in audiences
            ]
        }

    @staticmethod
    def problem_body(status: int, title: str, detail: str = "") -> Dict[str, Any]:
        """Mailchimp problem-detail error body."""
        return {
            "type": "https://mailchimp.com/developer/marketing/docs/errors/",
            "title": title,
            "status": status,
            "detail": detail,
            "instance": str(uuid.uuid4()),
        }


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Route = Callable[[httpx.Request], httpx.Response]


@dataclass
class FakeMailchimp:
    """Routes requests by (method, path) and records every call."""

    routes: Dict[Tuple[str, str], Route] = field(default_factory=dict)
    calls: List[httpx.Request] = field(default_factory=list)

    def route(self, method: str, path: str, handler: Route) -> None:
        self.routes[(method, path)] = handler

    def respond(self, method: str, path: str, status_code: int, body: Optional[Dict[str, Any]] = None) -> None:
        self.route(method, path, lambda request: httpx.Response(status_code, json=body))

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.calls if r.method == method and r.url.path == path)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(
                404,
                json=MailchimpPayloadFactory.problem_body(404, "Resource Not Found", "The requested resource could not be found."),
            )
        return handler(request)
