"""
Typed upstream payloads and the shaping functions for the public routes.

Mailchimp responses are loosely structured: most fields can be missing
depending on campaign type and the ``fields`` projection requested. The
models below make every such field optional, and the shaping functions
turn them into the gateway's stable public shape with explicit defaults.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from shared.errors import UpstreamOther


class UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class CampaignSettings(UpstreamModel):
    subject_line: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None
    title: Optional[str] = None


class RawCampaign(UpstreamModel):
    id: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    send_time: Optional[str] = None
    create_time: Optional[str] = None
    emails_sent: Optional[int] = None
    settings: Optional[CampaignSettings] = None


class CampaignList(UpstreamModel):
    campaigns: List[Dict[str, Any]]


class CampaignContent(UpstreamModel):
    html: Optional[str] = None


class AudienceStatsBlock(UpstreamModel):
    member_count: Optional[int] = None
    member_count_since_send: Optional[int] = None
    unsubscribe_count: Optional[int] = None


class RawAudience(UpstreamModel):
    id: Optional[str] = None
    name: Optional[str] = None
    date_created: Optional[str] = None
    stats: Optional[AudienceStatsBlock] = None


class AudienceList(UpstreamModel):
    lists: List[RawAudience]


def _parse(model: type, payload: Any, what: str):
    if not isinstance(payload, dict):
        raise UpstreamOther(f"Invalid response from Mailchimp - {what} is not an object")
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise UpstreamOther(
            f"Invalid response from Mailchimp - malformed {what}",
            details={"detail": str(exc)},
        ) from exc


def shape_campaign_list(payload: Any) -> List[Dict[str, Any]]:
    """Return the ``campaigns`` array as projected by the upstream query."""
    return _parse(CampaignList, payload, "campaign list").campaigns


def shape_campaign(payload: Any) -> Dict[str, Any]:
    campaign: RawCampaign = _parse(RawCampaign, payload, "campaign")
    settings = campaign.settings or CampaignSettings()
    return {
        "id": campaign.id,
        "subject": settings.subject_line,
        "sendTime": campaign.send_time,
        "status": campaign.status,
        "emailsSent": campaign.emails_sent or 0,
        "type": campaign.type,
        "createTime": campaign.create_time,
        "settings": {
            "fromName": settings.from_name,
            "replyTo": settings.reply_to,
            "title": settings.title,
        },
    }


def extract_content_html(payload: Any) -> str:
    content: CampaignContent = _parse(CampaignContent, payload, "campaign content")
    if not content.html:
        raise UpstreamOther("Invalid response from Mailchimp - no HTML content found")
    return content.html


def shape_audience_stats(payload: Any) -> List[Dict[str, Any]]:
    audiences: AudienceList = _parse(AudienceList, payload, "audience list")
    stats = []
    for audience in audiences.lists:
        block = audience.stats or AudienceStatsBlock()
        stats.append({
            "id": audience.id,
            "name": audience.name,
            "memberCount": block.member_count or 0,
            # Mailchimp has no subscribed total; members since last send is the closest
            "subscribedCount": block.member_count_since_send or 0,
            "unsubscribedCount": block.unsubscribe_count or 0,
            "dateCreated": audience.date_created,
        })
    return stats
