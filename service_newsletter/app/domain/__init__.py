"""
Domain helpers for the Newsletter Gateway.

- campaigns: typed upstream payloads and response shaping.
"""

from .campaigns import (
    extract_content_html,
    shape_audience_stats,
    shape_campaign,
    shape_campaign_list,
)

__all__ = [
    "extract_content_html",
    "shape_audience_stats",
    "shape_campaign",
    "shape_campaign_list",
]
