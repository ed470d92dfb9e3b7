"""
Adapters package for the Newsletter Gateway.

Contains the HTTP client wrapper for the upstream Mailchimp Marketing API.
The adapter encapsulates:

- Base URL and authentication
- Retry policy for transient transport failures
- Error handling that maps upstream statuses to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .mailchimp_client import MailchimpClient, MEMBER_EXISTS_TITLE

__all__ = [
    "MailchimpClient",
    "MEMBER_EXISTS_TITLE",
]
